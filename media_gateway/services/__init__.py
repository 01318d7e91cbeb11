"""
Services package - Business Logic Layer

Contains all business logic separated from HTTP/API concerns.
"""
from media_gateway.services.asset_service import AssetGatewayService, LIST_LIMIT, UPLOAD_FOLDER

__all__ = ["AssetGatewayService", "LIST_LIMIT", "UPLOAD_FOLDER"]
