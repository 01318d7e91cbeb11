"""Asset descriptors shared by every storage backend."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AssetDescriptor(BaseModel):
    """A stored media asset as reported by its backend.

    Serialized in camelCase (`displayName`, `thumbnailUrl`, ...) with unset
    optional fields omitted. `id` is the only handle used for deletion.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    display_name: str
    url: str
    thumbnail_url: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    size: Optional[int] = None
    created_at: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AssetListing(BaseModel):
    """Result of a list call.

    `error` is only set when a backend degrades to an empty listing
    instead of failing the request.
    """

    model_config = ConfigDict(frozen=True)

    files: List[AssetDescriptor] = Field(default_factory=list)
    error: Optional[str] = None
    details: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.error is not None

    def to_json(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"files": [asset.to_json() for asset in self.files]}
        if self.error is not None:
            body["error"] = self.error
            body["details"] = self.details
        return body
