"""
Tests for async-safe logging context management.

Verifies that trace IDs stay isolated between concurrent requests and
that service fields are stamped on every structured record.
"""

import asyncio
import logging
import pytest
from concurrent.futures import ThreadPoolExecutor

from media_gateway.core.logging_config import (
    BelowErrorFilter,
    _app_context,
    add_app_context,
    clear_trace_id,
    get_logging_config,
    get_trace_id,
    set_trace_id,
)


# ============================================================================
# Context isolation tests
# ============================================================================

@pytest.mark.unit
def test_trace_id_basic_set_get():
    set_trace_id("test-trace-123")
    assert get_trace_id() == "test-trace-123"

    clear_trace_id()
    assert get_trace_id() is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_trace_id_async_task_isolation():
    """Each concurrent request task keeps its own trace ID across awaits."""
    results = []

    async def handle_request(trace_id: str, delay: float):
        set_trace_id(trace_id)
        await asyncio.sleep(delay)
        results.append((trace_id, get_trace_id()))

    await asyncio.gather(
        handle_request("trace-1", 0.01),
        handle_request("trace-2", 0.02),
        handle_request("trace-3", 0.01),
        handle_request("trace-4", 0.02),
    )

    assert len(results) == 4
    for expected_id, retrieved_id in results:
        assert expected_id == retrieved_id


@pytest.mark.unit
def test_trace_id_thread_isolation():
    results = []

    def handle_request(trace_id: str):
        set_trace_id(trace_id)
        results.append((trace_id, get_trace_id()))

    with ThreadPoolExecutor(max_workers=4) as executor:
        for future in [executor.submit(handle_request, f"trace-{i}") for i in range(4)]:
            future.result()

    assert sorted(results) == [(f"trace-{i}", f"trace-{i}") for i in range(4)]


# ============================================================================
# Processors and handler config
# ============================================================================

@pytest.mark.unit
def test_add_app_context_stamps_service_and_trace(monkeypatch):
    monkeypatch.setitem(_app_context, "service", "media-gateway")
    monkeypatch.setitem(_app_context, "environment", "test")
    set_trace_id("abc-123")
    try:
        event = add_app_context(None, "info", {"event": "asset_upload_started"})
    finally:
        clear_trace_id()

    assert event["service"] == "media-gateway"
    assert event["environment"] == "test"
    assert event["trace_id"] == "abc-123"
    assert event["correlation_id"] == "abc-123"


@pytest.mark.unit
def test_add_app_context_without_trace():
    clear_trace_id()

    event = add_app_context(None, "info", {"event": "startup"})

    assert "trace_id" not in event


@pytest.mark.unit
def test_stdout_filter_drops_errors():
    stdout_filter = BelowErrorFilter()

    def record(level: int) -> logging.LogRecord:
        return logging.LogRecord("media_gateway", level, __file__, 1, "msg", None, None)

    assert stdout_filter.filter(record(logging.DEBUG))
    assert stdout_filter.filter(record(logging.INFO))
    assert stdout_filter.filter(record(logging.WARNING))
    assert not stdout_filter.filter(record(logging.ERROR))


@pytest.mark.unit
def test_logging_config_splits_streams():
    config = get_logging_config(log_level="debug", json_logs=True)

    assert config["handlers"]["stdout"]["filters"] == ["below_error"]
    assert config["handlers"]["stderr"]["level"] == "ERROR"
    assert config["loggers"]["media_gateway"]["level"] == "DEBUG"
    assert config["formatters"]["json"]["()"].endswith("CustomJsonFormatter")
