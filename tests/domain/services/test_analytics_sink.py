"""Tests for analytics sinks."""

import logging

import pytest

from toolsmith.domain.services.analytics_sink import (
    AnalyticsSink,
    InMemoryAnalyticsSink,
    LoggingAnalyticsSink,
    emit_safely,
)


class BrokenSink:
    async def emit(self, name, **properties):
        raise RuntimeError("sink offline")


class TestInMemorySink:

    @pytest.mark.asyncio
    async def test_records_events(self):
        sink = InMemoryAnalyticsSink()

        await sink.emit("deployed", project_id="p1", slug="resume-builder")
        await sink.emit("undeployed", project_id="p1")

        assert sink.names() == ["deployed", "undeployed"]
        assert sink.events[0].properties == {"project_id": "p1", "slug": "resume-builder"}

        sink.clear()
        assert sink.events == []

    def test_satisfies_protocol(self):
        assert isinstance(InMemoryAnalyticsSink(), AnalyticsSink)
        assert isinstance(LoggingAnalyticsSink(), AnalyticsSink)


class TestLoggingSink:

    @pytest.mark.asyncio
    async def test_logs_structured_record(self, caplog):
        with caplog.at_level(logging.INFO, logger="toolsmith.analytics"):
            await LoggingAnalyticsSink().emit("session_completed", project_id=42)

        record = caplog.records[-1]
        assert record.event == "session_completed"
        assert record.properties == {"project_id": "42"}


class TestEmitSafely:

    @pytest.mark.asyncio
    async def test_swallows_sink_failure(self, caplog):
        with caplog.at_level(logging.WARNING):
            await emit_safely(BrokenSink(), "deployed", slug="x")

        assert "sink offline" in caplog.text

    @pytest.mark.asyncio
    async def test_passes_through(self):
        sink = InMemoryAnalyticsSink()

        await emit_safely(sink, "deployed", slug="x")

        assert sink.names() == ["deployed"]
