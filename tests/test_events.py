"""Tests for the event bus."""

from unittest.mock import AsyncMock

import pytest

from aenea.dpd.weights import DPDWeights
from aenea.events import (
    AgentThought,
    CycleFailed,
    DPDUpdated,
    EventBus,
    StageChanged,
)


class TestEventBus:
    """Tests for EventBus delivery."""

    @pytest.mark.asyncio
    async def test_sync_and_async_handlers_receive_events(self):
        bus = EventBus()
        received = []
        async_handler = AsyncMock()
        bus.subscribe(received.append)
        bus.subscribe(async_handler)

        event = StageChanged(stage="S1")
        await bus.emit(event)

        assert received == [event]
        async_handler.assert_awaited_once_with(event)

    @pytest.mark.asyncio
    async def test_filtered_subscription(self):
        """Typed subscribers only see their event class."""
        bus = EventBus()
        received = []
        bus.subscribe(received.append, CycleFailed)

        await bus.emit(StageChanged(stage="S0"))
        await bus.emit(CycleFailed(cycle_id="c1", reason="no thoughts"))

        assert [type(e) for e in received] == [CycleFailed]

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_block_others(self):
        bus = EventBus()
        received = []

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe(broken)
        bus.subscribe(received.append)

        await bus.emit(StageChanged(stage="S2"))

        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_failing_async_handler_is_contained(self):
        bus = EventBus()
        bus.subscribe(AsyncMock(side_effect=RuntimeError("boom")))

        await bus.emit(StageChanged(stage="S2"))

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        bus = EventBus()
        received = []
        unsubscribe = bus.subscribe(received.append)
        unsubscribe()
        unsubscribe()

        await bus.emit(StageChanged(stage="S3"))

        assert received == []
        assert bus.subscriber_count == 0


class TestEventSerialization:
    """Wire format of events."""

    def test_camel_case_type(self):
        payload = AgentThought(agent_name="theoria", thought="...", confidence=0.7).to_dict()
        assert payload["type"] == "agentThought"
        assert payload["agent_name"] == "theoria"
        assert isinstance(payload["timestamp"], str)

    def test_nested_records_serialized(self):
        payload = DPDUpdated(weights=DPDWeights.initial()).to_dict()
        assert payload["type"] == "dpdUpdated"
        assert payload["weights"]["version"] == 0
