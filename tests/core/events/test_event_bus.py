"""
Tests for the DomainEventBus.
"""

import asyncio
from dataclasses import dataclass
from unittest.mock import Mock, patch

import pytest

from storage_sweeper.core.events.domain_event import DomainEvent
from storage_sweeper.core.events.event_bus import DomainEventBus
from storage_sweeper.core.events.scan_events import ScanCompletedEvent, ScanStatusChangedEvent
from storage_sweeper.models import ScanOutcome, ScanStatus


@pytest.mark.asyncio
async def test_subscribe_and_publish():
    """A handler is called when its subscribed event is published."""
    bus = DomainEventBus()
    handler_mock = Mock()

    async def async_handler(event: DomainEvent):
        handler_mock(event)

    await bus.subscribe(DomainEvent, async_handler)

    event_to_publish = DomainEvent()
    await bus.publish(event_to_publish)

    handler_mock.assert_called_once_with(event_to_publish)


@pytest.mark.asyncio
async def test_publish_to_correct_handlers_only():
    """Only handlers for the exact event type are called."""
    bus = DomainEventBus()
    handler_a_mock = Mock()
    handler_b_mock = Mock()

    @dataclass(frozen=True, kw_only=True)
    class EventA(DomainEvent):
        pass

    @dataclass(frozen=True, kw_only=True)
    class EventB(DomainEvent):
        pass

    async def handler_a(event: EventA):
        handler_a_mock(event)

    async def handler_b(event: EventB):
        handler_b_mock(event)

    await bus.subscribe(EventA, handler_a)
    await bus.subscribe(EventB, handler_b)

    event_a_instance = EventA()
    await bus.publish(event_a_instance)

    handler_a_mock.assert_called_once_with(event_a_instance)
    handler_b_mock.assert_not_called()


@pytest.mark.asyncio
async def test_multiple_handlers_for_one_event():
    bus = DomainEventBus()
    handler1_mock = Mock()
    handler2_mock = Mock()

    async def async_handler1(event: DomainEvent):
        handler1_mock(event)

    async def async_handler2(event: DomainEvent):
        handler2_mock(event)

    await bus.subscribe(DomainEvent, async_handler1)
    await bus.subscribe(DomainEvent, async_handler2)

    event_to_publish = DomainEvent()
    await bus.publish(event_to_publish)

    handler1_mock.assert_called_once_with(event_to_publish)
    handler2_mock.assert_called_once_with(event_to_publish)


@pytest.mark.asyncio
async def test_publish_with_no_subscribers():
    """Publishing with no subscribers does not raise."""
    bus = DomainEventBus()

    try:
        await bus.publish(DomainEvent())
    except Exception as e:
        pytest.fail(f"Publishing with no subscribers raised an exception: {e}")


@pytest.mark.asyncio
async def test_failing_handler_does_not_stop_others():
    """If one handler fails, the other handlers still run and the error is logged."""
    bus = DomainEventBus()
    handler_success_mock = Mock()
    handler_fail_mock = Mock()

    async def success_handler(event: DomainEvent):
        handler_success_mock(event)
        await asyncio.sleep(0.01)

    async def failing_handler(event: DomainEvent):
        handler_fail_mock(event)
        raise ValueError("Handler failed intentionally")

    await bus.subscribe(DomainEvent, failing_handler)
    await bus.subscribe(DomainEvent, success_handler)

    event_to_publish = DomainEvent()

    with patch("logging.error") as mock_log_error:
        await bus.publish(event_to_publish)

        handler_fail_mock.assert_called_once_with(event_to_publish)
        handler_success_mock.assert_called_once_with(event_to_publish)

        mock_log_error.assert_called_once()
        log_args, _ = mock_log_error.call_args
        assert "Unhandled exception in handler 'failing_handler'" in log_args[0]
        assert "Handler failed intentionally" in log_args[0]


@pytest.mark.asyncio
async def test_scan_events_are_routed_by_type():
    """Scan lifecycle events reach only the handlers registered for them."""
    bus = DomainEventBus()
    completed = Mock()
    changed = Mock()

    async def on_completed(event: ScanCompletedEvent):
        completed(event.scan_id)

    async def on_changed(event: ScanStatusChangedEvent):
        changed(event.new_status)

    await bus.subscribe(ScanCompletedEvent, on_completed)
    await bus.subscribe(ScanStatusChangedEvent, on_changed)

    outcome = ScanOutcome(feature="junk", status=ScanStatus.COMPLETED)
    await bus.publish(ScanCompletedEvent(scan_id="scan-7", outcome=outcome))

    completed.assert_called_once_with("scan-7")
    changed.assert_not_called()
