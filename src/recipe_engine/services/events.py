"""Event sinks for saga notifications."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from loguru import logger

if TYPE_CHECKING:
    from recipe_engine.models.events import DomainEvent


class EventSink(Protocol):
    async def publish(self, event: DomainEvent) -> None: ...


class LoggingEventSink:
    """Writes every event to the log."""

    async def publish(self, event: DomainEvent) -> None:
        logger.info("{} {}", type(event).__name__, event.model_dump_json())


class InMemoryEventSink:
    """Collects events in publish order."""

    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    async def publish(self, event: DomainEvent) -> None:
        self.events.append(event)

    def of_type[E](self, event_type: type[E]) -> list[E]:
        return [e for e in self.events if isinstance(e, event_type)]


async def publish_safely(sink: EventSink, event: DomainEvent) -> None:
    """Publish without letting a sink failure reach the caller."""

    try:
        await sink.publish(event)
    except Exception as exc:  # noqa: BLE001 - notifications are best-effort
        logger.warning("Failed to publish {}: {}", type(event).__name__, exc)
