"""
Domain Event Bus — Observer Pattern (GoF)

Services publish events after their transaction commits; subscribed handlers
react (structured logging, audit trail). Handlers run synchronously in the
publishing request, so they must be quick.
"""
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from batchcost.utils.clock import utc_now

logger = logging.getLogger(__name__)


# ── Events ───────────────────────────────────────────────────────────────────

@dataclass
class DomainEvent:
    entity_type: str
    entity_id: Optional[int] = None
    user_id: Optional[int] = None
    occurred_at: datetime = field(default_factory=utc_now)

    @property
    def action(self) -> str:
        return "event"

    def payload(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ("entity_type", "entity_id", "user_id", "occurred_at"):
            data.pop(key, None)
        return data


@dataclass
class EntityCreatedEvent(DomainEvent):
    new_values: Dict[str, Any] = field(default_factory=dict)

    @property
    def action(self) -> str:
        return "created"


@dataclass
class EntityUpdatedEvent(DomainEvent):
    old_values: Dict[str, Any] = field(default_factory=dict)
    new_values: Dict[str, Any] = field(default_factory=dict)

    @property
    def action(self) -> str:
        return "updated"


@dataclass
class StatusChangedEvent(DomainEvent):
    old_status: str = ""
    new_status: str = ""

    @property
    def action(self) -> str:
        return "status_changed"


@dataclass
class InventoryMovementEvent(DomainEvent):
    """Ledger mutation; ``lines`` holds one ``{batch_id, quantity}`` dict per row touched."""

    movement_type: str = ""
    warehouse_id: Optional[int] = None
    lines: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def action(self) -> str:
        return f"inventory_{self.movement_type}"


# ── Handlers ─────────────────────────────────────────────────────────────────

class EventHandler(ABC):

    @abstractmethod
    def handle(self, event: DomainEvent) -> None:
        ...


class LoggingHandler(EventHandler):

    def handle(self, event: DomainEvent) -> None:
        logger.info(
            "domain_event action=%s entity_type=%s entity_id=%s user_id=%s",
            event.action,
            event.entity_type,
            event.entity_id,
            event.user_id,
            extra={"event_payload": event.payload()},
        )


class AuditLogHandler(EventHandler):
    """Persists every event as an AuditLog row using its own session."""

    def __init__(self, db_session_factory: Callable):
        self._session_factory = db_session_factory

    def handle(self, event: DomainEvent) -> None:
        from batchcost.models.audit_log import AuditLog

        payload = event.payload()
        db = self._session_factory()
        try:
            db.add(
                AuditLog(
                    entity_type=event.entity_type,
                    entity_id=event.entity_id,
                    action=event.action,
                    user_id=event.user_id,
                    old_values=json.dumps(payload.pop("old_values", None), default=str),
                    new_values=json.dumps(payload, default=str),
                    created_at=event.occurred_at,
                )
            )
            db.commit()
        finally:
            db.close()


# ── Bus ──────────────────────────────────────────────────────────────────────

class EventBus:

    def __init__(self):
        self._handlers: List[EventHandler] = []

    @property
    def handlers(self) -> List[EventHandler]:
        return list(self._handlers)

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers.append(handler)

    def clear(self) -> None:
        self._handlers.clear()

    def publish(self, event: DomainEvent) -> None:
        # The business transaction has already committed; a broken handler
        # must not surface as a failed operation.
        for handler in self._handlers:
            try:
                handler.handle(event)
            except Exception:
                logger.exception(
                    "event_handler_failed handler=%s action=%s entity_type=%s entity_id=%s",
                    type(handler).__name__,
                    event.action,
                    event.entity_type,
                    event.entity_id,
                )


_event_bus = EventBus()
_event_bus.subscribe(LoggingHandler())


def get_event_bus() -> EventBus:
    return _event_bus


def configure_event_bus(db_session_factory: Callable) -> EventBus:
    _event_bus.clear()
    _event_bus.subscribe(LoggingHandler())
    _event_bus.subscribe(AuditLogHandler(db_session_factory))
    return _event_bus
