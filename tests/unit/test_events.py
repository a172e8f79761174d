import json

from sqlalchemy.orm import sessionmaker

from batchcost.models.audit_log import AuditLog
from batchcost.utils.events import (
    AuditLogHandler,
    EventBus,
    EventHandler,
    InventoryMovementEvent,
    StatusChangedEvent,
)


class _Boom(EventHandler):
    def handle(self, event) -> None:
        raise RuntimeError("handler down")


class _Collect(EventHandler):
    def __init__(self):
        self.seen = []

    def handle(self, event) -> None:
        self.seen.append(event.action)


def test_failing_handler_does_not_stop_others():
    bus = EventBus()
    collector = _Collect()
    bus.subscribe(_Boom())
    bus.subscribe(collector)

    bus.publish(StatusChangedEvent(entity_type="batch", entity_id=1, old_status="DRAFT", new_status="CONFIRMED"))

    assert collector.seen == ["status_changed"]


def test_audit_log_handler_persists_event(engine, db):
    handler = AuditLogHandler(sessionmaker(bind=engine))
    handler.handle(InventoryMovementEvent(
        entity_type="inventory",
        user_id=9,
        movement_type="reserve",
        warehouse_id=2,
        lines=[{"batch_id": 4, "quantity": "3"}],
    ))

    entry = db.query(AuditLog).one()
    assert entry.action == "inventory_reserve"
    assert entry.user_id == 9
    assert json.loads(entry.new_values)["lines"] == [{"batch_id": 4, "quantity": "3"}]
