"""
Shared pytest fixtures.

Every test gets a fresh in-memory SQLite database. The worked costing example
used throughout the suite is two confirmed batches of one product in one
warehouse: A received on day 1 (10 units at 2.00) and B on day 2 (5 units at
3.00).
"""
from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import batchcost.models  # noqa: F401
from batchcost.database import Base, get_db
from batchcost.main import app
from batchcost.models.landed_cost import CostItemType
from batchcost.models.product import Product, Supplier, Warehouse
from batchcost.schemas.batch import BatchCreate
from batchcost.services.batch_service import BatchService
from batchcost.services.costing_service import BatchCostingService
from batchcost.utils.clock import FixedClock
from batchcost.utils.events import EventHandler, LoggingHandler, get_event_bus

DAY_1 = datetime(2026, 3, 1, 8, 0, 0)
DAY_2 = datetime(2026, 3, 2, 8, 0, 0)
NOW = datetime(2026, 3, 5, 12, 30, 0)

ACTOR_ID = 7


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def actor_headers():
    return {"X-Actor-ID": str(ACTOR_ID)}


@pytest.fixture()
def clock():
    return FixedClock(NOW)


class RecordingHandler(EventHandler):

    def __init__(self):
        self.events = []

    def handle(self, event) -> None:
        self.events.append(event)


@pytest.fixture()
def events():
    bus = get_event_bus()
    recorder = RecordingHandler()
    bus.subscribe(recorder)
    yield recorder.events
    bus.clear()
    bus.subscribe(LoggingHandler())


# ── Reference data ────────────────────────────────────────────────────────────

@pytest.fixture()
def product(db):
    p = Product(sku="SKU-100", name="Steel Bolt M8", unit="pcs", min_stock_level=Decimal("3"), status="active")
    db.add(p)
    db.commit()
    db.refresh(p)
    return p


@pytest.fixture()
def warehouse(db):
    w = Warehouse(code="WH-MAIN", name="Main Warehouse", is_active=True)
    db.add(w)
    db.commit()
    db.refresh(w)
    return w


@pytest.fixture()
def other_warehouse(db):
    w = Warehouse(code="WH-EAST", name="East Warehouse", is_active=True)
    db.add(w)
    db.commit()
    db.refresh(w)
    return w


@pytest.fixture()
def supplier(db):
    s = Supplier(code="SUP-01", name="Acme Fasteners", currency="USD", is_active=True)
    db.add(s)
    db.commit()
    db.refresh(s)
    return s


@pytest.fixture()
def cost_type(db):
    ct = CostItemType(code="FREIGHT", name="Freight", is_active=True)
    db.add(ct)
    db.commit()
    db.refresh(ct)
    return ct


# ── Batches ───────────────────────────────────────────────────────────────────

@pytest.fixture()
def batch_service(db, clock):
    return BatchService(db, clock=clock)


@pytest.fixture()
def costing_service(db, clock):
    return BatchCostingService(db, clock=clock)


@pytest.fixture()
def draft_batch(batch_service, product, warehouse, supplier):
    return batch_service.create_batch(
        BatchCreate(
            product_id=product.id,
            supplier_id=supplier.id,
            warehouse_id=warehouse.id,
            quantity=Decimal("100"),
            unit_purchase_cost=Decimal("1.50"),
            received_date=DAY_1,
        )
    )


@pytest.fixture()
def two_batches(batch_service, costing_service, product, warehouse):
    """Confirmed batches A (day 1, 10 @ 2.00) and B (day 2, 5 @ 3.00), both on hand."""
    batch_a = batch_service.receive_batch(
        BatchCreate(
            product_id=product.id,
            warehouse_id=warehouse.id,
            quantity=Decimal("10"),
            unit_purchase_cost=Decimal("2.00"),
            received_date=DAY_1,
        )
    )
    batch_b = batch_service.receive_batch(
        BatchCreate(
            product_id=product.id,
            warehouse_id=warehouse.id,
            quantity=Decimal("5"),
            unit_purchase_cost=Decimal("3.00"),
            received_date=DAY_2,
        )
    )
    costing_service.confirm_batch(batch_a.id, actor_id=ACTOR_ID)
    costing_service.confirm_batch(batch_b.id, actor_id=ACTOR_ID)
    return batch_a, batch_b
