from enum import Enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    DateTime,
    Text,
    ForeignKey,
    CheckConstraint,
    Index,
    func,
)
from sqlalchemy.orm import relationship

from batchcost.database import Base


class BatchStatus(str, Enum):
    DRAFT = "DRAFT"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class Batch(Base):
    __tablename__ = "batches"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_batches_quantity_non_negative"),
        CheckConstraint("unit_purchase_cost >= 0", name="ck_batches_unit_cost_non_negative"),
        CheckConstraint("total_landed_cost >= 0", name="ck_batches_landed_cost_non_negative"),
        CheckConstraint(
            "status IN ('DRAFT', 'CONFIRMED', 'CANCELLED')",
            name="ck_batches_status",
        ),
        Index("ix_batches_product_received", "product_id", "received_date"),
        Index("ix_batches_status_warehouse", "status", "warehouse_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    batch_number = Column(String(40), unique=True, nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=True, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False, index=True)

    quantity = Column(Numeric(14, 4), nullable=False)
    unit_purchase_cost = Column(Numeric(18, 4), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")

    total_purchase_cost = Column(Numeric(18, 2), nullable=False, default=0)
    total_landed_cost = Column(Numeric(18, 2), nullable=False, default=0)
    total_cost = Column(Numeric(18, 2), nullable=False, default=0)
    cost_per_unit = Column(Numeric(18, 4), nullable=False, default=0)

    received_date = Column(DateTime, nullable=False)
    notes = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default=BatchStatus.DRAFT.value)
    confirmed_at = Column(DateTime, nullable=True)
    confirmed_by = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    landed_cost_items = relationship(
        "LandedCostItem",
        back_populates="batch",
        order_by="LandedCostItem.id",
        cascade="all, delete-orphan",
    )

    @property
    def is_confirmed(self) -> bool:
        return self.status == BatchStatus.CONFIRMED.value

    @property
    def is_cancelled(self) -> bool:
        return self.status == BatchStatus.CANCELLED.value
