from sqlalchemy import (
    Column,
    Integer,
    Numeric,
    DateTime,
    ForeignKey,
    CheckConstraint,
    UniqueConstraint,
    Index,
    func,
)
from sqlalchemy.orm import relationship

from batchcost.database import Base
from batchcost.utils.money import to_decimal


class Inventory(Base):
    __tablename__ = "inventory"
    __table_args__ = (
        UniqueConstraint(
            "product_id",
            "batch_id",
            "warehouse_id",
            name="uq_inventory_product_batch_warehouse",
        ),
        CheckConstraint("reserved_quantity >= 0", name="ck_inventory_reserved_non_negative"),
        CheckConstraint("quantity >= reserved_quantity", name="ck_inventory_reserved_within_on_hand"),
        Index("ix_inventory_batch_warehouse", "batch_id", "warehouse_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    batch_id = Column(Integer, ForeignKey("batches.id"), nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False, index=True)
    quantity = Column(Numeric(14, 4), nullable=False, default=0)
    reserved_quantity = Column(Numeric(14, 4), nullable=False, default=0)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    batch = relationship("Batch")

    @property
    def available_quantity(self):
        return to_decimal(self.quantity) - to_decimal(self.reserved_quantity)
