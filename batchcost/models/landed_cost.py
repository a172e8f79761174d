from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    DateTime,
    Boolean,
    Text,
    ForeignKey,
    CheckConstraint,
    func,
)
from sqlalchemy.orm import relationship

from batchcost.database import Base


class CostItemType(Base):
    __tablename__ = "cost_item_types"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(30), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=func.now())


class LandedCostItem(Base):
    __tablename__ = "landed_cost_items"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_landed_cost_items_amount_non_negative"),
        CheckConstraint("exchange_rate > 0", name="ck_landed_cost_items_rate_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    batch_id = Column(Integer, ForeignKey("batches.id", ondelete="CASCADE"), nullable=False, index=True)
    cost_type_id = Column(Integer, ForeignKey("cost_item_types.id"), nullable=False, index=True)

    amount = Column(Numeric(18, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    exchange_rate = Column(Numeric(18, 6), nullable=False, default=1)
    amount_in_batch_currency = Column(Numeric(18, 2), nullable=False)

    description = Column(Text, nullable=True)
    reference_number = Column(String(100), nullable=True)

    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    batch = relationship("Batch", back_populates="landed_cost_items")
    cost_type = relationship("CostItemType")
