from sqlalchemy import (
    Column,
    Integer,
    String,
    Date,
    UniqueConstraint,
    CheckConstraint,
)
from batchcost.database import Base


class NumberSequence(Base):
    __tablename__ = "number_sequences"
    __table_args__ = (
        UniqueConstraint("sequence_type", "sequence_date", name="uq_number_sequences_type_date"),
        CheckConstraint("last_value >= 0", name="ck_number_sequences_last_value_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    sequence_type = Column(String(20), nullable=False)
    sequence_date = Column(Date, nullable=False)
    last_value = Column(Integer, nullable=False, default=0)
