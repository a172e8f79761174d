"""
Numbering Service

Human-readable, time-ordered document numbers: ``PREFIX-YYYYMMDD-NNNN``.
The counter restarts every UTC day and is kept per document type.
"""
from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from batchcost.config import settings
from batchcost.repositories.number_sequence_repository import NumberSequenceRepository
from batchcost.utils.clock import Clock, utc_now


class NumberType(str, Enum):
    BATCH = "batch"
    SALES = "sales"
    PURCHASE = "purchase"
    TRANSFER = "transfer"
    JOURNAL = "journal"


PREFIXES = {
    NumberType.BATCH: "BTH",
    NumberType.SALES: "SO",
    NumberType.PURCHASE: "PO",
    NumberType.TRANSFER: "TR",
    NumberType.JOURNAL: "JE",
}


class NumberingService:

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self._db = db
        self._repo = NumberSequenceRepository(db)
        self._clock = clock or utc_now

    def generate_number(self, number_type: NumberType) -> str:
        """Reserve the next number for ``number_type``.

        The counter row is locked and incremented inside the caller's
        transaction; it is flushed but not committed, so the number is only
        consumed if the caller's transaction commits.
        """
        number_type = NumberType(number_type)
        today = self._clock().date()
        seq = self._repo.get_or_create_for_update(number_type.value, today)
        seq.last_value = (seq.last_value or 0) + 1
        self._db.flush()

        width = settings.NUMBER_SEQUENCE_WIDTH
        return f"{PREFIXES[number_type]}-{today.strftime('%Y%m%d')}-{seq.last_value:0{width}d}"

    def next_batch_number(self) -> str:
        return self.generate_number(NumberType.BATCH)
