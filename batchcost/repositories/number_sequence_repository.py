from datetime import date

from sqlalchemy.orm import Session

from batchcost.models.number_sequence import NumberSequence
from batchcost.repositories.base import BaseRepository


class NumberSequenceRepository(BaseRepository[NumberSequence]):

    def __init__(self, db: Session):
        super().__init__(NumberSequence, db)

    def get_or_create_for_update(self, sequence_type: str, sequence_date: date) -> NumberSequence:
        seq = (
            self.db.query(NumberSequence)
            .filter(
                NumberSequence.sequence_type == sequence_type,
                NumberSequence.sequence_date == sequence_date,
            )
            .with_for_update()
            .first()
        )
        if seq is None:
            seq = NumberSequence(sequence_type=sequence_type, sequence_date=sequence_date, last_value=0)
            self.db.add(seq)
            self.db.flush()
        return seq
