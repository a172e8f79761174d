"""
Base Repository — Repository Pattern (GoF)

Generic data access for one mapped model. ``create`` commits immediately;
services that need several writes in one transaction work on the session
directly and commit once.
"""
from typing import Generic, Optional, Type, TypeVar

from sqlalchemy.orm import Session

from batchcost.database import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):

    def __init__(self, model: Type[ModelT], db: Session):
        self.model = model
        self.db = db

    def get_by_id(self, entity_id: int) -> Optional[ModelT]:
        return self.db.get(self.model, entity_id)

    def create(self, obj: ModelT) -> ModelT:
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj
