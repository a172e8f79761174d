"""
Batch & Landed Cost Repositories
"""
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from batchcost.models.batch import Batch
from batchcost.models.landed_cost import CostItemType, LandedCostItem
from batchcost.models.product import Product
from batchcost.repositories.base import BaseRepository


class BatchRepository(BaseRepository[Batch]):

    def __init__(self, db: Session):
        super().__init__(Batch, db)

    def get_for_update(self, batch_id: int) -> Optional[Batch]:
        return (
            self.db.query(Batch)
            .filter(Batch.id == batch_id)
            .with_for_update()
            .first()
        )

    def list_filtered(
        self,
        page: int = 1,
        page_size: int = 20,
        product_id: Optional[int] = None,
        supplier_id: Optional[int] = None,
        warehouse_id: Optional[int] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Batch], int]:
        q = self.db.query(Batch)
        if product_id:
            q = q.filter(Batch.product_id == product_id)
        if supplier_id:
            q = q.filter(Batch.supplier_id == supplier_id)
        if warehouse_id:
            q = q.filter(Batch.warehouse_id == warehouse_id)
        if status:
            q = q.filter(Batch.status == status)
        if search:
            pattern = f"%{search}%"
            q = q.join(Product, Product.id == Batch.product_id).filter(
                or_(
                    Batch.batch_number.ilike(pattern),
                    Product.name.ilike(pattern),
                    Product.sku.ilike(pattern),
                )
            )
        total = q.count()
        items = (
            q.order_by(Batch.created_at.desc(), Batch.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return items, total

    def count_by_status(self) -> Dict[str, int]:
        rows = self.db.query(Batch.status, func.count(Batch.id)).group_by(Batch.status).all()
        return {status: count for status, count in rows}

    def list_total_costs(self, status: str) -> List:
        return [row.total_cost for row in self.db.query(Batch.total_cost).filter(Batch.status == status)]


class LandedCostItemRepository(BaseRepository[LandedCostItem]):

    def __init__(self, db: Session):
        super().__init__(LandedCostItem, db)


class CostItemTypeRepository(BaseRepository[CostItemType]):

    def __init__(self, db: Session):
        super().__init__(CostItemType, db)

    def get_by_code(self, code: str) -> Optional[CostItemType]:
        return self.db.query(CostItemType).filter(CostItemType.code == code).first()

    def list_filtered(self, active_only: bool = False) -> List[CostItemType]:
        q = self.db.query(CostItemType)
        if active_only:
            q = q.filter(CostItemType.is_active.is_(True))
        return q.order_by(CostItemType.name).all()
