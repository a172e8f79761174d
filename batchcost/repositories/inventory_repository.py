"""
Inventory Ledger Repository
"""
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, contains_eager, joinedload

from batchcost.models.batch import Batch, BatchStatus
from batchcost.models.inventory import Inventory
from batchcost.models.product import Product
from batchcost.repositories.base import BaseRepository


class InventoryRepository(BaseRepository[Inventory]):

    def __init__(self, db: Session):
        super().__init__(Inventory, db)

    def get_row(self, product_id: int, batch_id: int, warehouse_id: int, lock: bool = False) -> Optional[Inventory]:
        q = self.db.query(Inventory).filter(
            Inventory.product_id == product_id,
            Inventory.batch_id == batch_id,
            Inventory.warehouse_id == warehouse_id,
        )
        if lock:
            q = q.with_for_update()
        return q.first()

    def get_by_batch_and_warehouse_for_update(self, batch_id: int, warehouse_id: int) -> Optional[Inventory]:
        return (
            self.db.query(Inventory)
            .filter(Inventory.batch_id == batch_id, Inventory.warehouse_id == warehouse_id)
            .with_for_update()
            .first()
        )

    def list_by_batch(self, batch_id: int) -> List[Inventory]:
        return self.db.query(Inventory).filter(Inventory.batch_id == batch_id).all()

    def list_with_batch(self) -> List[Inventory]:
        return (
            self.db.query(Inventory)
            .options(joinedload(Inventory.batch))
            .order_by(Inventory.id)
            .all()
        )

    def list_by_product(self, product_id: int) -> List[Inventory]:
        return (
            self.db.query(Inventory)
            .filter(Inventory.product_id == product_id)
            .order_by(Inventory.id)
            .all()
        )

    def list_lots(self, product_id: int, warehouse_id: Optional[int] = None) -> List[Inventory]:
        """Ledger rows of a product with their batch, oldest receipt first.

        Rows of cancelled batches are excluded. Ties on received date fall
        back to batch id, then ledger row id.
        """
        q = (
            self.db.query(Inventory)
            .join(Batch, Batch.id == Inventory.batch_id)
            .options(contains_eager(Inventory.batch))
            .filter(
                Inventory.product_id == product_id,
                Batch.status != BatchStatus.CANCELLED.value,
            )
        )
        if warehouse_id:
            q = q.filter(Inventory.warehouse_id == warehouse_id)
        return q.order_by(Batch.received_date.asc(), Batch.id.asc(), Inventory.id.asc()).all()

    def list_filtered(
        self,
        page: int = 1,
        page_size: int = 20,
        product_id: Optional[int] = None,
        warehouse_id: Optional[int] = None,
        batch_id: Optional[int] = None,
        low_stock: bool = False,
    ) -> Tuple[List[Inventory], int]:
        q = self.db.query(Inventory)
        if low_stock:
            q = q.join(Product, Product.id == Inventory.product_id).filter(
                Inventory.quantity - Inventory.reserved_quantity <= Product.min_stock_level
            )
        if product_id:
            q = q.filter(Inventory.product_id == product_id)
        if warehouse_id:
            q = q.filter(Inventory.warehouse_id == warehouse_id)
        if batch_id:
            q = q.filter(Inventory.batch_id == batch_id)
        total = q.count()
        items = q.order_by(Inventory.id).offset((page - 1) * page_size).limit(page_size).all()
        return items, total
