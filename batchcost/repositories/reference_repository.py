"""
Reference Data Repositories — products, warehouses, suppliers
"""
from typing import List

from sqlalchemy.orm import Session

from batchcost.models.product import Product, Supplier, Warehouse
from batchcost.repositories.base import BaseRepository


class ProductRepository(BaseRepository[Product]):

    def __init__(self, db: Session):
        super().__init__(Product, db)

    def list_active(self) -> List[Product]:
        return self.db.query(Product).filter(Product.status == "active").order_by(Product.id).all()


class WarehouseRepository(BaseRepository[Warehouse]):

    def __init__(self, db: Session):
        super().__init__(Warehouse, db)

    def list_active(self) -> List[Warehouse]:
        return self.db.query(Warehouse).filter(Warehouse.is_active.is_(True)).order_by(Warehouse.code).all()


class SupplierRepository(BaseRepository[Supplier]):

    def __init__(self, db: Session):
        super().__init__(Supplier, db)
