from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from batchcost.database import get_db
from batchcost.schemas.batch import CostItemTypeCreate, CostItemTypeResponse
from batchcost.services.batch_service import BatchService

router = APIRouter(prefix="/cost-types", tags=["Cost Item Types"])


def get_batch_service(db: Session = Depends(get_db)) -> BatchService:
    return BatchService(db)


@router.get("", response_model=List[CostItemTypeResponse])
def list_cost_types(active_only: bool = False, service: BatchService = Depends(get_batch_service)):
    return service.list_cost_item_types(active_only=active_only)


@router.post("", response_model=CostItemTypeResponse, status_code=201)
def create_cost_type(data: CostItemTypeCreate, service: BatchService = Depends(get_batch_service)):
    return service.create_cost_item_type(data)
