"""
Domain exception taxonomy.

Services raise these; the global handler in ``batchcost.main`` converts them
into structured HTTP responses, so routers never catch them.
"""
from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import HTTPException


class BatchCostException(Exception):
    """Base class for every business-rule failure raised by the core."""

    code = "BATCHCOST_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class EntityNotFoundException(BatchCostException):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            f"{entity} with id '{entity_id}' not found",
            details={"entity": entity, "entity_id": str(entity_id)},
        )
        self.entity = entity
        self.entity_id = entity_id


class ForbiddenOperationException(BatchCostException):
    code = "FORBIDDEN"
    status_code = 403


class BusinessRuleViolationException(BatchCostException):
    code = "BAD_REQUEST"
    status_code = 400


class InsufficientInventoryException(BusinessRuleViolationException):
    """Demand exceeds available stock; ``shortfall`` is the exact missing quantity."""

    def __init__(self, message: str, shortfall: Decimal, batch_id: Optional[int] = None):
        details: Dict[str, Any] = {"shortfall": format_quantity(shortfall)}
        if batch_id is not None:
            details["batch_id"] = batch_id
        super().__init__(message, details=details)
        self.shortfall = shortfall
        self.batch_id = batch_id


def format_quantity(value: Decimal) -> str:
    """Render a quantity without trailing zeros or exponent notation."""
    return format(Decimal(value).normalize(), "f")


def to_http_exception(exc: BatchCostException) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.to_dict())
