"""
Request-scoped dependencies shared by the routers.

Authentication is handled upstream; the caller's identity arrives in the
``X-Actor-ID`` header and is recorded on confirmations and audit entries.
"""
from typing import Optional

from fastapi import Header

from batchcost.core.exceptions import BusinessRuleViolationException


def get_actor_id(x_actor_id: Optional[str] = Header(None)) -> Optional[int]:
    if x_actor_id is None or x_actor_id == "":
        return None
    try:
        return int(x_actor_id)
    except ValueError:
        raise BusinessRuleViolationException("X-Actor-ID header must be an integer") from None


def require_actor_id(x_actor_id: Optional[str] = Header(None)) -> int:
    actor_id = get_actor_id(x_actor_id)
    if actor_id is None:
        raise BusinessRuleViolationException("X-Actor-ID header is required for this operation")
    return actor_id
