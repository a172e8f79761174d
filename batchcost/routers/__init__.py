# Routers package — Thin Controllers (SRP / DIP)
from batchcost.routers import batches, cost_types, inventory

__all__ = ["batches", "cost_types", "inventory"]
