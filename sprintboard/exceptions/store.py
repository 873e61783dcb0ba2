# sprintboard/exceptions/store.py
"""Errors raised by the entity store and the mutation gateway"""
from typing import Any, Optional


class SprintboardError(Exception):
    """Base class for domain errors mapped to HTTP responses"""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class EntityNotFoundError(SprintboardError):
    """A referenced id does not exist"""

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class ConstraintViolationError(SprintboardError):
    """The store rejected a write because it breaks a relational constraint"""

    def __init__(self, detail: str = "Constraint violation", constraint: Optional[str] = None):
        super().__init__(detail)
        self.constraint = constraint


class StoreError(SprintboardError):
    """Transaction or connectivity failure inside the store"""

    def __init__(self, detail: str = "Store operation failed"):
        super().__init__(detail)


class WebhookSignatureError(SprintboardError):
    """An inbound webhook failed signature verification"""

    def __init__(self, detail: str = "Invalid webhook signature"):
        super().__init__(detail)


class InvalidUpdateError(SprintboardError):
    """A partial update is well formed alone but invalid against the stored row"""

    def __init__(self, field: str, message: str):
        super().__init__("Validation error")
        self.errors = [{"field": f"body -> {field}", "message": message, "type": "value_error"}]
