"""Typed errors raised by the supply-chain services.

Every error derives from ``CentralInventoryError`` (itself a ``ValueError``) and
carries a machine-readable ``code``. Routers map these to HTTP status codes;
services never swallow them.

    CentralInventoryError
    +-- NotFoundError
    +-- InvalidTransitionError
    +-- QuantityExceedsRequestError
    +-- InsufficientStockError
    +-- ValidationError
    +-- PermissionDeniedError
    +-- UpstreamError
"""

from __future__ import annotations


class CentralInventoryError(ValueError):
    code: str = 'CENTRAL_INVENTORY_ERROR'

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(CentralInventoryError):
    code = 'NOT_FOUND'

    def __init__(self, entity: str, identifier: object):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f'{entity} not found: {identifier}')


class InvalidTransitionError(CentralInventoryError):
    code = 'INVALID_TRANSITION'

    def __init__(self, entity: str, current_status: str, action: str):
        self.entity = entity
        self.current_status = current_status
        self.action = action
        super().__init__(f'Cannot {action} {entity} in status {current_status}')


class QuantityExceedsRequestError(CentralInventoryError):
    code = 'QUANTITY_EXCEEDS_REQUEST'

    def __init__(self, item_id: object, quantity: int, ceiling: int):
        self.item_id = item_id
        self.quantity = quantity
        self.ceiling = ceiling
        super().__init__(f'Quantity {quantity} exceeds allowed {ceiling} for item {item_id}')


class InsufficientStockError(CentralInventoryError):
    code = 'INSUFFICIENT_STOCK'

    def __init__(self, part_id: str, requested: int, available: int):
        self.part_id = part_id
        self.requested = requested
        self.available = available
        super().__init__(f'Insufficient stock for part {part_id}: requested {requested}, available {available}')


class ValidationError(CentralInventoryError):
    code = 'VALIDATION_ERROR'


class PermissionDeniedError(CentralInventoryError):
    code = 'PERMISSION_DENIED'

    def __init__(self, actor_id: str, action: str):
        self.actor_id = actor_id
        self.action = action
        super().__init__(f'Actor {actor_id} may not {action}')


class UpstreamError(CentralInventoryError):
    code = 'UPSTREAM_ERROR'
