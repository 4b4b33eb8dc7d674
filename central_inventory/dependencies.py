from fastapi import HTTPException, status

from central_inventory.exceptions import (
    CentralInventoryError,
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    QuantityExceedsRequestError,
    UpstreamError,
    ValidationError,
)

ERROR_STATUS_CODES: dict[type[CentralInventoryError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    InsufficientStockError: status.HTTP_409_CONFLICT,
    QuantityExceedsRequestError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    UpstreamError: status.HTTP_502_BAD_GATEWAY,
}


def http_error(exc: CentralInventoryError) -> HTTPException:
    status_code = ERROR_STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=status_code, detail={'code': exc.code, 'message': exc.message})
