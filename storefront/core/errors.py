"""
Error taxonomy for the storefront API.

Each error carries an HTTP status and a stable `code`. They subclass
HTTPException so FastAPI renders them even without the custom handler
registered in storefront.main; the handler adds the `code` field.
"""
from typing import Optional

from fastapi import HTTPException, status


class StoreError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL"
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, headers: Optional[dict] = None):
        self.message = message or self.default_message
        super().__init__(status_code=self.status_code, detail=self.message, headers=headers)


class Unauthorized(StoreError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    default_message = "Unauthorized"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(StoreError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    default_message = "Admin privileges required"


class InvalidInput(StoreError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_INPUT"
    default_message = "Invalid input"


class EmptyCart(StoreError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "EMPTY_CART"
    default_message = "Cart is empty"


class InvalidTotal(StoreError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_TOTAL"
    default_message = "Invalid total"


class InsufficientStock(StoreError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INSUFFICIENT_STOCK"
    default_message = "Insufficient stock"


class NotFound(StoreError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Not found"


class InvalidTransition(StoreError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_TRANSITION"
    default_message = "Cannot downgrade status"


class OptimisticLockError(StoreError):
    status_code = status.HTTP_409_CONFLICT
    code = "VERSION_CONFLICT"
    default_message = "Version mismatch"


class PaymentDeclined(StoreError):
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    code = "PAYMENT_DECLINED"
    default_message = "Payment declined"


class PaymentGatewayError(StoreError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "PAYMENT_GATEWAY_ERROR"
    default_message = "Payment gateway error"


class PersistenceFailure(StoreError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "PERSISTENCE_FAILURE"
    default_message = "Storage error"
