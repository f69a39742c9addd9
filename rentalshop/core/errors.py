from typing import Any, Optional
from fastapi import status


class ErrorCode:
    """Centralized error codes returned in the ``code`` field of error envelopes"""

    # Validation
    INVALID_PAYLOAD = "INVALID_PAYLOAD"
    INVALID_QUERY = "INVALID_QUERY"
    INVALID_ORDER_ID_FORMAT = "INVALID_ORDER_ID_FORMAT"
    INVALID_DATE_FORMAT = "INVALID_DATE_FORMAT"
    INVALID_DATE_RANGE = "INVALID_DATE_RANGE"

    # Auth
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    CANNOT_ACCESS_ORDER_FROM_OTHER_OUTLET = "CANNOT_ACCESS_ORDER_FROM_OTHER_OUTLET"
    CANNOT_UPDATE_ORDER_FROM_OTHER_OUTLET = "CANNOT_UPDATE_ORDER_FROM_OTHER_OUTLET"
    CANNOT_UPDATE_ORDER_FROM_OTHER_MERCHANT = "CANNOT_UPDATE_ORDER_FROM_OTHER_MERCHANT"

    # Not found
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    NO_DATA_AVAILABLE = "NO_DATA_AVAILABLE"

    # Conflict
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"

    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


ERROR_MESSAGES = {
    ErrorCode.INVALID_PAYLOAD: "Invalid request payload",
    ErrorCode.INVALID_QUERY: "Invalid query parameters",
    ErrorCode.INVALID_ORDER_ID_FORMAT: "Invalid order ID format",
    ErrorCode.INVALID_DATE_FORMAT: "Invalid date format",
    ErrorCode.INVALID_DATE_RANGE: "Invalid date range",
    ErrorCode.UNAUTHORIZED: "Invalid authentication credentials",
    ErrorCode.FORBIDDEN: "Insufficient permissions",
    ErrorCode.CANNOT_ACCESS_ORDER_FROM_OTHER_OUTLET: "You can only view orders from your own outlet",
    ErrorCode.CANNOT_UPDATE_ORDER_FROM_OTHER_OUTLET: (
        "Cannot update order from other outlet. You can only update orders from your assigned outlet."
    ),
    ErrorCode.CANNOT_UPDATE_ORDER_FROM_OTHER_MERCHANT: "Cannot update order from outlet of different merchant.",
    ErrorCode.ORDER_NOT_FOUND: "Order not found",
    ErrorCode.NO_DATA_AVAILABLE: "No data available - user not assigned to merchant/outlet",
    ErrorCode.INVALID_STATUS_TRANSITION: "Invalid order status transition",
    ErrorCode.INTERNAL_SERVER_ERROR: "Internal server error",
}


class ApiError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, code: str, message: Optional[str] = None, details: Any = None):
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, code)
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {
            "success": False,
            "error": self.message,
            "code": self.code,
            "message": self.message,
        }
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(ApiError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ApiError):
    status_code = status.HTTP_409_CONFLICT
