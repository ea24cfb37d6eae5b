from dataclasses import dataclass
from fastapi import status


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int


class ErrorCatalog:
    ACTOR_REQUIRED = ErrorDefinition(
        "ACTOR_REQUIRED",
        "Acting user is required",
        status.HTTP_401_UNAUTHORIZED,
    )
    STOCK_IN_NOT_FOUND = ErrorDefinition(
        "STOCK_IN_NOT_FOUND",
        "Stock-in request not found",
        status.HTTP_404_NOT_FOUND,
    )
    STOCK_IN_NOT_PENDING = ErrorDefinition(
        "STOCK_IN_NOT_PENDING",
        "Stock-in request is not pending",
        status.HTTP_409_CONFLICT,
    )
    BOX_LIMIT_EXCEEDED = ErrorDefinition(
        "BOX_LIMIT_EXCEEDED",
        "Box count exceeds the remaining boxes of the stock-in request",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    DUPLICATE_BARCODES = ErrorDefinition(
        "DUPLICATE_BARCODES",
        "One or more barcodes already exist in inventory",
        status.HTTP_409_CONFLICT,
    )
    COMMIT_FAILED = ErrorDefinition(
        "COMMIT_FAILED",
        "Stock-in commit failed; request was reset to pending",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    STOCK_OUT_NOT_FOUND = ErrorDefinition(
        "STOCK_OUT_NOT_FOUND",
        "Stock-out request not found",
        status.HTTP_404_NOT_FOUND,
    )
    STOCK_OUT_NOT_PENDING = ErrorDefinition(
        "STOCK_OUT_NOT_PENDING",
        "Stock-out request is not pending",
        status.HTTP_409_CONFLICT,
    )
    INSUFFICIENT_QUANTITY = ErrorDefinition(
        "INSUFFICIENT_QUANTITY",
        "Insufficient quantity",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    BARCODE_NOT_FOUND = ErrorDefinition(
        "BARCODE_NOT_FOUND",
        "Barcode not found",
        status.HTTP_404_NOT_FOUND,
    )
    PRODUCT_MISMATCH = ErrorDefinition(
        "PRODUCT_MISMATCH",
        "Barcode product is not part of the stock-out request",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    APPROVAL_FAILED = ErrorDefinition(
        "APPROVAL_FAILED",
        "Stock-out approval failed; request was reset to pending",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    INVENTORY_NOT_TRANSFERABLE = ErrorDefinition(
        "INVENTORY_NOT_TRANSFERABLE",
        "Inventory record cannot be transferred in its current status",
        status.HTTP_409_CONFLICT,
    )
    DB_UNAVAILABLE = ErrorDefinition(
        "DB_UNAVAILABLE",
        "Database unavailable",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    LOCK_TIMEOUT = ErrorDefinition(
        "LOCK_TIMEOUT",
        "Lock wait timeout",
        status.HTTP_409_CONFLICT,
    )
    VALIDATION_ERROR = ErrorDefinition(
        "VALIDATION_ERROR",
        "Validation error",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    INTERNAL_ERROR = ErrorDefinition(
        "INTERNAL_ERROR",
        "Internal server error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    IDEMPOTENCY_KEY_REUSED_WITH_DIFFERENT_PAYLOAD = ErrorDefinition(
        "IDEMPOTENCY_KEY_REUSED_WITH_DIFFERENT_PAYLOAD",
        "Idempotency key reused with different payload",
        status.HTTP_409_CONFLICT,
    )
    IDEMPOTENCY_REQUEST_IN_PROGRESS = ErrorDefinition(
        "IDEMPOTENCY_REQUEST_IN_PROGRESS",
        "Idempotency request already in progress",
        status.HTTP_409_CONFLICT,
    )
    IDEMPOTENCY_REPLAY = ErrorDefinition(
        "IDEMPOTENCY_REPLAY",
        "Idempotent replay",
        status.HTTP_200_OK,
    )


class AppError(Exception):
    def __init__(self, error: ErrorDefinition, details: object | None = None):
        self.error = error
        self.details = details
        super().__init__(error.message)
