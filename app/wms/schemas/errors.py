from pydantic import BaseModel, ConfigDict


class ApiErrorResponse(BaseModel):
    """Envelope shared by every error the API returns."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "code": "STOCK_IN_NOT_PENDING",
                "message": "Stock-in request is not pending",
                "details": {"stock_in_id": "6f0c4d1e-0000-4000-8000-000000000000", "status": "completed"},
                "trace_id": "b1946ac9-2f4f-4c4b-9d7e-0c1f3c1f2a10",
            }
        }
    )

    code: str
    message: str
    details: dict | None = None
    trace_id: str | None = None


class FieldError(BaseModel):
    field: str | None = None
    message: str
    type: str
    loc: list[str | int] | None = None
    input: object | None = None


class FieldErrorDetails(BaseModel):
    errors: list[FieldError]


class ApiValidationErrorResponse(ApiErrorResponse):
    """422 body: request schema errors carry ``errors``; business rule failures carry ``message``."""

    details: FieldErrorDetails | dict | None = None


class DuplicateBarcodesDetails(BaseModel):
    stock_in_id: str
    duplicate_barcodes: list[str]


class DuplicateBarcodesResponse(ApiErrorResponse):
    details: DuplicateBarcodesDetails


class InsufficientQuantityDetails(BaseModel):
    message: str
    barcode: str | None = None
    requested_quantity: int | None = None
    deducted_quantity: int | None = None
    available_quantity: int | None = None


class InsufficientQuantityResponse(ApiErrorResponse):
    details: InsufficientQuantityDetails
