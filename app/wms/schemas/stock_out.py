from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.wms.schemas.stock_in import ListMeta


class StockOutLineInput(BaseModel):
    product_id: UUID
    requested_quantity: int = Field(gt=0)


class StockOutCreateRequest(BaseModel):
    reference_number: str | None = None
    notes: str | None = None
    lines: list[StockOutLineInput] = Field(min_length=1)


class StockOutLineRow(BaseModel):
    product_id: str
    product_name: str | None
    requested_quantity: int


class StockOutDetailRow(BaseModel):
    barcode: str
    product_id: str
    quantity: int
    processed_by: str
    processed_at: datetime


class StockOutRow(BaseModel):
    id: str
    reference_number: str | None
    status: str
    requested_by: str
    processed_by: str | None
    processed_at: datetime | None
    notes: str | None
    requested_quantity: int
    lines: list[StockOutLineRow]
    created_at: datetime
    updated_at: datetime | None


class StockOutDetailResponse(BaseModel):
    request: StockOutRow
    details: list[StockOutDetailRow]


class StockOutListResponse(BaseModel):
    meta: ListMeta
    rows: list[StockOutRow]


class DeductedBatchInput(BaseModel):
    barcode: str = Field(min_length=1)
    quantity_deducted: int


class StockOutApproveRequest(BaseModel):
    deducted_batches: list[DeductedBatchInput] = Field(min_length=1)


class StockOutApproveResponse(BaseModel):
    stock_out_id: str
    status: str
    message: str
    processed_barcodes: list[str]
    total_deducted: int
    trace_id: str
