from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class StockInCreateRequest(BaseModel):
    product_id: UUID
    boxes: int = Field(gt=0)
    source: str | None = None
    notes: str | None = None


class StockInRow(BaseModel):
    id: str
    product_id: str
    product_name: str | None
    boxes: int
    status: str
    source: str | None
    notes: str | None
    submitted_by: str
    processed_by: str | None
    rejection_reason: str | None
    processing_started_at: datetime | None
    processing_completed_at: datetime | None
    created_at: datetime
    updated_at: datetime | None


class StockInDetailRow(BaseModel):
    barcode: str
    quantity: int
    color: str | None
    size: str | None
    warehouse_id: str
    location_id: str
    created_at: datetime


class StockInDetailResponse(BaseModel):
    request: StockInRow
    boxes_committed: int
    details: list[StockInDetailRow]


class ListMeta(BaseModel):
    page: int
    page_size: int
    total: int


class StockInListResponse(BaseModel):
    meta: ListMeta
    rows: list[StockInRow]


class StockInRejectRequest(BaseModel):
    reason: str = Field(min_length=1)


class BatchInput(BaseModel):
    warehouse_id: UUID
    location_id: UUID
    box_count: int = Field(gt=0)
    quantity_per_box: int = Field(gt=0)
    color: str | None = None
    size: str | None = None


class BatchComposeRequest(BaseModel):
    batches: list[BatchInput] = Field(min_length=1)


class BatchOut(BaseModel):
    product_id: str
    warehouse_id: str
    location_id: str
    box_count: int
    quantity_per_box: int
    total_quantity: int
    color: str | None
    size: str | None
    barcodes: list[str]


class BatchComposeResponse(BaseModel):
    stock_in_id: str
    total_boxes: int
    remaining_boxes: int | None
    batches: list[BatchOut]


class CommitBatch(BatchInput):
    product_id: UUID | None = None
    barcodes: list[str] = Field(min_length=1)


class StockInCommitRequest(BaseModel):
    batches: list[CommitBatch] = Field(min_length=1)


class StockInCommitResponse(BaseModel):
    stock_in_id: str
    status: str
    boxes_committed: int
    total_quantity: int
    barcodes: list[str]
    trace_id: str
