from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel


class InventoryRow(BaseModel):
    id: str
    barcode: str
    product_id: str
    product_name: str | None
    warehouse_id: str
    location_id: str
    quantity: int
    color: str | None
    size: str | None
    status: str
    batch_id: str | None
    created_at: datetime
    updated_at: datetime | None


class InventoryQueryMeta(BaseModel):
    page: int
    page_size: int
    sort_by: str
    sort_dir: Literal["asc", "desc"]


class InventoryQueryTotals(BaseModel):
    total_rows: int
    total_quantity: int
    total_available: int


class InventoryQueryResponse(BaseModel):
    meta: InventoryQueryMeta
    rows: list[InventoryRow]
    totals: InventoryQueryTotals


class InventoryTransferRequest(BaseModel):
    warehouse_id: UUID
    location_id: UUID


class BarcodeHistoryRow(BaseModel):
    action: str
    user_id: str | None
    batch_id: str | None
    details: dict | None
    created_at: datetime


class BarcodeLookupResponse(BaseModel):
    barcode: str
    display: str
    inventory: InventoryRow | None
    registry_status: str | None
    history: list[BarcodeHistoryRow]


class ItemBarcodeResponse(BaseModel):
    item_id: str
    barcode: str
    display: str
