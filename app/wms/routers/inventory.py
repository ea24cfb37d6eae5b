from datetime import datetime
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.wms.core.config import settings
from app.wms.core.context import RequestContext
from app.wms.core.deps import require_actor
from app.wms.db.models import InventoryItem
from app.wms.db.session import get_db
from app.wms.repos.inventory import InventoryQueryFilters
from app.wms.schemas.inventory import (
    BarcodeHistoryRow,
    BarcodeLookupResponse,
    InventoryQueryMeta,
    InventoryQueryResponse,
    InventoryQueryTotals,
    InventoryRow,
    InventoryTransferRequest,
    ItemBarcodeResponse,
)
from app.wms.services.barcodes import BarcodeService, format_barcode_for_display
from app.wms.services.inventory import InventoryService


router = APIRouter()


def _inventory_row(item: InventoryItem) -> InventoryRow:
    return InventoryRow(
        id=str(item.id),
        barcode=item.barcode,
        product_id=str(item.product_id),
        product_name=item.product.name if item.product is not None else None,
        warehouse_id=str(item.warehouse_id),
        location_id=str(item.location_id),
        quantity=item.quantity,
        color=item.color,
        size=item.size,
        status=item.status,
        batch_id=str(item.batch_id) if item.batch_id else None,
        created_at=item.created_at,
        updated_at=item.updated_at,
    )


@router.get("/wms/inventory", response_model=InventoryQueryResponse)
def list_inventory(
    db=Depends(get_db),
    q: str | None = None,
    barcode: str | None = None,
    product_id: UUID | None = None,
    warehouse_id: UUID | None = None,
    location_id: UUID | None = None,
    status: str | None = None,
    batch_id: UUID | None = None,
    from_date: datetime | None = Query(None, alias="from"),
    to_date: datetime | None = Query(None, alias="to"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=settings.LIST_MAX_PAGE_SIZE),
    sort_by: str = Query("created_at"),
    sort_dir: Literal["asc", "desc"] = "desc",
):
    filters = InventoryQueryFilters(
        q=q,
        barcode=barcode,
        product_id=product_id,
        warehouse_id=warehouse_id,
        location_id=location_id,
        status=status,
        batch_id=batch_id,
        from_date=from_date,
        to_date=to_date,
    )
    rows, totals, resolved_sort_by = InventoryService(db).list_inventory(
        filters,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        sort_dir=sort_dir,
    )
    return InventoryQueryResponse(
        meta=InventoryQueryMeta(page=page, page_size=page_size, sort_by=resolved_sort_by, sort_dir=sort_dir),
        rows=[_inventory_row(row) for row in rows],
        totals=InventoryQueryTotals(**totals),
    )


@router.post("/wms/inventory/{barcode}/transfer", response_model=InventoryRow)
def transfer_inventory(
    barcode: str,
    payload: InventoryTransferRequest,
    actor: RequestContext = Depends(require_actor),
    db=Depends(get_db),
):
    item = InventoryService(db).transfer(
        barcode,
        warehouse_id=payload.warehouse_id,
        location_id=payload.location_id,
        user_id=actor.user_id,
    )
    return _inventory_row(item)


@router.get("/wms/barcodes/{barcode}", response_model=BarcodeLookupResponse)
def lookup_barcode(barcode: str, db=Depends(get_db)):
    found = BarcodeService(db).lookup(barcode)
    return BarcodeLookupResponse(
        barcode=found.barcode,
        display=format_barcode_for_display(found.barcode),
        inventory=_inventory_row(found.inventory) if found.inventory is not None else None,
        registry_status=found.registry.status if found.registry is not None else None,
        history=[
            BarcodeHistoryRow(
                action=entry.action,
                user_id=entry.user_id,
                batch_id=str(entry.batch_id) if entry.batch_id else None,
                details=entry.details,
                created_at=entry.created_at,
            )
            for entry in found.history
        ],
    )


@router.post("/wms/barcodes/items/{item_id}", response_model=ItemBarcodeResponse)
def assign_item_barcode(
    item_id: UUID,
    _actor: RequestContext = Depends(require_actor),
    db=Depends(get_db),
):
    barcode = BarcodeService(db).assign_item_barcode(item_id)
    return ItemBarcodeResponse(item_id=str(item_id), barcode=barcode, display=format_barcode_for_display(barcode))
