from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request

from app.wms.core.config import settings
from app.wms.core.context import RequestContext
from app.wms.core.deps import require_actor
from app.wms.core.error_catalog import AppError, ErrorCatalog
from app.wms.db.models import StockIn
from app.wms.db.session import get_db
from app.wms.repos.stock_in import StockInQueryFilters
from app.wms.schemas.errors import ApiErrorResponse, ApiValidationErrorResponse, DuplicateBarcodesResponse
from app.wms.schemas.stock_in import (
    BatchComposeRequest,
    BatchComposeResponse,
    BatchOut,
    ListMeta,
    StockInCommitRequest,
    StockInCommitResponse,
    StockInCreateRequest,
    StockInDetailResponse,
    StockInDetailRow,
    StockInListResponse,
    StockInRejectRequest,
    StockInRow,
)
from app.wms.services.batch_composer import Batch
from app.wms.services.idempotency import start_idempotent_request
from app.wms.services.stock_in import StockInService
from app.wms.services.stock_in_commit import StockInCommitService


router = APIRouter()


def _stock_in_row(stock_in: StockIn) -> StockInRow:
    return StockInRow(
        id=str(stock_in.id),
        product_id=str(stock_in.product_id),
        product_name=stock_in.product.name if stock_in.product is not None else None,
        boxes=stock_in.boxes,
        status=stock_in.status,
        source=stock_in.source,
        notes=stock_in.notes,
        submitted_by=stock_in.submitted_by,
        processed_by=stock_in.processed_by,
        rejection_reason=stock_in.rejection_reason,
        processing_started_at=stock_in.processing_started_at,
        processing_completed_at=stock_in.processing_completed_at,
        created_at=stock_in.created_at,
        updated_at=stock_in.updated_at,
    )


def _batch_out(batch: Batch) -> BatchOut:
    return BatchOut(
        product_id=str(batch.product_id),
        warehouse_id=str(batch.warehouse_id),
        location_id=str(batch.location_id),
        box_count=batch.box_count,
        quantity_per_box=batch.quantity_per_box,
        total_quantity=batch.total_quantity,
        color=batch.color,
        size=batch.size,
        barcodes=batch.barcodes,
    )


@router.post("/wms/stock-in", response_model=StockInRow, status_code=201)
def create_stock_in(
    request: Request,
    payload: StockInCreateRequest,
    actor: RequestContext = Depends(require_actor),
    db=Depends(get_db),
):
    context, replay = start_idempotent_request(request, db, payload.model_dump(mode="json"))
    if replay:
        return replay

    stock_in = StockInService(db).create_request(
        product_id=payload.product_id,
        boxes=payload.boxes,
        source=payload.source,
        notes=payload.notes,
        submitted_by=actor.user_id,
    )
    response = _stock_in_row(stock_in)
    context.record_success(status_code=201, response_body=response.model_dump(mode="json"))
    return response


@router.get("/wms/stock-in", response_model=StockInListResponse)
def list_stock_in(
    db=Depends(get_db),
    status: str | None = None,
    submitted_by: str | None = None,
    product_id: UUID | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=settings.LIST_MAX_PAGE_SIZE),
):
    filters = StockInQueryFilters(status=status, submitted_by=submitted_by, product_id=product_id)
    rows, total = StockInService(db).list_requests(filters, page=page, page_size=page_size)
    return StockInListResponse(
        meta=ListMeta(page=page, page_size=page_size, total=total),
        rows=[_stock_in_row(row) for row in rows],
    )


@router.get("/wms/stock-in/{stock_in_id}", response_model=StockInDetailResponse)
def get_stock_in(stock_in_id: UUID, db=Depends(get_db)):
    service = StockInService(db)
    stock_in = service.get(stock_in_id)
    details = service.repo.get_details(stock_in_id)
    return StockInDetailResponse(
        request=_stock_in_row(stock_in),
        boxes_committed=len(details),
        details=[
            StockInDetailRow(
                barcode=detail.barcode,
                quantity=detail.quantity,
                color=detail.color,
                size=detail.size,
                warehouse_id=str(detail.warehouse_id),
                location_id=str(detail.location_id),
                created_at=detail.created_at,
            )
            for detail in details
        ],
    )


@router.post(
    "/wms/stock-in/{stock_in_id}/batches/compose",
    response_model=BatchComposeResponse,
    responses={409: {"model": ApiErrorResponse}, 422: {"model": ApiValidationErrorResponse}},
)
def compose_batches(
    stock_in_id: UUID,
    payload: BatchComposeRequest,
    _actor: RequestContext = Depends(require_actor),
    db=Depends(get_db),
):
    composer = StockInService(db).composer_for(stock_in_id)
    for batch in payload.batches:
        composer.add_batch(
            warehouse_id=batch.warehouse_id,
            location_id=batch.location_id,
            box_count=batch.box_count,
            quantity_per_box=batch.quantity_per_box,
            color=batch.color,
            size=batch.size,
        )
    return BatchComposeResponse(
        stock_in_id=str(stock_in_id),
        total_boxes=composer.total_boxes,
        remaining_boxes=composer.remaining_boxes,
        batches=[_batch_out(batch) for batch in composer.batches],
    )


@router.post(
    "/wms/stock-in/{stock_in_id}/commit",
    response_model=StockInCommitResponse,
    responses={
        409: {"model": DuplicateBarcodesResponse},
        422: {"model": ApiValidationErrorResponse},
        500: {"model": ApiErrorResponse},
    },
)
def commit_stock_in(
    request: Request,
    stock_in_id: UUID,
    payload: StockInCommitRequest,
    actor: RequestContext = Depends(require_actor),
    db=Depends(get_db),
):
    context, replay = start_idempotent_request(request, db, payload.model_dump(mode="json"))
    if replay:
        return replay

    stock_in = StockInService(db).get(stock_in_id)
    batches = [
        Batch(
            product_id=batch.product_id or stock_in.product_id,
            warehouse_id=batch.warehouse_id,
            location_id=batch.location_id,
            box_count=batch.box_count,
            quantity_per_box=batch.quantity_per_box,
            color=batch.color,
            size=batch.size,
            barcodes=list(batch.barcodes),
        )
        for batch in payload.batches
    ]
    result = StockInCommitService(db).commit(stock_in_id, batches, actor.user_id)
    if not result.success:
        raise AppError(
            ErrorCatalog.DUPLICATE_BARCODES,
            details={"stock_in_id": result.stock_in_id, "duplicate_barcodes": result.duplicate_barcodes},
        )

    response = StockInCommitResponse(
        stock_in_id=result.stock_in_id,
        status="completed",
        boxes_committed=result.boxes_committed,
        total_quantity=result.total_quantity,
        barcodes=result.barcodes,
        trace_id=actor.trace_id,
    )
    context.record_success(status_code=200, response_body=response.model_dump(mode="json"))
    return response


@router.post("/wms/stock-in/{stock_in_id}/reject", response_model=StockInRow)
def reject_stock_in(
    stock_in_id: UUID,
    payload: StockInRejectRequest,
    actor: RequestContext = Depends(require_actor),
    db=Depends(get_db),
):
    stock_in = StockInService(db).reject(stock_in_id, reason=payload.reason, user_id=actor.user_id)
    return _stock_in_row(stock_in)
