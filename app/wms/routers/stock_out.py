from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request

from app.wms.core.config import settings
from app.wms.core.context import RequestContext
from app.wms.core.deps import require_actor
from app.wms.db.models import StockOut
from app.wms.db.session import get_db
from app.wms.repos.stock_out import StockOutQueryFilters
from app.wms.schemas.errors import ApiErrorResponse, InsufficientQuantityResponse
from app.wms.schemas.stock_in import ListMeta
from app.wms.schemas.stock_out import (
    StockOutApproveRequest,
    StockOutApproveResponse,
    StockOutCreateRequest,
    StockOutDetailResponse,
    StockOutDetailRow,
    StockOutLineRow,
    StockOutListResponse,
    StockOutRow,
)
from app.wms.services.idempotency import start_idempotent_request
from app.wms.services.stock_out import DeductedBatch, StockOutApprovalService, StockOutService


router = APIRouter()


def _stock_out_row(stock_out: StockOut) -> StockOutRow:
    lines = [
        StockOutLineRow(
            product_id=str(line.product_id),
            product_name=line.product.name if line.product is not None else None,
            requested_quantity=line.requested_quantity,
        )
        for line in stock_out.lines
    ]
    return StockOutRow(
        id=str(stock_out.id),
        reference_number=stock_out.reference_number,
        status=stock_out.status,
        requested_by=stock_out.requested_by,
        processed_by=stock_out.processed_by,
        processed_at=stock_out.processed_at,
        notes=stock_out.notes,
        requested_quantity=sum(line.requested_quantity for line in lines),
        lines=lines,
        created_at=stock_out.created_at,
        updated_at=stock_out.updated_at,
    )


@router.post("/wms/stock-out", response_model=StockOutRow, status_code=201)
def create_stock_out(
    request: Request,
    payload: StockOutCreateRequest,
    actor: RequestContext = Depends(require_actor),
    db=Depends(get_db),
):
    context, replay = start_idempotent_request(request, db, payload.model_dump(mode="json"))
    if replay:
        return replay

    stock_out = StockOutService(db).create_request(
        lines=[(line.product_id, line.requested_quantity) for line in payload.lines],
        requested_by=actor.user_id,
        reference_number=payload.reference_number,
        notes=payload.notes,
    )
    response = _stock_out_row(stock_out)
    context.record_success(status_code=201, response_body=response.model_dump(mode="json"))
    return response


@router.get("/wms/stock-out", response_model=StockOutListResponse)
def list_stock_out(
    db=Depends(get_db),
    status: str | None = None,
    requested_by: str | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=settings.LIST_MAX_PAGE_SIZE),
):
    filters = StockOutQueryFilters(status=status, requested_by=requested_by)
    rows, total = StockOutService(db).list_requests(filters, page=page, page_size=page_size)
    return StockOutListResponse(
        meta=ListMeta(page=page, page_size=page_size, total=total),
        rows=[_stock_out_row(row) for row in rows],
    )


@router.get("/wms/stock-out/{stock_out_id}", response_model=StockOutDetailResponse)
def get_stock_out(stock_out_id: UUID, db=Depends(get_db)):
    service = StockOutService(db)
    stock_out = service.get(stock_out_id)
    return StockOutDetailResponse(
        request=_stock_out_row(stock_out),
        details=[
            StockOutDetailRow(
                barcode=detail.barcode,
                product_id=str(detail.product_id),
                quantity=detail.quantity,
                processed_by=detail.processed_by,
                processed_at=detail.processed_at,
            )
            for detail in service.repo.get_details(stock_out_id)
        ],
    )


@router.post(
    "/wms/stock-out/{stock_out_id}/approve",
    response_model=StockOutApproveResponse,
    responses={
        404: {"model": ApiErrorResponse},
        409: {"model": ApiErrorResponse},
        422: {"model": InsufficientQuantityResponse},
        500: {"model": ApiErrorResponse},
    },
)
def approve_stock_out(
    request: Request,
    stock_out_id: UUID,
    payload: StockOutApproveRequest,
    actor: RequestContext = Depends(require_actor),
    db=Depends(get_db),
):
    context, replay = start_idempotent_request(request, db, payload.model_dump(mode="json"))
    if replay:
        return replay

    result = StockOutApprovalService(db).approve(
        stock_out_id,
        [
            DeductedBatch(barcode=batch.barcode, quantity_deducted=batch.quantity_deducted)
            for batch in payload.deducted_batches
        ],
        actor.user_id,
    )
    response = StockOutApproveResponse(
        stock_out_id=result.stock_out_id,
        status="completed",
        message=result.message,
        processed_barcodes=result.processed_barcodes,
        total_deducted=result.total_deducted,
        trace_id=actor.trace_id,
    )
    context.record_success(status_code=200, response_body=response.model_dump(mode="json"))
    return response
