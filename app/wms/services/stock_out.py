"""Stock-out requests and their approval.

An approval validates every scanned barcode before anything is written. The
write pass then runs as one transaction. If it fails, nothing is kept and the
request goes back to ``pending``, the same policy as the stock-in commit.
The move out of ``pending`` is a conditional update, so only one of two
concurrent approvals of the same request gets to deduct stock.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from app.wms.core.error_catalog import AppError, ErrorCatalog
from app.wms.core.logging import log_json
from app.wms.core.metrics import metrics
from app.wms.db.models import (
    STOCK_OUT_STATUSES,
    InventoryItem,
    StockOut,
    StockOutDetail,
    StockOutLine,
    StockOutProcessedItem,
)
from app.wms.repos.catalog import CatalogRepository
from app.wms.repos.inventory import InventoryRepository
from app.wms.repos.stock_out import StockOutQueryFilters, StockOutRepository
from app.wms.services.audit import BarcodeAuditService, BarcodeEvent

logger = logging.getLogger(__name__)

DEDUCTIBLE_STATUSES = ("available", "reserved")


@dataclass(frozen=True)
class DeductedBatch:
    barcode: str
    quantity_deducted: int


@dataclass(frozen=True)
class PlannedDeduction:
    barcode: str
    quantity: int
    inventory_id: object
    product_id: object


@dataclass
class ApprovalResult:
    success: bool
    stock_out_id: str
    message: str
    processed_barcodes: list[str] = field(default_factory=list)
    total_deducted: int = 0


class StockOutService:
    def __init__(self, db):
        self.db = db
        self.repo = StockOutRepository(db)
        self.catalog_repo = CatalogRepository(db)

    def create_request(
        self,
        *,
        lines: list[tuple[object, int]],
        requested_by: str,
        reference_number: str | None = None,
        notes: str | None = None,
    ) -> StockOut:
        if not lines:
            raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "at least one product line is required"})
        for product_id, quantity in lines:
            if self.catalog_repo.get_product(product_id) is None:
                raise AppError(
                    ErrorCatalog.VALIDATION_ERROR,
                    details={"message": "product not found", "product_id": str(product_id)},
                )
            if quantity <= 0:
                raise AppError(
                    ErrorCatalog.VALIDATION_ERROR,
                    details={"message": "requested quantity must be greater than 0", "product_id": str(product_id)},
                )
        stock_out = StockOut(
            reference_number=reference_number,
            status="pending",
            requested_by=requested_by,
            notes=notes,
        )
        stock_out.lines = [
            StockOutLine(product_id=product_id, requested_quantity=quantity) for product_id, quantity in lines
        ]
        self.db.add(stock_out)
        self.db.commit()
        self.db.refresh(stock_out)
        log_json(
            logger,
            {"event": "stock_out.created", "stock_out_id": str(stock_out.id), "requested_by": requested_by},
        )
        return stock_out

    def get(self, stock_out_id) -> StockOut:
        stock_out = self.repo.get(stock_out_id)
        if stock_out is None:
            raise AppError(ErrorCatalog.STOCK_OUT_NOT_FOUND, details={"stock_out_id": str(stock_out_id)})
        return stock_out

    def list_requests(
        self, filters: StockOutQueryFilters, *, page: int = 1, page_size: int = 50
    ) -> tuple[list[StockOut], int]:
        if filters.status and filters.status not in STOCK_OUT_STATUSES:
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={"message": "unknown status", "status": filters.status, "allowed": list(STOCK_OUT_STATUSES)},
            )
        return self.repo.list_requests(filters, page=page, page_size=page_size)


class StockOutApprovalService:
    def __init__(self, db, *, audit: BarcodeAuditService | None = None):
        self.db = db
        self.repo = StockOutRepository(db)
        self.inventory_repo = InventoryRepository(db)
        self.audit = audit or BarcodeAuditService(db)

    def approve(self, stock_out_id, deducted_batches: list[DeductedBatch], user_id: str) -> ApprovalResult:
        stock_out = self.repo.get(stock_out_id)
        if stock_out is None:
            raise AppError(ErrorCatalog.STOCK_OUT_NOT_FOUND, details={"stock_out_id": str(stock_out_id)})
        if stock_out.status != "pending":
            raise AppError(
                ErrorCatalog.STOCK_OUT_NOT_PENDING,
                details={"stock_out_id": str(stock_out_id), "status": stock_out.status},
            )
        lines = self.repo.get_lines(stock_out_id)
        if not lines:
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={"message": "stock-out request has no products", "stock_out_id": str(stock_out_id)},
            )

        requested = sum(line.requested_quantity for line in lines)
        deducted = sum(batch.quantity_deducted for batch in deducted_batches)
        if deducted < requested:
            metrics.record_stock_out_approval("insufficient")
            raise AppError(
                ErrorCatalog.INSUFFICIENT_QUANTITY,
                details={
                    "message": f"Insufficient quantity. Need {requested}, have {deducted}",
                    "requested_quantity": requested,
                    "deducted_quantity": deducted,
                },
            )

        plan = self._validate(deducted_batches, {str(line.product_id) for line in lines})
        product_names = ", ".join(line.product.name for line in lines if line.product is not None)
        reference_number = stock_out.reference_number

        self._mark_processing(stock_out, user_id)
        try:
            self._write(stock_out, plan, user_id)
            self.db.commit()
        except Exception as exc:
            self.db.rollback()
            self._reset_to_pending(stock_out_id)
            metrics.record_stock_out_approval("failed")
            log_json(
                logger,
                {
                    "event": "stock_out.approve.failed",
                    "stock_out_id": str(stock_out_id),
                    "error_class": exc.__class__.__name__,
                },
                level=logging.ERROR,
            )
            if isinstance(exc, AppError):
                raise
            raise AppError(
                ErrorCatalog.APPROVAL_FAILED,
                details={"stock_out_id": str(stock_out_id), "type": exc.__class__.__name__, "message": str(exc)},
            ) from exc

        metrics.record_stock_out_approval("completed")
        log_json(
            logger,
            {
                "event": "stock_out.approve.completed",
                "stock_out_id": str(stock_out_id),
                "barcodes": len(plan),
                "total_deducted": deducted,
                "processed_by": user_id,
            },
        )
        label = reference_number or str(stock_out_id)
        return ApprovalResult(
            success=True,
            stock_out_id=str(stock_out_id),
            message=f"Processed {len(plan)} batches of {product_names or 'products'} for stock-out {label}",
            processed_barcodes=[entry.barcode for entry in plan],
            total_deducted=deducted,
        )

    def _validate(self, deducted_batches: list[DeductedBatch], product_ids: set[str]) -> list[PlannedDeduction]:
        totals: dict[str, int] = {}
        for batch in deducted_batches:
            barcode = (batch.barcode or "").strip()
            if not barcode:
                raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "barcode is required"})
            if batch.quantity_deducted <= 0:
                raise AppError(
                    ErrorCatalog.VALIDATION_ERROR,
                    details={"message": "quantity_deducted must be greater than 0", "barcode": barcode},
                )
            totals[barcode] = totals.get(barcode, 0) + batch.quantity_deducted

        plan = []
        for barcode, quantity in totals.items():
            inventory = self.inventory_repo.get_by_barcode(barcode)
            if inventory is None:
                raise AppError(ErrorCatalog.BARCODE_NOT_FOUND, details={"barcode": barcode})
            if inventory.status not in DEDUCTIBLE_STATUSES:
                raise AppError(
                    ErrorCatalog.VALIDATION_ERROR,
                    details={"message": "inventory record is not available", "barcode": barcode, "status": inventory.status},
                )
            if quantity > inventory.quantity:
                raise AppError(
                    ErrorCatalog.INSUFFICIENT_QUANTITY,
                    details={
                        "message": f"Insufficient quantity for barcode {barcode}",
                        "barcode": barcode,
                        "available_quantity": inventory.quantity,
                        "deducted_quantity": quantity,
                    },
                )
            if str(inventory.product_id) not in product_ids:
                raise AppError(
                    ErrorCatalog.PRODUCT_MISMATCH,
                    details={"barcode": barcode, "product_id": str(inventory.product_id)},
                )
            plan.append(
                PlannedDeduction(
                    barcode=barcode,
                    quantity=quantity,
                    inventory_id=inventory.id,
                    product_id=inventory.product_id,
                )
            )
        return plan

    def _mark_processing(self, stock_out: StockOut, user_id: str) -> None:
        stock_out_id = stock_out.id
        claimed = self.repo.transition(
            stock_out_id,
            from_status="pending",
            status="processing",
            processed_by=user_id,
            updated_at=datetime.utcnow(),
        )
        if not claimed:
            self.db.rollback()
            metrics.record_stock_out_approval("conflict")
            raise AppError(
                ErrorCatalog.STOCK_OUT_NOT_PENDING,
                details={"stock_out_id": str(stock_out_id), "status": self.repo.get(stock_out_id).status},
            )
        self.db.commit()

    def _write(self, stock_out: StockOut, plan: list[PlannedDeduction], user_id: str) -> None:
        now = datetime.utcnow()
        stock_out.status = "completed"
        stock_out.processed_at = now
        stock_out.updated_at = now

        for entry in plan:
            inventory = self.inventory_repo.get_by_barcode(entry.barcode, for_update=True)
            if inventory is None or inventory.quantity < entry.quantity:
                raise AppError(
                    ErrorCatalog.INSUFFICIENT_QUANTITY,
                    details={
                        "message": f"Inventory changed during approval for barcode {entry.barcode}",
                        "barcode": entry.barcode,
                    },
                )
            self._deduct(inventory, entry.quantity, now)
            self.db.add_all(
                [
                    StockOutDetail(
                        stock_out_id=stock_out.id,
                        product_id=entry.product_id,
                        barcode=entry.barcode,
                        quantity=entry.quantity,
                        processed_by=user_id,
                        processed_at=now,
                    ),
                    StockOutProcessedItem(
                        stock_out_id=stock_out.id,
                        inventory_id=entry.inventory_id,
                        product_id=entry.product_id,
                        barcode=entry.barcode,
                        quantity=entry.quantity,
                        processed_by=user_id,
                        processed_at=now,
                    ),
                ]
            )
        self.db.flush()

        if stock_out.reference_number:
            self._complete_inquiries(stock_out.reference_number, now)
        self.audit.record(
            [
                BarcodeEvent(
                    barcode=entry.barcode,
                    action="stock_out",
                    user_id=user_id,
                    details={"stock_out_id": str(stock_out.id), "quantity": entry.quantity},
                )
                for entry in plan
            ]
        )

    @staticmethod
    def _deduct(inventory: InventoryItem, quantity: int, now: datetime) -> None:
        inventory.quantity -= quantity
        if inventory.quantity == 0:
            inventory.status = "sold"
        inventory.updated_at = now

    def _complete_inquiries(self, reference_number: str, now: datetime) -> None:
        try:
            with self.db.begin_nested():
                for inquiry in self.repo.inquiries_for_reference(reference_number):
                    inquiry.status = "completed"
                    inquiry.updated_at = now
                self.db.flush()
        except Exception:
            logger.exception(
                "Failed to update customer inquiries",
                extra={"reference_number": reference_number},
            )

    def _reset_to_pending(self, stock_out_id) -> None:
        try:
            stock_out = self.repo.get(stock_out_id)
            if stock_out is None:
                return
            stock_out.status = "pending"
            stock_out.processed_by = None
            stock_out.processed_at = None
            stock_out.updated_at = datetime.utcnow()
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Failed to reset stock-out to pending", extra={"stock_out_id": str(stock_out_id)})
