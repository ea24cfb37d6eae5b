"""Stock-in commit: turns composed batches into inventory.

The commit runs in three phases:

1. Checks with no writes: the request must be pending, the batches well formed,
   and none of their barcodes already in inventory.
2. The request moves from ``pending`` to ``processing`` through a conditional
   update, committed on its own. Only one concurrent commit can win it; the
   others fail with ``STOCK_IN_NOT_PENDING`` before writing anything.
3. The detail, inventory and batch-link rows, the barcode log entries and the
   ``completed`` status are written in a single transaction.

If phase 3 fails, the transaction is rolled back and the request is put back
to ``pending``. A unique-constraint violation on ``inventory.barcode`` during
phase 3 is reported the same way as a pre-check duplicate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from app.wms.core.error_catalog import AppError, ErrorCatalog
from app.wms.core.logging import log_json
from app.wms.core.metrics import metrics
from app.wms.db.models import BatchInventoryItem, InventoryItem, StockIn, StockInDetail
from app.wms.repos.catalog import CatalogRepository
from app.wms.repos.inventory import InventoryRepository
from app.wms.repos.stock_in import StockInRepository
from app.wms.services.audit import BarcodeAuditService, BarcodeEvent
from app.wms.services.barcodes import validate_barcode
from app.wms.services.batch_composer import Batch

logger = logging.getLogger(__name__)

_UNIQUE_BARCODE_CONSTRAINT = "uq_inventory_barcode"


@dataclass(frozen=True)
class Box:
    barcode: str
    quantity: int
    product_id: object
    warehouse_id: object
    location_id: object
    color: str | None = None
    size: str | None = None


@dataclass
class CommitResult:
    success: bool
    stock_in_id: str
    boxes_committed: int = 0
    total_quantity: int = 0
    barcodes: list[str] = field(default_factory=list)
    duplicate_barcodes: list[str] = field(default_factory=list)


def expand_batches(batches: list[Batch]) -> list[Box]:
    return [
        Box(
            barcode=barcode,
            quantity=batch.quantity_per_box,
            product_id=batch.product_id,
            warehouse_id=batch.warehouse_id,
            location_id=batch.location_id,
            color=batch.color,
            size=batch.size,
        )
        for batch in batches
        for barcode in batch.barcodes
    ]


def _is_barcode_conflict(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    return _UNIQUE_BARCODE_CONSTRAINT in message or "inventory.barcode" in message


class StockInCommitService:
    def __init__(self, db, *, audit: BarcodeAuditService | None = None):
        self.db = db
        self.repo = StockInRepository(db)
        self.inventory_repo = InventoryRepository(db)
        self.catalog_repo = CatalogRepository(db)
        self.audit = audit or BarcodeAuditService(db)

    def commit(self, stock_in_id, batches: list[Batch], submitter_id: str) -> CommitResult:
        try:
            stock_in = self._load_pending(stock_in_id)
            self._validate_batches(stock_in, batches)
            boxes = expand_batches(batches)
            duplicates = self._find_duplicates(boxes)
        except AppError:
            self.db.rollback()
            raise
        if duplicates:
            self.db.rollback()
            return self._duplicate_result(stock_in_id, duplicates, phase="pre_check")

        self._mark_processing(stock_in, submitter_id)
        try:
            pairs = self._insert_details(stock_in, boxes, submitter_id)
            items = self._insert_inventory(stock_in, pairs)
            self._insert_batch_links(stock_in, items)
            self._record_audit(stock_in, items, submitter_id)
            self._mark_completed(stock_in)
            barcodes = [item.barcode for item in items]
            total_quantity = sum(item.quantity for item in items)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            self._reset_to_pending(stock_in_id)
            if _is_barcode_conflict(exc):
                existing = self.inventory_repo.existing_barcodes([box.barcode for box in boxes])
                return self._duplicate_result(stock_in_id, existing, phase="insert")
            metrics.record_stock_in_commit("failed")
            raise AppError(
                ErrorCatalog.COMMIT_FAILED,
                details={"stock_in_id": str(stock_in_id), "type": exc.__class__.__name__},
            ) from exc
        except Exception as exc:
            self.db.rollback()
            self._reset_to_pending(stock_in_id)
            metrics.record_stock_in_commit("failed")
            log_json(
                logger,
                {
                    "event": "stock_in.commit.failed",
                    "stock_in_id": str(stock_in_id),
                    "error_class": exc.__class__.__name__,
                },
                level=logging.ERROR,
            )
            raise AppError(
                ErrorCatalog.COMMIT_FAILED,
                details={"stock_in_id": str(stock_in_id), "type": exc.__class__.__name__, "message": str(exc)},
            ) from exc

        metrics.record_stock_in_commit("completed", boxes=len(barcodes))
        log_json(
            logger,
            {
                "event": "stock_in.commit.completed",
                "stock_in_id": str(stock_in_id),
                "boxes": len(barcodes),
                "processed_by": submitter_id,
            },
        )
        return CommitResult(
            success=True,
            stock_in_id=str(stock_in_id),
            boxes_committed=len(barcodes),
            total_quantity=total_quantity,
            barcodes=barcodes,
        )

    def _load_pending(self, stock_in_id) -> StockIn:
        stock_in = self.repo.get(stock_in_id)
        if stock_in is None:
            raise AppError(ErrorCatalog.STOCK_IN_NOT_FOUND, details={"stock_in_id": str(stock_in_id)})
        if stock_in.status != "pending":
            raise AppError(
                ErrorCatalog.STOCK_IN_NOT_PENDING,
                details={"stock_in_id": str(stock_in_id), "status": stock_in.status},
            )
        return stock_in

    def _validate_batches(self, stock_in: StockIn, batches: list[Batch]) -> None:
        if not batches:
            raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "at least one batch is required"})
        for index, batch in enumerate(batches):
            problem = None
            if batch.box_count <= 0 or batch.quantity_per_box <= 0:
                problem = "box_count and quantity_per_box must be greater than 0"
            elif len(batch.barcodes) != batch.box_count:
                problem = "barcode count must equal box_count"
            elif not all(validate_barcode(barcode) for barcode in batch.barcodes):
                problem = "invalid barcode"
            elif str(batch.product_id) != str(stock_in.product_id):
                problem = "batch product does not match the stock-in request"
            else:
                location = self.catalog_repo.get_location(batch.location_id)
                if location is None or str(location.warehouse_id) != str(batch.warehouse_id):
                    problem = "location does not belong to warehouse"
            if problem:
                raise AppError(
                    ErrorCatalog.VALIDATION_ERROR,
                    details={"message": problem, "batch_index": index},
                )

    def _find_duplicates(self, boxes: list[Box]) -> list[str]:
        seen: set[str] = set()
        repeated: set[str] = set()
        for box in boxes:
            if box.barcode in seen:
                repeated.add(box.barcode)
            seen.add(box.barcode)
        existing = self.inventory_repo.existing_barcodes(sorted(seen))
        return sorted(repeated.union(existing))

    def _duplicate_result(self, stock_in_id, duplicates: list[str], *, phase: str) -> CommitResult:
        metrics.record_stock_in_commit("duplicate")
        log_json(
            logger,
            {
                "event": "stock_in.commit.duplicates",
                "stock_in_id": str(stock_in_id),
                "phase": phase,
                "duplicate_barcodes": duplicates,
            },
            level=logging.WARNING,
        )
        return CommitResult(success=False, stock_in_id=str(stock_in_id), duplicate_barcodes=duplicates)

    def _mark_processing(self, stock_in: StockIn, submitter_id: str) -> None:
        now = datetime.utcnow()
        stock_in_id = stock_in.id
        claimed = self.repo.transition(
            stock_in_id,
            from_status="pending",
            status="processing",
            processed_by=submitter_id,
            processing_started_at=now,
            updated_at=now,
        )
        if not claimed:
            self.db.rollback()
            metrics.record_stock_in_commit("conflict")
            raise AppError(
                ErrorCatalog.STOCK_IN_NOT_PENDING,
                details={"stock_in_id": str(stock_in_id), "status": self.repo.get(stock_in_id).status},
            )
        self.db.commit()
        log_json(logger, {"event": "stock_in.commit.processing", "stock_in_id": str(stock_in_id)})

    def _insert_details(
        self, stock_in: StockIn, boxes: list[Box], submitter_id: str
    ) -> list[tuple[Box, StockInDetail]]:
        pairs = [
            (
                box,
                StockInDetail(
                    stock_in_id=stock_in.id,
                    barcode=box.barcode,
                    quantity=box.quantity,
                    color=box.color,
                    size=box.size,
                    product_id=box.product_id,
                    warehouse_id=box.warehouse_id,
                    location_id=box.location_id,
                    created_by=submitter_id,
                ),
            )
            for box in boxes
        ]
        self.db.add_all([detail for _, detail in pairs])
        self.db.flush()
        return pairs

    def _insert_inventory(self, stock_in: StockIn, pairs: list[tuple[Box, StockInDetail]]) -> list[InventoryItem]:
        items = [
            InventoryItem(
                product_id=box.product_id,
                warehouse_id=box.warehouse_id,
                location_id=box.location_id,
                barcode=box.barcode,
                quantity=box.quantity,
                color=box.color,
                size=box.size,
                status="available",
                batch_id=stock_in.id,
                detail=detail,
            )
            for box, detail in pairs
        ]
        self.db.add_all(items)
        self.db.flush()
        return items

    def _insert_batch_links(self, stock_in: StockIn, items: list[InventoryItem]) -> list[BatchInventoryItem]:
        links = [BatchInventoryItem(batch_id=stock_in.id, inventory=item, barcode=item.barcode) for item in items]
        self.db.add_all(links)
        self.db.flush()
        return links

    def _record_audit(self, stock_in: StockIn, items: list[InventoryItem], submitter_id: str) -> None:
        self.audit.record(
            [
                BarcodeEvent(
                    barcode=item.barcode,
                    action="stock_in",
                    user_id=submitter_id,
                    batch_id=stock_in.id,
                    details={
                        "product_id": str(item.product_id),
                        "warehouse_id": str(item.warehouse_id),
                        "location_id": str(item.location_id),
                        "quantity": item.quantity,
                        "color": item.color,
                        "size": item.size,
                    },
                )
                for item in items
            ]
        )

    def _mark_completed(self, stock_in: StockIn) -> None:
        now = datetime.utcnow()
        stock_in.status = "completed"
        stock_in.processing_completed_at = now
        stock_in.updated_at = now

    def _reset_to_pending(self, stock_in_id) -> None:
        try:
            stock_in = self.repo.get(stock_in_id)
            if stock_in is None:
                return
            stock_in.status = "pending"
            stock_in.processed_by = None
            stock_in.processing_started_at = None
            stock_in.updated_at = datetime.utcnow()
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Failed to reset stock-in to pending", extra={"stock_in_id": str(stock_in_id)})
            return
        log_json(
            logger,
            {"event": "stock_in.commit.reset", "stock_in_id": str(stock_in_id)},
            level=logging.WARNING,
        )
