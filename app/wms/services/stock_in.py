from __future__ import annotations

import logging
from datetime import datetime

from app.wms.core.error_catalog import AppError, ErrorCatalog
from app.wms.core.logging import log_json
from app.wms.db.models import STOCK_IN_STATUSES, StockIn
from app.wms.repos.catalog import CatalogRepository
from app.wms.repos.stock_in import StockInQueryFilters, StockInRepository
from app.wms.services.barcodes import BarcodeGenerator
from app.wms.services.batch_composer import BatchComposer

logger = logging.getLogger(__name__)


class StockInService:
    """Stock-in request lifecycle outside of the commit itself."""

    def __init__(self, db, *, generator: BarcodeGenerator | None = None):
        self.db = db
        self.repo = StockInRepository(db)
        self.catalog_repo = CatalogRepository(db)
        self.generator = generator

    def create_request(
        self,
        *,
        product_id,
        boxes: int,
        submitted_by: str,
        source: str | None = None,
        notes: str | None = None,
    ) -> StockIn:
        if self.catalog_repo.get_product(product_id) is None:
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={"message": "product not found", "product_id": str(product_id)},
            )
        if boxes <= 0:
            raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "boxes must be greater than 0"})
        stock_in = StockIn(
            product_id=product_id,
            boxes=boxes,
            status="pending",
            source=source,
            notes=notes,
            submitted_by=submitted_by,
        )
        self.db.add(stock_in)
        self.db.commit()
        self.db.refresh(stock_in)
        log_json(
            logger,
            {"event": "stock_in.created", "stock_in_id": str(stock_in.id), "boxes": boxes, "submitted_by": submitted_by},
        )
        return stock_in

    def get(self, stock_in_id) -> StockIn:
        stock_in = self.repo.get(stock_in_id)
        if stock_in is None:
            raise AppError(ErrorCatalog.STOCK_IN_NOT_FOUND, details={"stock_in_id": str(stock_in_id)})
        return stock_in

    def list_requests(
        self, filters: StockInQueryFilters, *, page: int = 1, page_size: int = 50
    ) -> tuple[list[StockIn], int]:
        if filters.status and filters.status not in STOCK_IN_STATUSES:
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={"message": "unknown status", "status": filters.status, "allowed": list(STOCK_IN_STATUSES)},
            )
        return self.repo.list_requests(filters, page=page, page_size=page_size)

    def reject(self, stock_in_id, *, reason: str, user_id: str) -> StockIn:
        stock_in = self.get(stock_in_id)
        now = datetime.utcnow()
        rejected = self.repo.transition(
            stock_in_id,
            from_status="pending",
            status="rejected",
            rejection_reason=reason,
            processed_by=user_id,
            processing_completed_at=now,
            updated_at=now,
        )
        if not rejected:
            self.db.rollback()
            raise AppError(
                ErrorCatalog.STOCK_IN_NOT_PENDING,
                details={"stock_in_id": str(stock_in_id), "status": stock_in.status},
            )
        self.db.commit()
        self.db.refresh(stock_in)
        log_json(logger, {"event": "stock_in.rejected", "stock_in_id": str(stock_in_id), "processed_by": user_id})
        return stock_in

    def composer_for(self, stock_in_id) -> BatchComposer:
        """Composer bound to a pending request; its box limit is the request's ``boxes``."""
        stock_in = self.get(stock_in_id)
        if stock_in.status != "pending":
            raise AppError(
                ErrorCatalog.STOCK_IN_NOT_PENDING,
                details={"stock_in_id": str(stock_in_id), "status": stock_in.status},
            )
        return BatchComposer(stock_in.product, generator=self.generator, box_limit=stock_in.boxes)
