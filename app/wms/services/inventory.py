from __future__ import annotations

import logging
from datetime import datetime

from app.wms.core.error_catalog import AppError, ErrorCatalog
from app.wms.core.logging import log_json
from app.wms.db.models import INVENTORY_STATUSES, InventoryItem
from app.wms.repos.catalog import CatalogRepository
from app.wms.repos.inventory import InventoryQueryFilters, InventoryRepository
from app.wms.services.audit import BarcodeAuditService, BarcodeEvent

logger = logging.getLogger(__name__)

TRANSFERABLE_STATUSES = ("available", "reserved", "damaged")


class InventoryService:
    def __init__(self, db, *, audit: BarcodeAuditService | None = None):
        self.db = db
        self.repo = InventoryRepository(db)
        self.catalog_repo = CatalogRepository(db)
        self.audit = audit or BarcodeAuditService(db)

    def list_inventory(
        self,
        filters: InventoryQueryFilters,
        *,
        page: int = 1,
        page_size: int = 50,
        sort_by: str = "created_at",
        sort_dir: str = "desc",
    ):
        if filters.status and filters.status not in INVENTORY_STATUSES:
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={"message": "unknown status", "status": filters.status, "allowed": list(INVENTORY_STATUSES)},
            )
        return self.repo.list_inventory(filters, page=page, page_size=page_size, sort_by=sort_by, sort_dir=sort_dir)

    def transfer(self, barcode: str, *, warehouse_id, location_id, user_id: str) -> InventoryItem:
        item = self.repo.get_by_barcode(barcode, for_update=True)
        if item is None:
            raise AppError(ErrorCatalog.BARCODE_NOT_FOUND, details={"barcode": barcode})
        if item.status not in TRANSFERABLE_STATUSES:
            raise AppError(
                ErrorCatalog.INVENTORY_NOT_TRANSFERABLE,
                details={"barcode": barcode, "status": item.status},
            )
        location = self.catalog_repo.get_location(location_id)
        if location is None or str(location.warehouse_id) != str(warehouse_id):
            raise AppError(
                ErrorCatalog.VALIDATION_ERROR,
                details={"message": "location does not belong to warehouse", "location_id": str(location_id)},
            )

        before = {"warehouse_id": str(item.warehouse_id), "location_id": str(item.location_id)}
        item.warehouse_id = location.warehouse_id
        item.location_id = location.id
        item.updated_at = datetime.utcnow()
        self.db.flush()
        self.audit.record(
            [
                BarcodeEvent(
                    barcode=item.barcode,
                    action="transfer",
                    user_id=user_id,
                    batch_id=item.batch_id,
                    details={"from": before, "to": {"warehouse_id": str(warehouse_id), "location_id": str(location_id)}},
                )
            ]
        )
        self.db.commit()
        self.db.refresh(item)
        log_json(
            logger,
            {"event": "inventory.transferred", "barcode": barcode, "location_id": str(location_id), "user_id": user_id},
        )
        return item
