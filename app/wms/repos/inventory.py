from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import case, func, or_, select

from app.wms.db.models import InventoryItem


@dataclass(frozen=True)
class InventoryQueryFilters:
    q: str | None = None
    barcode: str | None = None
    product_id: str | None = None
    warehouse_id: str | None = None
    location_id: str | None = None
    status: str | None = None
    batch_id: str | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None


class InventoryRepository:
    def __init__(self, db):
        self.db = db

    def get_by_barcode(self, barcode: str, *, for_update: bool = False) -> InventoryItem | None:
        stmt = select(InventoryItem).where(InventoryItem.barcode == barcode)
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalars().first()

    def existing_barcodes(self, barcodes: list[str]) -> list[str]:
        if not barcodes:
            return []
        found = (
            self.db.execute(select(InventoryItem.barcode).where(InventoryItem.barcode.in_(barcodes)))
            .scalars()
            .all()
        )
        return sorted(set(found))

    def list_inventory(
        self,
        filters: InventoryQueryFilters,
        *,
        page: int,
        page_size: int,
        sort_by: str,
        sort_dir: str,
    ) -> tuple[list[InventoryItem], dict[str, int], str]:
        base_query = self._apply_filters(filters)
        total_rows = self.db.execute(
            select(func.count()).select_from(base_query.subquery())
        ).scalar_one()

        sort_column = self._resolve_sort_column(sort_by)
        resolved_sort_by = sort_column.key or sort_by
        if sort_dir.lower() == "desc":
            sort_column = sort_column.desc()
        else:
            sort_column = sort_column.asc()

        query = base_query.order_by(sort_column).offset((page - 1) * page_size).limit(page_size)
        rows = self.db.execute(query).scalars().all()

        total_quantity, total_available = self._totals_for_filters(filters)
        totals = {
            "total_rows": total_rows,
            "total_quantity": total_quantity,
            "total_available": total_available,
        }
        return rows, totals, resolved_sort_by

    def _apply_filters(self, filters: InventoryQueryFilters):
        query = select(InventoryItem)
        if filters.q:
            like = f"%{filters.q}%"
            query = query.where(
                or_(
                    InventoryItem.barcode.ilike(like),
                    InventoryItem.color.ilike(like),
                    InventoryItem.size.ilike(like),
                )
            )
        if filters.barcode:
            query = query.where(InventoryItem.barcode == filters.barcode)
        if filters.product_id:
            query = query.where(InventoryItem.product_id == filters.product_id)
        if filters.warehouse_id:
            query = query.where(InventoryItem.warehouse_id == filters.warehouse_id)
        if filters.location_id:
            query = query.where(InventoryItem.location_id == filters.location_id)
        if filters.status:
            query = query.where(InventoryItem.status == filters.status)
        if filters.batch_id:
            query = query.where(InventoryItem.batch_id == filters.batch_id)
        if filters.from_date:
            query = query.where(InventoryItem.created_at >= filters.from_date)
        if filters.to_date:
            query = query.where(InventoryItem.created_at <= filters.to_date)
        return query

    def _totals_for_filters(self, filters: InventoryQueryFilters) -> tuple[int, int]:
        base_query = self._apply_filters(filters).subquery()
        total_quantity_expr = func.coalesce(func.sum(base_query.c.quantity), 0)
        total_available_expr = func.coalesce(
            func.sum(case((base_query.c.status == "available", base_query.c.quantity), else_=0)),
            0,
        )
        total_quantity, total_available = self.db.execute(
            select(total_quantity_expr, total_available_expr)
        ).one()
        return int(total_quantity or 0), int(total_available or 0)

    @staticmethod
    def _resolve_sort_column(sort_by: str):
        mapping = {
            "barcode": InventoryItem.barcode,
            "quantity": InventoryItem.quantity,
            "status": InventoryItem.status,
            "color": InventoryItem.color,
            "size": InventoryItem.size,
            "created_at": InventoryItem.created_at,
            "updated_at": InventoryItem.updated_at,
        }
        return mapping.get(sort_by, InventoryItem.created_at)
