from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, select, update

from app.wms.db.models import StockIn, StockInDetail


@dataclass(frozen=True)
class StockInQueryFilters:
    status: str | None = None
    submitted_by: str | None = None
    product_id: str | None = None


class StockInRepository:
    def __init__(self, db):
        self.db = db

    def get(self, stock_in_id) -> StockIn | None:
        return self.db.execute(select(StockIn).where(StockIn.id == stock_in_id)).scalars().first()

    def transition(self, stock_in_id, *, from_status: str, **values) -> bool:
        """Apply ``values`` only if the request is still ``from_status``; returns whether it was."""
        result = self.db.execute(
            update(StockIn)
            .where(StockIn.id == stock_in_id, StockIn.status == from_status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def list_requests(
        self, filters: StockInQueryFilters, *, page: int, page_size: int
    ) -> tuple[list[StockIn], int]:
        query = select(StockIn)
        if filters.status:
            query = query.where(StockIn.status == filters.status)
        if filters.submitted_by:
            query = query.where(StockIn.submitted_by == filters.submitted_by)
        if filters.product_id:
            query = query.where(StockIn.product_id == filters.product_id)
        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar_one()
        rows = (
            self.db.execute(
                query.order_by(StockIn.created_at.desc()).offset((page - 1) * page_size).limit(page_size)
            )
            .scalars()
            .all()
        )
        return rows, int(total)

    def get_details(self, stock_in_id) -> list[StockInDetail]:
        return (
            self.db.execute(
                select(StockInDetail)
                .where(StockInDetail.stock_in_id == stock_in_id)
                .order_by(StockInDetail.created_at, StockInDetail.barcode)
            )
            .scalars()
            .all()
        )
