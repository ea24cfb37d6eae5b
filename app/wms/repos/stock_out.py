from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, select, update

from app.wms.db.models import CustomerInquiry, StockOut, StockOutDetail, StockOutLine


@dataclass(frozen=True)
class StockOutQueryFilters:
    status: str | None = None
    requested_by: str | None = None


class StockOutRepository:
    def __init__(self, db):
        self.db = db

    def get(self, stock_out_id) -> StockOut | None:
        return self.db.execute(select(StockOut).where(StockOut.id == stock_out_id)).scalars().first()

    def transition(self, stock_out_id, *, from_status: str, **values) -> bool:
        """Apply ``values`` only if the request is still ``from_status``; returns whether it was."""
        result = self.db.execute(
            update(StockOut)
            .where(StockOut.id == stock_out_id, StockOut.status == from_status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def list_requests(
        self, filters: StockOutQueryFilters, *, page: int, page_size: int
    ) -> tuple[list[StockOut], int]:
        query = select(StockOut)
        if filters.status:
            query = query.where(StockOut.status == filters.status)
        if filters.requested_by:
            query = query.where(StockOut.requested_by == filters.requested_by)
        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar_one()
        rows = (
            self.db.execute(
                query.order_by(StockOut.created_at.desc()).offset((page - 1) * page_size).limit(page_size)
            )
            .scalars()
            .all()
        )
        return rows, int(total)

    def get_lines(self, stock_out_id) -> list[StockOutLine]:
        return (
            self.db.execute(select(StockOutLine).where(StockOutLine.stock_out_id == stock_out_id))
            .scalars()
            .all()
        )

    def get_details(self, stock_out_id) -> list[StockOutDetail]:
        return (
            self.db.execute(select(StockOutDetail).where(StockOutDetail.stock_out_id == stock_out_id))
            .scalars()
            .all()
        )

    def inquiries_for_reference(self, reference_number: str) -> list[CustomerInquiry]:
        return (
            self.db.execute(select(CustomerInquiry).where(CustomerInquiry.reference_number == reference_number))
            .scalars()
            .all()
        )
