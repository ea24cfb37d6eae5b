from sqlalchemy import select

from app.wms.db.models import BarcodeLog


class BarcodeLogRepository:
    def __init__(self, db):
        self.db = db

    def add_all(self, entries: list[BarcodeLog]) -> None:
        self.db.add_all(entries)
        self.db.flush()

    def create(self, entry: BarcodeLog) -> BarcodeLog:
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def history(self, barcode: str, *, limit: int = 100) -> list[BarcodeLog]:
        stmt = (
            select(BarcodeLog)
            .where(BarcodeLog.barcode == barcode)
            .order_by(BarcodeLog.created_at.desc())
            .limit(limit)
        )
        return self.db.execute(stmt).scalars().all()
