from sqlalchemy import select

from app.wms.db.models import Barcode


class BarcodeRegistryRepository:
    def __init__(self, db):
        self.db = db

    def get_by_id(self, item_id) -> Barcode | None:
        return self.db.get(Barcode, item_id)

    def get_by_barcode(self, barcode: str) -> Barcode | None:
        return self.db.execute(select(Barcode).where(Barcode.barcode == barcode)).scalars().first()

    def add(self, entry: Barcode) -> Barcode:
        self.db.add(entry)
        self.db.flush()
        return entry
