from sqlalchemy import select

from app.wms.db.models import Product, Warehouse, WarehouseLocation


class CatalogRepository:
    def __init__(self, db):
        self.db = db

    def get_product(self, product_id) -> Product | None:
        return self.db.get(Product, product_id)

    def get_warehouse(self, warehouse_id) -> Warehouse | None:
        return self.db.get(Warehouse, warehouse_id)

    def get_location(self, location_id) -> WarehouseLocation | None:
        return self.db.get(WarehouseLocation, location_id)

    def list_locations(self, warehouse_id) -> list[WarehouseLocation]:
        stmt = (
            select(WarehouseLocation)
            .where(WarehouseLocation.warehouse_id == warehouse_id)
            .order_by(WarehouseLocation.floor, WarehouseLocation.zone)
        )
        return self.db.execute(stmt).scalars().all()
