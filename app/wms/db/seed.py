from sqlalchemy import select

from app.wms.core.config import settings
from app.wms.db.models import Warehouse, WarehouseLocation


def _get_or_create_warehouse(db):
    warehouse = (
        db.execute(select(Warehouse).where(Warehouse.name == settings.DEFAULT_WAREHOUSE_NAME)).scalars().first()
    )
    if warehouse:
        return warehouse
    warehouse = Warehouse(name=settings.DEFAULT_WAREHOUSE_NAME)
    db.add(warehouse)
    db.flush()
    return warehouse


def _get_or_create_location(db, warehouse):
    location = (
        db.execute(
            select(WarehouseLocation).where(
                WarehouseLocation.warehouse_id == warehouse.id,
                WarehouseLocation.floor == settings.DEFAULT_LOCATION_FLOOR,
                WarehouseLocation.zone == settings.DEFAULT_LOCATION_ZONE,
            )
        )
        .scalars()
        .first()
    )
    if location:
        return location
    location = WarehouseLocation(
        warehouse_id=warehouse.id,
        floor=settings.DEFAULT_LOCATION_FLOOR,
        zone=settings.DEFAULT_LOCATION_ZONE,
    )
    db.add(location)
    db.flush()
    return location


def run_seed(db):
    warehouse = _get_or_create_warehouse(db)
    location = _get_or_create_location(db, warehouse)
    db.commit()
    return warehouse, location


if __name__ == "__main__":
    from app.wms.db.session import SessionLocal

    with SessionLocal() as session:
        run_seed(session)
