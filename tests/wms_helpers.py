from __future__ import annotations

import random
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from app.wms.db.models import InventoryItem, Product, StockIn, StockOut, StockOutLine, WarehouseLocation
from app.wms.db.seed import run_seed
from app.wms.services.barcodes import BarcodeGenerator
from app.wms.services.batch_composer import BatchComposer

FIXED_CLOCK = 1_700_000_000.0


@dataclass
class Catalog:
    product: Product
    warehouse_id: object
    location_id: object
    other_location_id: object


def create_catalog(db) -> Catalog:
    warehouse, location = run_seed(db)
    other = WarehouseLocation(warehouse_id=warehouse.id, floor="2", zone="B")
    product = Product(name="Widget", sku="WGT1", category="Hardware")
    db.add_all([other, product])
    db.commit()
    return Catalog(product=product, warehouse_id=warehouse.id, location_id=location.id, other_location_id=other.id)


def seeded_generator(seed: int = 7) -> BarcodeGenerator:
    return BarcodeGenerator(clock=lambda: FIXED_CLOCK, rng=random.Random(seed))


def create_stock_in(db, catalog: Catalog, *, boxes: int = 3, submitted_by: str = "clerk-1") -> StockIn:
    stock_in = StockIn(product_id=catalog.product.id, boxes=boxes, status="pending", submitted_by=submitted_by)
    db.add(stock_in)
    db.commit()
    return stock_in


def compose(catalog: Catalog, *batches: tuple[int, int], seed: int = 7, box_limit: int | None = None):
    composer = BatchComposer(catalog.product, generator=seeded_generator(seed), box_limit=box_limit)
    for box_count, quantity_per_box in batches:
        composer.add_batch(
            warehouse_id=catalog.warehouse_id,
            location_id=catalog.location_id,
            box_count=box_count,
            quantity_per_box=quantity_per_box,
        )
    return composer


def add_inventory(db, catalog: Catalog, barcode: str, quantity: int, *, product_id=None, status: str = "available"):
    item = InventoryItem(
        product_id=product_id or catalog.product.id,
        warehouse_id=catalog.warehouse_id,
        location_id=catalog.location_id,
        barcode=barcode,
        quantity=quantity,
        status=status,
    )
    db.add(item)
    db.commit()
    return item


def create_stock_out(db, catalog: Catalog, *, requested_quantity: int, reference_number: str | None = None) -> StockOut:
    stock_out = StockOut(reference_number=reference_number, status="pending", requested_by="sales-1")
    stock_out.lines = [StockOutLine(product_id=catalog.product.id, requested_quantity=requested_quantity)]
    db.add(stock_out)
    db.commit()
    return stock_out


def count_rows(db, model) -> int:
    return db.scalar(select(func.count()).select_from(model))


class FailingSession:
    """Session proxy whose ``fail_on_flush``-th flush raises a backend error."""

    def __init__(self, db, *, fail_on_flush: int):
        self._db = db
        self._fail_on_flush = fail_on_flush
        self.flushes = 0

    def flush(self, *args, **kwargs):
        self.flushes += 1
        if self.flushes == self._fail_on_flush:
            raise OperationalError("INSERT", {}, Exception("backend unavailable"))
        return self._db.flush(*args, **kwargs)

    def __getattr__(self, name):
        return getattr(self._db, name)
