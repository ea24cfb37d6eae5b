import uuid

import pytest
from sqlalchemy import select

from app.wms.core.error_catalog import AppError, ErrorCatalog
from app.wms.db.models import (
    BarcodeLog,
    CustomerInquiry,
    InventoryItem,
    Product,
    StockOut,
    StockOutDetail,
    StockOutProcessedItem,
)
from app.wms.services.stock_out import DeductedBatch, StockOutApprovalService, StockOutService
from tests.wms_helpers import FailingSession, add_inventory, count_rows, create_stock_out


def _quantities(db) -> dict[str, int]:
    db.expire_all()
    return {item.barcode: item.quantity for item in db.execute(select(InventoryItem)).scalars().all()}


def _stock_out(db, stock_out_id) -> StockOut:
    db.expire_all()
    return db.get(StockOut, stock_out_id)


def test_insufficient_total_fails_with_zero_writes(db_session, catalog):
    add_inventory(db_session, catalog, "WGT1-001-AAAA", 10)
    add_inventory(db_session, catalog, "WGT1-002-AAAA", 3)
    stock_out = create_stock_out(db_session, catalog, requested_quantity=15)

    with pytest.raises(AppError) as excinfo:
        StockOutApprovalService(db_session).approve(
            stock_out.id,
            [DeductedBatch("WGT1-001-AAAA", 10), DeductedBatch("WGT1-002-AAAA", 3)],
            "manager-1",
        )

    assert excinfo.value.error is ErrorCatalog.INSUFFICIENT_QUANTITY
    assert excinfo.value.details["requested_quantity"] == 15
    assert excinfo.value.details["deducted_quantity"] == 13
    assert _quantities(db_session) == {"WGT1-001-AAAA": 10, "WGT1-002-AAAA": 3}
    assert count_rows(db_session, StockOutDetail) == 0
    assert _stock_out(db_session, stock_out.id).status == "pending"


def test_deduction_larger_than_stock_fails_before_any_write(db_session, catalog):
    add_inventory(db_session, catalog, "WGT1-001-AAAA", 10)
    add_inventory(db_session, catalog, "WGT1-002-AAAA", 3)
    stock_out = create_stock_out(db_session, catalog, requested_quantity=12)

    with pytest.raises(AppError) as excinfo:
        StockOutApprovalService(db_session).approve(
            stock_out.id,
            [DeductedBatch("WGT1-001-AAAA", 8), DeductedBatch("WGT1-002-AAAA", 4)],
            "manager-1",
        )

    assert excinfo.value.error is ErrorCatalog.INSUFFICIENT_QUANTITY
    assert excinfo.value.details["barcode"] == "WGT1-002-AAAA"
    assert excinfo.value.details["available_quantity"] == 3
    assert _quantities(db_session) == {"WGT1-001-AAAA": 10, "WGT1-002-AAAA": 3}
    assert count_rows(db_session, StockOutProcessedItem) == 0


def test_repeated_barcode_entries_are_summed(db_session, catalog):
    add_inventory(db_session, catalog, "WGT1-001-AAAA", 5)
    stock_out = create_stock_out(db_session, catalog, requested_quantity=6)

    with pytest.raises(AppError) as excinfo:
        StockOutApprovalService(db_session).approve(
            stock_out.id,
            [DeductedBatch("WGT1-001-AAAA", 3), DeductedBatch("WGT1-001-AAAA", 3)],
            "manager-1",
        )

    assert excinfo.value.error is ErrorCatalog.INSUFFICIENT_QUANTITY
    assert excinfo.value.details["deducted_quantity"] == 6
    assert _quantities(db_session) == {"WGT1-001-AAAA": 5}


def test_unknown_barcode(db_session, catalog):
    stock_out = create_stock_out(db_session, catalog, requested_quantity=1)
    with pytest.raises(AppError) as excinfo:
        StockOutApprovalService(db_session).approve(stock_out.id, [DeductedBatch("MISSING-1", 1)], "manager-1")
    assert excinfo.value.error is ErrorCatalog.BARCODE_NOT_FOUND


def test_product_mismatch(db_session, catalog):
    other = Product(name="Gadget", sku="GDG1")
    db_session.add(other)
    db_session.commit()
    add_inventory(db_session, catalog, "GDG1-001-AAAA", 5, product_id=other.id)
    stock_out = create_stock_out(db_session, catalog, requested_quantity=5)

    with pytest.raises(AppError) as excinfo:
        StockOutApprovalService(db_session).approve(stock_out.id, [DeductedBatch("GDG1-001-AAAA", 5)], "manager-1")

    assert excinfo.value.error is ErrorCatalog.PRODUCT_MISMATCH
    assert _quantities(db_session) == {"GDG1-001-AAAA": 5}


@pytest.mark.parametrize("barcode,quantity", [("", 5), ("WGT1-001-AAAA", 0)])
def test_entries_need_barcode_and_positive_quantity(db_session, catalog, barcode, quantity):
    add_inventory(db_session, catalog, "WGT1-001-AAAA", 10)
    stock_out = create_stock_out(db_session, catalog, requested_quantity=5)
    batches = [DeductedBatch(barcode, quantity), DeductedBatch("WGT1-001-AAAA", 5)]

    with pytest.raises(AppError) as excinfo:
        StockOutApprovalService(db_session).approve(stock_out.id, batches, "manager-1")

    assert excinfo.value.error is ErrorCatalog.VALIDATION_ERROR


def test_approval_deducts_and_records(db_session, catalog):
    add_inventory(db_session, catalog, "WGT1-001-AAAA", 10)
    add_inventory(db_session, catalog, "WGT1-002-AAAA", 8)
    stock_out = create_stock_out(db_session, catalog, requested_quantity=15, reference_number="SO-100")
    db_session.add(CustomerInquiry(reference_number="SO-100", customer_name="ACME", status="pending"))
    db_session.commit()

    result = StockOutApprovalService(db_session).approve(
        stock_out.id,
        [DeductedBatch("WGT1-001-AAAA", 10), DeductedBatch("WGT1-002-AAAA", 5)],
        "manager-1",
    )

    assert result.success
    assert result.total_deducted == 15
    assert result.processed_barcodes == ["WGT1-001-AAAA", "WGT1-002-AAAA"]
    assert "SO-100" in result.message

    assert _quantities(db_session) == {"WGT1-001-AAAA": 0, "WGT1-002-AAAA": 3}
    emptied = db_session.execute(
        select(InventoryItem).where(InventoryItem.barcode == "WGT1-001-AAAA")
    ).scalar_one()
    assert emptied.status == "sold"

    assert count_rows(db_session, StockOutDetail) == 2
    assert count_rows(db_session, StockOutProcessedItem) == 2
    assert db_session.execute(select(CustomerInquiry)).scalar_one().status == "completed"
    assert {log.action for log in db_session.execute(select(BarcodeLog)).scalars()} == {"stock_out"}

    refreshed = _stock_out(db_session, stock_out.id)
    assert refreshed.status == "completed"
    assert refreshed.processed_by == "manager-1"
    assert refreshed.processed_at is not None


def test_approval_rejects_non_pending(db_session, catalog):
    add_inventory(db_session, catalog, "WGT1-001-AAAA", 10)
    stock_out = create_stock_out(db_session, catalog, requested_quantity=4)
    service = StockOutApprovalService(db_session)
    service.approve(stock_out.id, [DeductedBatch("WGT1-001-AAAA", 4)], "manager-1")

    with pytest.raises(AppError) as excinfo:
        service.approve(stock_out.id, [DeductedBatch("WGT1-001-AAAA", 4)], "manager-1")

    assert excinfo.value.error is ErrorCatalog.STOCK_OUT_NOT_PENDING
    assert _quantities(db_session) == {"WGT1-001-AAAA": 6}


def test_write_failure_rolls_back_and_resets_to_pending(db_session, catalog):
    add_inventory(db_session, catalog, "WGT1-001-AAAA", 10)
    add_inventory(db_session, catalog, "WGT1-002-AAAA", 10)
    stock_out = create_stock_out(db_session, catalog, requested_quantity=12)

    with pytest.raises(AppError) as excinfo:
        StockOutApprovalService(FailingSession(db_session, fail_on_flush=1)).approve(
            stock_out.id,
            [DeductedBatch("WGT1-001-AAAA", 6), DeductedBatch("WGT1-002-AAAA", 6)],
            "manager-1",
        )

    assert excinfo.value.error is ErrorCatalog.APPROVAL_FAILED
    assert _quantities(db_session) == {"WGT1-001-AAAA": 10, "WGT1-002-AAAA": 10}
    assert count_rows(db_session, StockOutDetail) == 0
    refreshed = _stock_out(db_session, stock_out.id)
    assert refreshed.status == "pending"
    assert refreshed.processed_by is None


def test_unknown_stock_out(db_session, catalog):
    with pytest.raises(AppError) as excinfo:
        StockOutApprovalService(db_session).approve(uuid.uuid4(), [DeductedBatch("X-0001", 1)], "manager-1")
    assert excinfo.value.error is ErrorCatalog.STOCK_OUT_NOT_FOUND


def test_create_request_validates_products(db_session, catalog):
    service = StockOutService(db_session)
    with pytest.raises(AppError) as excinfo:
        service.create_request(lines=[(uuid.uuid4(), 1)], requested_by="sales-1")
    assert excinfo.value.details["message"] == "product not found"

    stock_out = service.create_request(
        lines=[(catalog.product.id, 4)], requested_by="sales-1", reference_number="SO-7"
    )
    assert stock_out.status == "pending"
    assert [line.requested_quantity for line in stock_out.lines] == [4]


def test_concurrent_approval_deducts_stock_once(db_session, catalog, monkeypatch):
    from app.wms.db.session import SessionLocal

    add_inventory(db_session, catalog, "WGT1-001-AAAA", 15)
    stock_out = create_stock_out(db_session, catalog, requested_quantity=5)
    batches = [DeductedBatch("WGT1-001-AAAA", 5)]

    service = StockOutApprovalService(db_session)
    validate = service._validate

    def validate_then_lose_race(*args, **kwargs):
        plan = validate(*args, **kwargs)
        with SessionLocal() as other:
            StockOutApprovalService(other).approve(stock_out.id, batches, "manager-2")
        return plan

    monkeypatch.setattr(service, "_validate", validate_then_lose_race)

    with pytest.raises(AppError) as excinfo:
        service.approve(stock_out.id, batches, "manager-1")

    assert excinfo.value.error is ErrorCatalog.STOCK_OUT_NOT_PENDING
    assert excinfo.value.details["status"] == "completed"
    assert _quantities(db_session) == {"WGT1-001-AAAA": 10}
    assert count_rows(db_session, StockOutDetail) == 1
    assert _stock_out(db_session, stock_out.id).processed_by == "manager-2"
