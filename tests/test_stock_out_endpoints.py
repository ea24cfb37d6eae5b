import uuid

from app.wms.db.models import InventoryItem, StockOut
from tests.wms_helpers import add_inventory, create_stock_out

SALES = {"X-User-ID": "sales-1"}
MANAGER = {"X-User-ID": "manager-1"}


def test_create_stock_out_request(client, catalog):
    response = client.post(
        "/wms/stock-out",
        headers=SALES,
        json={
            "reference_number": "SO-1",
            "lines": [{"product_id": str(catalog.product.id), "requested_quantity": 7}],
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["requested_by"] == "sales-1"
    assert body["requested_quantity"] == 7
    assert body["lines"][0]["product_name"] == "Widget"


def test_create_rejects_empty_lines(client, catalog):
    response = client.post("/wms/stock-out", headers=SALES, json={"lines": []})

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_approve_deducts_inventory(client, db_session, catalog):
    add_inventory(db_session, catalog, "WGT1-001-AAAA", 10)
    add_inventory(db_session, catalog, "WGT1-002-AAAA", 3)
    stock_out = create_stock_out(db_session, catalog, requested_quantity=12, reference_number="SO-9")

    response = client.post(
        f"/wms/stock-out/{stock_out.id}/approve",
        headers=MANAGER,
        json={
            "deducted_batches": [
                {"barcode": "WGT1-001-AAAA", "quantity_deducted": 10},
                {"barcode": "WGT1-002-AAAA", "quantity_deducted": 2},
            ]
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "completed"
    assert body["total_deducted"] == 12
    assert body["message"] == "Processed 2 batches of Widget for stock-out SO-9"

    db_session.expire_all()
    quantities = {item.barcode: (item.quantity, item.status) for item in db_session.query(InventoryItem).all()}
    assert quantities == {"WGT1-001-AAAA": (0, "sold"), "WGT1-002-AAAA": (1, "available")}

    detail = client.get(f"/wms/stock-out/{stock_out.id}").json()
    assert detail["request"]["status"] == "completed"
    assert detail["request"]["processed_by"] == "manager-1"
    assert {row["barcode"] for row in detail["details"]} == {"WGT1-001-AAAA", "WGT1-002-AAAA"}


def test_approve_with_insufficient_total(client, db_session, catalog):
    add_inventory(db_session, catalog, "WGT1-001-AAAA", 10)
    add_inventory(db_session, catalog, "WGT1-002-AAAA", 3)
    stock_out = create_stock_out(db_session, catalog, requested_quantity=15)

    response = client.post(
        f"/wms/stock-out/{stock_out.id}/approve",
        headers=MANAGER,
        json={
            "deducted_batches": [
                {"barcode": "WGT1-001-AAAA", "quantity_deducted": 10},
                {"barcode": "WGT1-002-AAAA", "quantity_deducted": 3},
            ]
        },
    )

    assert response.status_code == 422
    payload = response.json()
    assert payload["code"] == "INSUFFICIENT_QUANTITY"
    assert payload["details"]["message"] == "Insufficient quantity. Need 15, have 13"

    db_session.expire_all()
    assert sorted(item.quantity for item in db_session.query(InventoryItem).all()) == [3, 10]
    assert db_session.get(StockOut, stock_out.id).status == "pending"


def test_approve_unknown_barcode(client, db_session, catalog):
    stock_out = create_stock_out(db_session, catalog, requested_quantity=1)

    response = client.post(
        f"/wms/stock-out/{stock_out.id}/approve",
        headers=MANAGER,
        json={"deducted_batches": [{"barcode": "WGT1-404-ZZZZ", "quantity_deducted": 1}]},
    )

    assert response.status_code == 404
    assert response.json()["code"] == "BARCODE_NOT_FOUND"


def test_approve_requires_actor(client, db_session, catalog):
    stock_out = create_stock_out(db_session, catalog, requested_quantity=1)

    response = client.post(
        f"/wms/stock-out/{stock_out.id}/approve",
        json={"deducted_batches": [{"barcode": "WGT1-001-AAAA", "quantity_deducted": 1}]},
    )

    assert response.status_code == 401


def test_list_stock_out_requests(client, db_session, catalog):
    create_stock_out(db_session, catalog, requested_quantity=1, reference_number="SO-1")
    create_stock_out(db_session, catalog, requested_quantity=2, reference_number="SO-2")

    response = client.get("/wms/stock-out", params={"status": "pending"})

    assert response.status_code == 200
    body = response.json()
    assert body["meta"]["total"] == 2
    assert {row["reference_number"] for row in body["rows"]} == {"SO-1", "SO-2"}


def test_get_unknown_stock_out(client, catalog):
    response = client.get(f"/wms/stock-out/{uuid.uuid4()}")

    assert response.status_code == 404
    assert response.json()["code"] == "STOCK_OUT_NOT_FOUND"


def test_openapi_documents_insufficient_quantity(client):
    schema = client.get("/openapi.json").json()

    approve = schema["paths"]["/wms/stock-out/{stock_out_id}/approve"]["post"]
    body = approve["responses"]["422"]["content"]["application/json"]["schema"]
    assert body["$ref"].endswith("/InsufficientQuantityResponse")


def test_list_rejects_unknown_status_filter(client, catalog):
    response = client.get("/wms/stock-out", params={"status": "rejected"})

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"
    assert response.json()["details"]["allowed"] == ["pending", "processing", "completed", "failed"]
