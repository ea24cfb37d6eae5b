from app.wms.db.models import IdempotencyRecord, StockIn
from tests.wms_helpers import count_rows

CLERK = {"X-User-ID": "clerk-1"}
SALES = {"X-User-ID": "sales-1"}


def _payload(catalog, boxes: int = 2) -> dict:
    return {"product_id": str(catalog.product.id), "boxes": boxes}


def test_replay_returns_stored_response(client, db_session, catalog):
    headers = {**CLERK, "Idempotency-Key": "stock-in-1"}
    first = client.post("/wms/stock-in", headers=headers, json=_payload(catalog))
    second = client.post("/wms/stock-in", headers=headers, json=_payload(catalog))

    assert first.status_code == 201
    assert second.status_code == 201
    assert second.headers["X-Idempotency-Result"] == "IDEMPOTENCY_REPLAY"
    assert second.json()["id"] == first.json()["id"]

    db_session.expire_all()
    assert count_rows(db_session, StockIn) == 1


def test_key_reused_with_different_payload(client, catalog):
    headers = {**CLERK, "Idempotency-Key": "stock-in-2"}
    client.post("/wms/stock-in", headers=headers, json=_payload(catalog, boxes=2))

    response = client.post("/wms/stock-in", headers=headers, json=_payload(catalog, boxes=5))

    assert response.status_code == 409
    assert response.json()["code"] == "IDEMPOTENCY_KEY_REUSED_WITH_DIFFERENT_PAYLOAD"


def test_failed_request_replays_its_error(client, db_session, catalog):
    headers = {**CLERK, "Idempotency-Key": "reject-missing"}
    body = {"lines": [{"product_id": str(catalog.product.id), "requested_quantity": 1}]}
    stock_out = client.post("/wms/stock-out", headers=SALES, json=body).json()
    approve = {"deducted_batches": [{"barcode": "WGT1-404-ZZZZ", "quantity_deducted": 1}]}

    first = client.post(f"/wms/stock-out/{stock_out['id']}/approve", headers=headers, json=approve)
    second = client.post(f"/wms/stock-out/{stock_out['id']}/approve", headers=headers, json=approve)

    assert first.status_code == 404
    assert second.status_code == 404
    assert second.json()["code"] == "BARCODE_NOT_FOUND"
    assert second.headers["X-Idempotency-Result"] == "IDEMPOTENCY_REPLAY"

    db_session.expire_all()
    record = (
        db_session.query(IdempotencyRecord)
        .filter(IdempotencyRecord.idempotency_key == "reject-missing")
        .one()
    )
    assert record.state == "failed"


def test_requests_without_key_are_not_replayed(client, db_session, catalog):
    client.post("/wms/stock-in", headers=CLERK, json=_payload(catalog))
    client.post("/wms/stock-in", headers=CLERK, json=_payload(catalog))

    db_session.expire_all()
    assert count_rows(db_session, StockIn) == 2
