import uuid
from datetime import date

import pytest

from models import Product
from routers.orders.helpers import order_helpers
from routers.orders.schemas import ShipmentCreate
from utils.errors import ConflictError

SHIPMENT = {
    "company": "顺丰速运",
    "trackingNumber": "SF123",
    "estimatedArrivalDate": "2026-10-25",
    "batchCode": "B20261019",
}


async def approve(client, headers, order_id):
    response = await client.patch(f"/orders/{order_id}/status", json={"status": "APPROVED"}, headers=headers["platform"])
    assert response.status_code == 200, response.text
    return response.json()["data"]


async def test_place_order_snapshots_names(client, users, create_product, place_order):
    product = await create_product()
    order = await place_order(product["id"], quantity=100, designFileUrl="https://files.example.com/design.pdf")

    assert order["status"] == "PENDING"
    assert order["productName"] == "软包装"
    assert order["manufacturerName"] == "食品制造厂"
    assert order["manufacturerId"] == str(users["manufacturer"].id)
    assert order["quantity"] == 100
    assert order["logistics"] is None
    assert order["approvedDate"] is None


async def test_order_cannot_exceed_stock(client, headers, create_product):
    product = await create_product(stock=50)

    response = await client.post("/orders", json={
        "productId": product["id"], "quantity": 51, "expectedDate": "2099-01-01",
    }, headers=headers["manufacturer"])

    assert response.status_code == 400
    assert "Insufficient stock" in response.json()["message"]


async def test_order_needs_an_active_product(client, headers, create_product):
    product = await create_product()
    await client.patch(f"/products/{product['id']}/status", json={"status": "INACTIVE"}, headers=headers["supplier"])

    response = await client.post("/orders", json={
        "productId": product["id"], "quantity": 1, "expectedDate": "2099-01-01",
    }, headers=headers["manufacturer"])
    assert response.status_code == 400


async def test_order_dates_and_quantity_are_validated(client, headers, create_product):
    product = await create_product()

    backwards = await client.post("/orders", json={
        "productId": product["id"], "quantity": 1, "requestDate": "2026-10-10", "expectedDate": "2026-10-01",
    }, headers=headers["manufacturer"])
    assert backwards.status_code == 400

    zero = await client.post("/orders", json={
        "productId": product["id"], "quantity": 0, "expectedDate": "2099-01-01",
    }, headers=headers["manufacturer"])
    assert zero.status_code == 400
    assert zero.json()["success"] is False


async def test_order_for_unknown_product(client, headers, users):
    response = await client.post("/orders", json={
        "productId": str(uuid.uuid4()), "quantity": 1, "expectedDate": "2099-01-01",
    }, headers=headers["manufacturer"])
    assert response.status_code == 404


async def test_manufacturer_cannot_order_for_someone_else(client, users, headers, create_product):
    product = await create_product()

    response = await client.post("/orders", json={
        "productId": product["id"], "quantity": 1, "expectedDate": "2099-01-01",
        "manufacturerId": str(users["other_manufacturer"].id),
    }, headers=headers["manufacturer"])
    assert response.status_code == 403


async def test_only_manufacturers_place_orders(client, headers, create_product):
    product = await create_product()

    response = await client.post("/orders", json={
        "productId": product["id"], "quantity": 1, "expectedDate": "2099-01-01",
    }, headers=headers["supplier"])
    assert response.status_code == 403


async def test_approve_sets_decision_date_once(client, headers, create_product, place_order):
    product = await create_product()
    order = await place_order(product["id"])

    approved = await client.patch(f"/orders/{order['id']}/status", json={"status": "approved"}, headers=headers["platform"])
    assert approved.status_code == 200
    assert approved.json()["data"]["status"] == "APPROVED"
    assert approved.json()["data"]["approvedDate"] is not None

    again = await client.patch(
        f"/orders/{order['id']}/status", json={"status": "REJECTED", "reason": "late"}, headers=headers["platform"]
    )
    assert again.status_code == 400


async def test_reject_requires_reason(client, headers, create_product, place_order):
    product = await create_product()
    order = await place_order(product["id"])
    url = f"/orders/{order['id']}/status"

    missing = await client.patch(url, json={"status": "REJECTED"}, headers=headers["platform"])
    assert missing.status_code == 400

    rejected = await client.patch(url, json={"status": "REJECTED", "reason": "规格不符"}, headers=headers["platform"])
    data = rejected.json()["data"]
    assert data["status"] == "REJECTED"
    assert data["rejectReason"] == "规格不符"


async def test_decision_status_must_be_a_decision(client, headers, create_product, place_order):
    product = await create_product()
    order = await place_order(product["id"])

    response = await client.patch(f"/orders/{order['id']}/status", json={"status": "SHIPPED"}, headers=headers["platform"])
    assert response.status_code == 400


async def test_decision_notifies_manufacturer(client, headers, create_product, place_order, monkeypatch):
    sent = []
    monkeypatch.setattr("routers.orders.orders.notify_user", lambda *args: sent.append(args))
    product = await create_product()
    order = await place_order(product["id"])

    await client.patch(
        f"/orders/{order['id']}/status", json={"status": "REJECTED", "reason": "库存调整"}, headers=headers["platform"]
    )

    assert len(sent) == 1
    email, phone, subject, body, sms = sent[0]
    assert email == "factory@example.com"
    assert phone == "13800000005"
    assert "Rejected" in subject
    assert "库存调整" in body


async def test_suppliers_cannot_review_orders(client, headers, create_product, place_order):
    product = await create_product()
    order = await place_order(product["id"])

    response = await client.patch(f"/orders/{order['id']}/status", json={"status": "APPROVED"}, headers=headers["supplier"])
    assert response.status_code == 403


async def test_ship_records_logistics_and_decrements_stock(client, headers, create_product, place_order):
    product = await create_product(stock=500)
    order = await place_order(product["id"], quantity=100)
    await approve(client, headers, order["id"])

    shipped = await client.post(f"/orders/{order['id']}/ship", json=SHIPMENT, headers=headers["supplier"])

    assert shipped.status_code == 200
    data = shipped.json()["data"]
    assert data["status"] == "SHIPPED"
    assert data["logistics"]["trackingNumber"] == "SF123"
    assert data["logistics"]["company"] == "顺丰速运"
    assert data["logistics"]["estimatedArrivalDate"] == "2026-10-25"
    assert data["logistics"]["shippedDate"] is not None

    refreshed = await client.get(f"/products/{product['id']}", headers=headers["platform"])
    assert refreshed.json()["data"]["stock"] == 400


async def test_ship_requires_every_logistics_field(client, headers, create_product, place_order):
    product = await create_product()
    order = await place_order(product["id"])
    await approve(client, headers, order["id"])

    response = await client.post(
        f"/orders/{order['id']}/ship", json={**SHIPMENT, "batchCode": "   "}, headers=headers["supplier"]
    )
    assert response.status_code == 400

    unchanged = await client.get(f"/orders/{order['id']}", headers=headers["platform"])
    assert unchanged.json()["data"]["status"] == "APPROVED"


async def test_ship_twice_conflicts_and_stock_moves_once(client, headers, create_product, place_order):
    product = await create_product(stock=500)
    order = await place_order(product["id"], quantity=100)
    await approve(client, headers, order["id"])

    first = await client.post(f"/orders/{order['id']}/ship", json=SHIPMENT, headers=headers["supplier"])
    second = await client.post(f"/orders/{order['id']}/ship", json=SHIPMENT, headers=headers["supplier"])

    assert first.status_code == 200
    assert second.status_code == 400

    refreshed = await client.get(f"/products/{product['id']}", headers=headers["platform"])
    assert refreshed.json()["data"]["stock"] == 400


async def test_ship_pending_order_conflicts(client, headers, create_product, place_order):
    product = await create_product()
    order = await place_order(product["id"])

    response = await client.post(f"/orders/{order['id']}/ship", json=SHIPMENT, headers=headers["supplier"])
    assert response.status_code == 400


async def test_only_the_products_supplier_ships(client, headers, create_product, place_order):
    product = await create_product()
    order = await place_order(product["id"])
    await approve(client, headers, order["id"])

    response = await client.post(f"/orders/{order['id']}/ship", json=SHIPMENT, headers=headers["other_supplier"])
    assert response.status_code == 403


async def test_ship_rolls_back_when_stock_ran_out(client, headers, create_product, place_order):
    product = await create_product(stock=500)
    order = await place_order(product["id"], quantity=100)
    await approve(client, headers, order["id"])
    await client.put(f"/products/{product['id']}", json={"stock": 10}, headers=headers["supplier"])

    response = await client.post(f"/orders/{order['id']}/ship", json=SHIPMENT, headers=headers["supplier"])
    assert response.status_code == 400
    assert "stock" in response.json()["message"]

    unchanged = await client.get(f"/orders/{order['id']}", headers=headers["platform"])
    assert unchanged.json()["data"]["status"] == "APPROVED"
    assert unchanged.json()["data"]["logistics"] is None


async def test_stale_ship_loses_the_status_guard(session_factory, users, create_product, place_order, client, headers):
    product = await create_product(stock=500)
    order = await place_order(product["id"], quantity=100)
    await approve(client, headers, order["id"])
    order_id = uuid.UUID(order["id"])
    supplier = {"user_id": str(users["supplier"].id), "role": "SUPPLIER", "name": users["supplier"].name}
    shipment = ShipmentCreate.model_validate(SHIPMENT)

    async with session_factory() as first, session_factory() as second:
        stale = await order_helpers.load_order(second, order_id)
        assert stale.status == "APPROVED"

        await order_helpers.ship(first, order_id, shipment, supplier)

        with pytest.raises(ConflictError):
            await order_helpers._transition(second, stale, "SHIPPED")
        await second.rollback()

        with pytest.raises(ConflictError):
            await order_helpers.ship(second, order_id, shipment, supplier)

    async with session_factory() as db:
        stored = await db.get(Product, uuid.UUID(product["id"]))
        assert stored.stock == 400


async def test_confirm_receipt(client, headers, create_product, place_order):
    product = await create_product()
    order = await place_order(product["id"])
    await approve(client, headers, order["id"])

    early = await client.post(f"/orders/{order['id']}/confirm", headers=headers["manufacturer"])
    assert early.status_code == 400

    await client.post(f"/orders/{order['id']}/ship", json=SHIPMENT, headers=headers["supplier"])

    stranger = await client.post(f"/orders/{order['id']}/confirm", headers=headers["other_manufacturer"])
    assert stranger.status_code == 403

    confirmed = await client.post(f"/orders/{order['id']}/confirm", headers=headers["manufacturer"])
    assert confirmed.status_code == 200
    assert confirmed.json()["data"]["status"] == "COMPLETED"

    twice = await client.post(f"/orders/{order['id']}/confirm", headers=headers["manufacturer"])
    assert twice.status_code == 400


async def test_order_visibility(client, headers, create_product, place_order):
    mine = await create_product(name="我的产品")
    theirs = await create_product("other_supplier", name="别家产品")
    first = await place_order(mine["id"])
    second = await place_order(theirs["id"], manufacturer_key="other_manufacturer")

    supplier_view = await client.get("/orders", headers=headers["supplier"])
    assert [o["id"] for o in supplier_view.json()["data"]] == [first["id"]]

    manufacturer_view = await client.get("/orders", headers=headers["other_manufacturer"])
    assert [o["id"] for o in manufacturer_view.json()["data"]] == [second["id"]]

    everyone = await client.get("/orders", headers=headers["manager"])
    assert len(everyone.json()["data"]) == 2

    by_name = await client.get("/orders", params={"manufacturerName": "日化制造厂"}, headers=headers["platform"])
    assert [o["id"] for o in by_name.json()["data"]] == [second["id"]]

    pending = await client.get("/orders", params={"status": "PENDING"}, headers=headers["platform"])
    assert len(pending.json()["data"]) == 2

    hidden = await client.get(f"/orders/{second['id']}", headers=headers["manufacturer"])
    assert hidden.status_code == 404
    hidden_from_supplier = await client.get(f"/orders/{second['id']}", headers=headers["supplier"])
    assert hidden_from_supplier.status_code == 404


async def test_request_date_defaults_to_today(client, headers, create_product):
    product = await create_product()

    response = await client.post("/orders", json={
        "productId": product["id"], "quantity": 1, "expectedDate": "2099-01-01",
    }, headers=headers["manufacturer"])
    assert response.json()["data"]["requestDate"] == date.today().isoformat()
