"""End-to-end checks of the HTTP surface through aiohttp_client."""
import uuid
from decimal import Decimal

from storefront.models.admin_log import AdminAction
from conftest import ADMIN_ID, KEY_ID, checkout_body

PRICE = Decimal("499.00")


async def test_health(client):
    resp = await client.get("/health")

    assert resp.status == 200
    assert await resp.json() == {"status": "ok"}


async def test_create_order(client, gateway):
    resp = await client.post("/api/razorpay/create-order", json={"amount": 499.5, "userId": "user-1"})

    assert resp.status == 200
    assert await resp.json() == {
        "id": "order_000001", "amount": 49950, "currency": "INR", "key": KEY_ID
    }
    assert gateway.calls[0]['receipt'].startswith("ord_")


async def test_create_order_rejects_invalid_amount(client, gateway):
    resp = await client.post("/api/razorpay/create-order", json={"amount": 0, "userId": "user-1"})

    assert resp.status == 400
    assert (await resp.json())["error"] == "Invalid amount"
    assert gateway.calls == []


async def test_create_order_requires_user(client):
    resp = await client.post("/api/razorpay/create-order", json={"amount": 100})

    assert resp.status == 401
    assert "Unauthorized" in (await resp.json())["error"]


async def test_malformed_json_is_bad_request(client):
    resp = await client.post("/api/razorpay/create-order", data="{not json",
                             headers={"Content-Type": "application/json"})

    assert resp.status == 400
    assert (await resp.json())["error"] == "Request body must be valid JSON"


async def test_update_stock(client, ledger):
    p1 = ledger.add_product(stock=4)

    resp = await client.post("/api/orders/update-stock",
                             json=[{"product_id": str(p1), "quantity": 3}])

    assert resp.status == 200
    body = await resp.json()
    assert body["success"] is True
    assert body["updates"][0]["previous_stock"] == 4
    assert body["updates"][0]["new_stock"] == 1
    assert ledger.stock(p1) == 1


async def test_update_stock_partial_failure_is_multi_status(client, ledger):
    p1 = ledger.add_product(stock=4)
    missing = uuid.uuid4()

    resp = await client.post("/api/orders/update-stock", json=[
        {"product_id": str(p1), "quantity": 1},
        {"product_id": str(missing), "quantity": 1},
    ])

    assert resp.status == 207
    body = await resp.json()
    assert body["error"] == "Some stock updates failed"
    assert [u["product_id"] for u in body["failedUpdates"]] == [str(missing)]
    assert [u["product_id"] for u in body["successfulUpdates"]] == [str(p1)]


async def test_update_stock_rejects_bad_shape(client, ledger):
    p1 = ledger.add_product(stock=4)

    for payload in ([], {"items": []}, [{"product_id": str(p1), "quantity": 0}],
                    [{"product_id": "nope", "quantity": 1}]):
        resp = await client.post("/api/orders/update-stock", json=payload)
        assert resp.status == 400
        assert (await resp.json())["error"].startswith("Invalid order items data")

    assert ledger.stock(p1) == 4


async def test_cancel_order(client, order_store):
    order_id = order_store.add_order(status="paid")

    resp = await client.post("/api/orders/cancel", json={"order_id": str(order_id)})

    assert resp.status == 200
    body = await resp.json()
    assert body["order"]["status"] == "cancelled"
    assert body["message"] == "Order cancelled successfully"


async def test_cancel_twice_is_bad_request(client, order_store):
    order_id = order_store.add_order(status="paid")
    await client.post("/api/orders/cancel", json={"order_id": str(order_id)})

    resp = await client.post("/api/orders/cancel", json={"order_id": str(order_id)})

    assert resp.status == 400
    assert await resp.json() == {"error": "Order is already cancelled"}


async def test_cancel_delivered_order(client, order_store):
    order_id = order_store.add_order(status="delivered")

    resp = await client.post("/api/orders/cancel", json={"order_id": str(order_id)})

    assert resp.status == 400
    assert (await resp.json())["error"] == "Cannot cancel a delivered order"


async def test_cancel_unknown_order(client):
    resp = await client.post("/api/orders/cancel", json={"order_id": str(uuid.uuid4())})

    assert resp.status == 404
    assert (await resp.json())["error"] == "Order not found"


async def test_cancel_requires_order_id(client):
    resp = await client.post("/api/orders/cancel", json={})

    assert resp.status == 400
    assert (await resp.json())["error"].startswith("Missing required field")


async def test_cancel_item(client, ledger, order_store):
    p1 = ledger.add_product()
    order_id = order_store.add_order(status="paid", lines=[(p1, 2, Decimal("100.00"))])
    item_id = order_store.item_ids(order_id)[0]

    resp = await client.post("/api/orders/cancel-item",
                             json={"order_item_id": str(item_id), "cancelled_quantity": 1})

    assert resp.status == 200
    body = await resp.json()
    assert body["all_items_cancelled"] is False
    assert body["order"]["status"] == "processing"
    assert Decimal(body["order"]["total_amount"]) == Decimal("150.00")


async def test_verify_payment_places_order(client, ledger, order_store):
    p1 = ledger.add_product(stock=3)

    resp = await client.post("/api/razorpay/verify-payment",
                             json=checkout_body([(p1, 1, PRICE)]),
                             headers={"X-User-Id": "user-1"})

    assert resp.status == 200
    body = await resp.json()
    assert body["success"] is True
    assert body["order"]["status"] == "paid"
    assert body["order"]["order_number"] == "ORD-1001"
    assert ledger.stock(p1) == 2
    assert len(order_store.orders) == 1


async def test_verify_payment_rejects_bad_signature(client, ledger, order_store):
    p1 = ledger.add_product(stock=3)
    body = checkout_body([(p1, 1, PRICE)])
    body["razorpay_signature"] = "forged"

    resp = await client.post("/api/razorpay/verify-payment", json=body,
                             headers={"X-User-Id": "user-1"})

    assert resp.status == 400
    assert (await resp.json())["error"] == "Invalid payment signature"
    assert ledger.stock(p1) == 3
    assert order_store.orders == {}


async def test_verify_payment_with_non_ascii_signature(client, ledger, order_store):
    p1 = ledger.add_product(stock=3)
    body = checkout_body([(p1, 1, PRICE)])
    body["razorpay_signature"] = "é" * 64

    resp = await client.post("/api/razorpay/verify-payment", json=body,
                             headers={"X-User-Id": "user-1"})

    assert resp.status == 400
    assert (await resp.json())["error"] == "Invalid payment signature"
    assert order_store.orders == {}


async def test_verify_payment_requires_user(client, ledger):
    p1 = ledger.add_product(stock=3)

    resp = await client.post("/api/razorpay/verify-payment", json=checkout_body([(p1, 1, PRICE)]))

    assert resp.status == 401


async def test_track_order(client, ledger, order_store):
    p1 = ledger.add_product()
    order_id = order_store.add_order(status="shipped", lines=[(p1, 1, Decimal("1299.00"))])

    resp = await client.get(f"/api/orders/{order_id}", headers={"X-User-Id": "user-1"})

    assert resp.status == 200
    body = await resp.json()
    assert body["order"]["id"] == str(order_id)
    assert body["total_display"] == "₹1,349.00"
    assert body["can_cancel"] is True


async def test_track_order_of_another_user(client, order_store):
    order_id = order_store.add_order()

    resp = await client.get(f"/api/orders/{order_id}", headers={"X-User-Id": "intruder"})

    assert resp.status == 404


async def test_admin_requires_session(client):
    resp = await client.post("/api/admin/update-order-status",
                             json={"orderId": str(uuid.uuid4()), "status": "shipped"})

    assert resp.status == 401


async def test_admin_rejects_malformed_user_id(client):
    resp = await client.get("/api/admin/logs", headers={"X-User-Id": "bad id"})

    assert resp.status == 403
    assert (await resp.json())["error"] == "Forbidden: Invalid user ID format"


async def test_admin_rejects_non_admin(client):
    resp = await client.get("/api/admin/logs", headers={"X-User-Id": "z" * 24})

    assert resp.status == 403
    assert (await resp.json())["error"] == "Forbidden: User is not an admin"


async def test_admin_cancel_is_audited(client, storefront, order_store, admin_log_store):
    order_id = order_store.add_order(status="processing")

    resp = await client.post(
        "/api/admin/update-order-status",
        json={"orderId": str(order_id), "status": "cancelled"},
        headers={"X-User-Id": ADMIN_ID, "X-Forwarded-For": "203.0.113.9"}
    )
    await storefront.admin_log_service.drain()

    assert resp.status == 200
    assert (await resp.json())["order"]["status"] == "cancelled"
    entry = admin_log_store.entries[0]
    assert entry["action"] == "CANCEL_ORDER"
    assert entry["admin_id"] == ADMIN_ID
    assert entry["resource_id"] == str(order_id)
    assert entry["ip_address"] == "203.0.113.9"


async def test_admin_cannot_cancel_delivered_order(client, order_store, admin_log_store, storefront):
    order_id = order_store.add_order(status="delivered")

    resp = await client.post(
        "/api/admin/update-order-status",
        json={"orderId": str(order_id), "status": "cancelled"},
        headers={"X-User-Id": ADMIN_ID}
    )
    await storefront.admin_log_service.drain()

    assert resp.status == 400
    assert order_store.orders[order_id]["status"] == "delivered"
    assert admin_log_store.entries == []


async def test_admin_status_update_survives_audit_failure(client, storefront, order_store,
                                                          admin_log_store):
    admin_log_store.fail = True
    order_id = order_store.add_order(status="paid")

    resp = await client.post(
        "/api/admin/update-order-status",
        json={"orderId": str(order_id), "status": "shipped"},
        headers={"X-User-Id": ADMIN_ID}
    )
    await storefront.admin_log_service.drain()

    assert resp.status == 200
    assert order_store.orders[order_id]["status"] == "shipped"


async def test_admin_set_stock(client, storefront, ledger, admin_log_store):
    p1 = ledger.add_product(stock=1)

    resp = await client.post("/api/admin/update-stock",
                             json={"productId": str(p1), "quantity": 40},
                             headers={"X-User-Id": ADMIN_ID})
    await storefront.admin_log_service.drain()

    assert resp.status == 200
    assert ledger.stock(p1) == 40
    assert admin_log_store.entries[0]["action"] == "UPDATE_STOCK"
    assert admin_log_store.entries[0]["details"] == {"quantity": 40}


async def test_admin_logs_listing(client, admin_log_service, admin_log_store):
    await admin_log_service.log_action(AdminAction(admin_id=ADMIN_ID, action="UPDATE_STOCK"))

    resp = await client.get("/api/admin/logs?limit=10", headers={"X-User-Id": ADMIN_ID})

    assert resp.status == 200
    logs = (await resp.json())["logs"]
    assert [entry["action"] for entry in logs] == ["UPDATE_STOCK"]


async def test_admin_logs_limit_bounds(client):
    resp = await client.get("/api/admin/logs?limit=0", headers={"X-User-Id": ADMIN_ID})

    assert resp.status == 400


async def test_admin_rate_limit(client, storefront):
    storefront.rate_limiter.max_requests = 2
    headers = {"X-User-Id": ADMIN_ID, "X-Forwarded-For": "198.51.100.1"}

    statuses = [(await client.get("/api/admin/logs", headers=headers)).status for _ in range(3)]

    assert statuses == [200, 200, 429]
    resp = await client.get("/api/admin/logs", headers=headers)
    assert "Retry-After" in resp.headers
    other = await client.get("/api/admin/logs",
                             headers={"X-User-Id": ADMIN_ID, "X-Forwarded-For": "198.51.100.2"})
    assert other.status == 200


async def test_cleanup_stops_rate_limit_sweeper(storefront):
    await storefront._on_startup(storefront.application)
    sweeper = storefront._cleanup_task

    await storefront._on_cleanup(storefront.application)

    assert sweeper.done()
    assert sweeper.cancelled()
