"""
API tests for POST /api/orders

Test Coverage:
1. Successful creation, stock conservation, snapshot fields
2. Insufficient stock rejects the whole order without touching stock
3. Product not found (unknown and malformed ids)
4. Empty / missing items and request validation
5. Seller derivation and single-seller enforcement
"""

import uuid

from sqlmodel import select

from marketplace.models.order import Order
from marketplace.models.product import Product


def test_order_decrements_stock(client, auth, make_user, make_product, order_payload, reload):
    buyer = make_user("buyer")
    seller = make_user("seller")
    product = make_product(seller, stock=10)

    res = client.post("/api/orders", json=order_payload((product, 2)), headers=auth(buyer))

    assert res.status_code == 201
    body = res.json()
    assert body["success"] is True
    assert body["message"] == "Order created successfully"

    order = body["data"]
    assert order["buyer"] == str(buyer.id)
    assert order["seller"] == str(seller.id)
    assert order["lifecycleStatus"] == "pending"
    assert order["isPaid"] is False
    assert order["paidAt"] is None
    assert order["paymentConfirmation"] is None
    assert order["isDelivered"] is False
    assert order["currency"] == "INR"
    assert order["items"] == [
        {
            "product": str(product.id),
            "name": "Container Handling",
            "quantity": 2,
            "unitPrice": 500.0,
            "image": "",
            "lineTotal": 1000.0,
        }
    ]
    assert order["shippingAddress"]["port"] == "Cochin Port"

    assert reload(Product, product.id).stock == 8


def test_prices_are_stored_as_submitted(client, auth, make_user, make_product, order_payload):
    buyer = make_user("buyer")
    product = make_product(make_user("seller"))
    payload = order_payload(
        (product, 1),
        itemsPrice=1.0,
        taxPrice=2.0,
        shippingPrice=3.0,
        totalPrice=4.0,
        currency="USD",
    )

    order = client.post("/api/orders", json=payload, headers=auth(buyer)).json()["data"]

    assert (order["itemsPrice"], order["taxPrice"], order["shippingPrice"], order["totalPrice"]) == (
        1.0,
        2.0,
        3.0,
        4.0,
    )
    assert order["currency"] == "USD"


def test_multi_line_stock_conservation(client, auth, make_user, make_product, order_payload, reload):
    buyer = make_user("buyer")
    seller = make_user("seller")
    crane = make_product(seller, stock=5, name="Crane Hire")
    storage = make_product(seller, stock=3, name="Cold Storage")

    res = client.post(
        "/api/orders",
        json=order_payload((crane, 5), (storage, 1)),
        headers=auth(buyer),
    )

    assert res.status_code == 201
    assert [line["name"] for line in res.json()["data"]["items"]] == ["Crane Hire", "Cold Storage"]
    assert reload(Product, crane.id).stock == 0
    assert reload(Product, storage.id).stock == 2


def test_insufficient_stock_is_rejected(client, auth, make_user, make_product, order_payload, reload):
    buyer = make_user("buyer")
    product = make_product(make_user("seller"), stock=10, name="Freight Forwarding")

    res = client.post("/api/orders", json=order_payload((product, 15)), headers=auth(buyer))

    assert res.status_code == 400
    assert res.json() == {
        "success": False,
        "message": "Insufficient stock for Freight Forwarding. Available: 10, Requested: 15",
    }
    assert reload(Product, product.id).stock == 10


def test_insufficient_line_aborts_whole_order(
    client, auth, make_user, make_product, order_payload, reload, session
):
    buyer = make_user("buyer")
    seller = make_user("seller")
    plenty = make_product(seller, stock=10, name="Warehousing")
    scarce = make_product(seller, stock=1, name="Customs Clearance")

    res = client.post(
        "/api/orders",
        json=order_payload((plenty, 2), (scarce, 3)),
        headers=auth(buyer),
    )

    assert res.status_code == 400
    assert "Customs Clearance" in res.json()["message"]
    assert reload(Product, plenty.id).stock == 10
    assert reload(Product, scarce.id).stock == 1
    assert session.exec(select(Order)).all() == []


def test_repeated_product_is_checked_against_its_total(
    client, auth, make_user, make_product, order_payload, reload, session
):
    buyer = make_user("buyer")
    product = make_product(make_user("seller"), stock=10, name="Crane Hire")

    res = client.post(
        "/api/orders",
        json=order_payload((product, 6), (product, 6)),
        headers=auth(buyer),
    )

    assert res.status_code == 400
    assert res.json()["message"] == "Insufficient stock for Crane Hire. Available: 10, Requested: 12"
    assert reload(Product, product.id).stock == 10
    assert session.exec(select(Order)).all() == []


def test_repeated_product_within_stock(client, auth, make_user, make_product, order_payload, reload):
    buyer = make_user("buyer")
    product = make_product(make_user("seller"), stock=10, name="Crane Hire")

    res = client.post(
        "/api/orders",
        json=order_payload((product, 4), (product, 6)),
        headers=auth(buyer),
    )

    assert res.status_code == 201
    assert [line["quantity"] for line in res.json()["data"]["items"]] == [4, 6]
    assert reload(Product, product.id).stock == 0


def test_first_failing_line_is_reported(client, auth, make_user, make_product, order_payload):
    buyer = make_user("buyer")
    seller = make_user("seller")
    first = make_product(seller, stock=0, name="Pilotage")
    second = make_product(seller, stock=0, name="Towage")

    res = client.post(
        "/api/orders",
        json=order_payload((first, 1), (second, 1)),
        headers=auth(buyer),
    )

    assert res.json()["message"] == "Insufficient stock for Pilotage. Available: 0, Requested: 1"


def test_unknown_product(client, auth, make_user, make_product, order_payload, reload):
    buyer = make_user("buyer")
    product = make_product(make_user("seller"), stock=10)
    payload = order_payload((product, 1))
    missing = str(uuid.uuid4())
    payload["items"].append({"product": missing, "name": "Ghost", "quantity": 1, "price": 1})

    res = client.post("/api/orders", json=payload, headers=auth(buyer))

    assert res.status_code == 404
    assert res.json()["message"] == f"Product not found: {missing}"
    assert reload(Product, product.id).stock == 10


def test_malformed_product_id_is_not_found(client, auth, make_user, order_payload):
    payload = order_payload()
    payload["items"] = [{"product": "not-an-id", "quantity": 1}]

    res = client.post("/api/orders", json=payload, headers=auth(make_user("buyer")))

    assert res.status_code == 404
    assert res.json()["message"] == "Product not found: not-an-id"


def test_empty_items(client, auth, make_user, order_payload):
    res = client.post("/api/orders", json=order_payload(), headers=auth(make_user("buyer")))

    assert res.status_code == 400
    assert res.json() == {"success": False, "message": "No order items"}


def test_missing_items_is_treated_as_empty(client, auth, make_user, order_payload):
    payload = order_payload()
    del payload["items"]

    res = client.post("/api/orders", json=payload, headers=auth(make_user("buyer")))

    assert res.status_code == 400
    assert res.json()["message"] == "No order items"


def test_legacy_order_items_key(client, auth, make_user, make_product, order_payload):
    product = make_product(make_user("seller"))
    payload = order_payload((product, 1))
    payload["orderItems"] = payload.pop("items")

    res = client.post("/api/orders", json=payload, headers=auth(make_user("buyer")))

    assert res.status_code == 201
    assert len(res.json()["data"]["items"]) == 1


def test_shipping_address_is_required(client, auth, make_user, make_product, order_payload):
    product = make_product(make_user("seller"))
    payload = order_payload((product, 1))
    del payload["shippingAddress"]

    res = client.post("/api/orders", json=payload, headers=auth(make_user("buyer")))

    assert res.status_code == 400
    assert res.json()["success"] is False
    assert "shippingAddress" in res.json()["message"]


def test_blank_address_field_is_rejected(client, auth, make_user, make_product, order_payload):
    product = make_product(make_user("seller"))
    payload = order_payload((product, 1))
    payload["shippingAddress"]["city"] = "   "

    res = client.post("/api/orders", json=payload, headers=auth(make_user("buyer")))

    assert res.status_code == 400
    assert "city" in res.json()["message"]


def test_unknown_payment_method(client, auth, make_user, make_product, order_payload):
    product = make_product(make_user("seller"))
    payload = order_payload((product, 1), paymentMethod="CASH")

    res = client.post("/api/orders", json=payload, headers=auth(make_user("buyer")))

    assert res.status_code == 400
    assert "paymentMethod" in res.json()["message"]


def test_zero_quantity_is_rejected(client, auth, make_user, make_product, order_payload, reload):
    product = make_product(make_user("seller"), stock=10)

    res = client.post(
        "/api/orders",
        json=order_payload((product, 0)),
        headers=auth(make_user("buyer")),
    )

    assert res.status_code == 400
    assert reload(Product, product.id).stock == 10


def test_requires_authentication(client, make_user, make_product, order_payload):
    product = make_product(make_user("seller"))

    res = client.post("/api/orders", json=order_payload((product, 1)))

    assert res.status_code == 401
    assert res.json() == {"success": False, "message": "Not authorized, no token"}


def test_seller_comes_from_catalog(client, auth, make_user, make_product, order_payload):
    seller = make_user("seller")
    product = make_product(seller)
    payload = order_payload((product, 1))
    del payload["items"][0]["seller"]

    res = client.post("/api/orders", json=payload, headers=auth(make_user("buyer")))

    assert res.status_code == 201
    assert res.json()["data"]["seller"] == str(seller.id)


def test_mixed_sellers_are_rejected(client, auth, make_user, make_product, order_payload, reload):
    first = make_product(make_user("seller"), stock=10)
    second = make_product(make_user("seller"), stock=10)

    res = client.post(
        "/api/orders",
        json=order_payload((first, 1), (second, 1)),
        headers=auth(make_user("buyer")),
    )

    assert res.status_code == 400
    assert res.json()["message"] == "All items in an order must come from the same seller"
    assert reload(Product, first.id).stock == 10
    assert reload(Product, second.id).stock == 10


def test_client_seller_must_match_catalog(client, auth, make_user, make_product, order_payload):
    product = make_product(make_user("seller"))
    payload = order_payload((product, 1))
    payload["items"][0]["seller"] = str(make_user("seller").id)

    res = client.post("/api/orders", json=payload, headers=auth(make_user("buyer")))

    assert res.status_code == 400
    assert res.json()["message"] == f"Seller does not match the listing for product {product.id}"


def test_snapshot_survives_catalog_edits(client, auth, make_user, make_product, place_order, session):
    buyer = make_user("buyer")
    product = make_product(make_user("seller"), price=500.0, name="Documentation")
    order = place_order(buyer, (product, 1))

    product.name = "Documentation (Express)"
    product.price = 900.0
    session.add(product)
    session.commit()

    res = client.get(f"/api/orders/{order['id']}", headers=auth(buyer))

    line = res.json()["data"]["items"][0]
    assert line["name"] == "Documentation"
    assert line["unitPrice"] == 500.0
