from __future__ import annotations


def _seed_china(client):
    created = client.post(
        "/shipping-rates",
        json={"country": "China", "baseRate": "25.00", "perKgRate": "8.00", "commissionRate": "0.18"},
    )
    assert created.status_code == 201
    rule = client.post(
        "/commission-rules",
        json={"country": "China", "minValue": "0", "maxValue": "500", "percentage": "0.18", "fixedFee": "0"},
    )
    assert rule.status_code == 201
    return rule.json()


def test_calculate_shipping_endpoint(client):
    _seed_china(client)

    resp = client.post(
        "/calculate-shipping",
        json={"country": "China", "category": "normal", "weight": 3, "orderValue": 100, "itemsHash": "h1"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["base_shipping"] == "49.00"
    assert body["commission"] == "18.00"
    assert body["total"] == "67.00"
    assert body["currency"] == "USD"
    assert body["items_hash"] == "h1"


def test_calculate_shipping_requires_all_fields(client):
    resp = client.post("/calculate-shipping", json={"country": "China", "category": "normal", "weight": 3})
    assert resp.status_code == 422


def test_unknown_country_is_404(client):
    resp = client.post(
        "/calculate-shipping",
        json={"country": "Atlantis", "category": "normal", "weight": 1, "orderValue": 10},
    )
    assert resp.status_code == 404
    assert resp.json()["error"] == "configuration_not_found"


def test_negative_weight_is_400(client):
    _seed_china(client)
    resp = client.post(
        "/calculate-shipping",
        json={"country": "China", "category": "normal", "weight": -1, "orderValue": 10},
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_input"


def test_rate_and_rule_admin_roundtrip(client):
    rule = _seed_china(client)

    countries = client.get("/shipping-countries")
    assert countries.json() == ["China"]

    updated = client.put("/shipping-rates/China", json={"perKgRate": "9.00"})
    assert updated.status_code == 200
    assert updated.json()["per_kg_rate"] == "9.00"

    widened = client.put(f"/commission-rules/{rule['rule_id']}", json={"maxValue": ""})
    assert widened.status_code == 200
    assert widened.json()["max_value"] is None

    assert client.delete(f"/commission-rules/{rule['rule_id']}").status_code == 200
    assert client.get("/commission-rules").json() == []
    assert client.delete("/shipping-rates/China").status_code == 200
    assert client.delete("/shipping-rates/China").status_code == 404


def test_category_surcharge_endpoint_affects_quote(client):
    _seed_china(client)
    resp = client.put("/category-surcharges", json={"category": "clothing", "multiplier": "2"})
    assert resp.status_code == 200

    quote = client.post(
        "/calculate-shipping",
        json={"country": "China", "category": "clothing", "weight": 3, "orderValue": 100},
    )
    assert quote.json()["base_shipping"] == "98.00"


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}
