from conftest import data_of
from storefront.extensions import db
from storefront.model import Brand


def test_health(client):
    assert client.get("/").get_json() == {"ok": True, "msg": "API running"}


def test_login_and_me(client):
    client.post("/api/auth/register", json={"email": "dev@example.com", "password": "secret123"})
    resp = client.post("/api/auth/login", json={"email": "dev@example.com", "password": "secret123"})
    assert resp.status_code == 200
    tokens = data_of(resp)

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {tokens['token']}"})
    assert data_of(me)["user"]["email"] == "dev@example.com"

    refreshed = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert refreshed.status_code == 200
    # refresh tokens are single-use
    again = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert again.status_code == 401

    bad = client.post("/api/auth/login", json={"email": "dev@example.com", "password": "wrong-pass"})
    assert bad.status_code == 401


def test_product_listing_and_lookup(client, catalog):
    body = data_of(client.get("/api/products?q=trail"))
    assert body["meta"]["total"] == 1
    assert len(body["items"][0]["variants"]) == 2

    assert data_of(client.get("/api/products/trail-shoe"))["sku"] == "TS-1"
    assert client.get(f"/api/products/{catalog['product'].id}").status_code == 200
    assert client.get("/api/products/missing").status_code == 404
    assert data_of(client.get("/api/products?min_price=5000"))["meta"]["total"] == 0


def test_create_product_is_admin_only(client, headers, admin_headers):
    payload = {
        "name": "Rain Jacket", "sku": "RJ-1", "mrp": 3000, "our_price": 2400,
        "variants": [{"name": "M", "sku": "RJ-1-M", "stock": 4}],
    }
    assert client.post("/api/products", json=payload, headers=headers).status_code == 403

    resp = client.post("/api/products", json=payload, headers=admin_headers)
    assert resp.status_code == 201
    product = data_of(resp)
    assert product["slug"] == "rain-jacket"
    assert product["variants"][0]["our_price"] == 2400.0

    assert client.post("/api/products", json=payload, headers=admin_headers).status_code == 409


def test_categories_and_brands(client, admin_headers):
    resp = client.post("/api/categories", json={"name": "Outdoor Gear"}, headers=admin_headers)
    assert resp.status_code == 201
    assert data_of(resp)["category"]["slug"] == "outdoor-gear"
    names = [c["name"] for c in data_of(client.get("/api/categories"))["items"]]
    assert names == ["Outdoor Gear"]

    brand = Brand(name="Peak", slug="peak")
    db.session.add(brand)
    db.session.commit()

    assert client.patch(f"/api/brands/{brand.id}", json={"isActive": "no"}, headers=admin_headers).status_code == 400
    resp = client.patch(f"/api/brands/{brand.id}", json={"isActive": False}, headers=admin_headers)
    assert data_of(resp)["is_active"] is False
    assert data_of(client.get("/api/brands"))["items"] == []

    assert client.delete(f"/api/brands/{brand.id}", headers=admin_headers).status_code == 200
    assert client.delete(f"/api/brands/{brand.id}", headers=admin_headers).status_code == 404


def test_admin_coupons(client, admin_headers, headers):
    body = {"code": "WELCOME", "type": "percent", "value": 15}
    assert client.post("/api/coupons", json=body, headers=headers).status_code == 403

    resp = client.post("/api/coupons", json=body, headers=admin_headers)
    assert resp.status_code == 201
    assert data_of(resp)["type"] == "percent"

    assert client.post("/api/coupons", json=body, headers=admin_headers).status_code == 400
    bad = client.post("/api/coupons", json={"code": "X", "type": "percent", "value": 150}, headers=admin_headers)
    assert bad.status_code == 400
    assert bad.get_json()["message"] == "percent coupon must be <= 100"

    items = data_of(client.get("/api/coupons?active=true", headers=admin_headers))["items"]
    assert [c["code"] for c in items] == ["WELCOME"]
