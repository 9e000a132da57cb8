from datetime import datetime

import pytest
from flask_jwt_extended import create_access_token
from werkzeug.security import generate_password_hash

from storefront import create_app
from storefront.config import TestConfig
from storefront.extensions import db
from storefront.model import CartOfferProduct, Product, User, Variant


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make(role="user", email=None):
        counter["n"] += 1
        u = User(
            email=email or f"user{counter['n']}@example.com",
            first_name="Test",
            password_hash=generate_password_hash("secret123"),
            role=role,
        )
        db.session.add(u)
        db.session.commit()
        return u

    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(role="admin", email="admin@example.com")


def auth_headers(u):
    return {"Authorization": f"Bearer {create_access_token(identity=str(u.id))}"}


@pytest.fixture
def headers(user):
    return auth_headers(user)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def catalog(app):
    """One product with a 2000 and a 300 variant."""
    p = Product(name="Trail Shoe", slug="trail-shoe", sku="TS-1", mrp=2500, our_price=2000)
    big = Variant(name="42", sku="TS-1-42", slug="trail-shoe-42", mrp=2500, our_price=2000, stock=10,
                  created_at=datetime(2026, 1, 1, 10, 0))
    small = Variant(name="Socks", sku="TS-1-SX", slug="trail-shoe-socks", mrp=400, our_price=300, stock=50,
                    created_at=datetime(2026, 1, 1, 10, 5))
    p.variants.extend([big, small])
    db.session.add(p)
    db.session.commit()
    return {"product": p, "big": big, "small": small}


@pytest.fixture
def offers(app):
    rows = [
        CartOfferProduct(product_name="Water Bottle", product_image="bottle.png", range="1000", our_price=99),
        CartOfferProduct(product_name="Cap", product_image="cap.png", range="5000", our_price=199),
        CartOfferProduct(product_name="Backpack", product_image="bag.png", range="5000", our_price=499),
    ]
    db.session.add_all(rows)
    db.session.commit()
    return {r.product_name: r for r in rows}


def data_of(resp):
    return resp.get_json()["data"]
