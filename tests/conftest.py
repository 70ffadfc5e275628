import mongomock
import pytest
from bson import ObjectId

from rudraksha_store import create_app
from rudraksha_store.auth import generate_token, hash_password
from rudraksha_store.extensions import mongo
from rudraksha_store.helpers import utcnow

PASSWORD = "Secret@123"


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "MONGO_URI": "mongodb://localhost:27017/rudraksha_test",
        "JWT_SECRET": "staff-test-secret",
        "CUSTOMER_JWT_SECRET": "customer-test-secret",
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        "ADMIN_EMAIL": "owner@beads.com",
        "ADMIN_PASSWORD": "Owner@12345",
    })
    mongo.cx = mongomock.MongoClient()
    mongo.db = mongo.cx["rudraksha_test"]
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    return mongo.db


@pytest.fixture
def make_user(app, db):
    """Inserts a user and returns (user, auth headers)."""
    def _make(role="customer", email=None):
        email = email or f"{role}-{ObjectId()}@beads.com"
        now = utcnow()
        user = {
            "email": email,
            "name": f"Test {role}",
            "password": hash_password(PASSWORD),
            "role": role,
            "contactNumber": "9841000000",
            "image": "",
            "createdAt": now,
            "updatedAt": now,
        }
        user["_id"] = db.users.insert_one(user).inserted_id
        with app.app_context():
            token = generate_token(email, role)
        return user, {"Authorization": f"Bearer {token}"}
    return _make


@pytest.fixture
def customer(make_user):
    return make_user("customer", "buyer@beads.com")


@pytest.fixture
def other_customer(make_user):
    return make_user("customer", "someone@beads.com")


@pytest.fixture
def admin(make_user):
    return make_user("admin", "admin@beads.com")


@pytest.fixture
def editor(make_user):
    return make_user("editor", "editor@beads.com")


@pytest.fixture
def make_product(db):
    def _make(name="5 Mukhi Mala", price=100.0, stock=10, **extra):
        now = utcnow()
        product = {
            "name": name,
            "slug": name.lower().replace(" ", "-"),
            "price": price,
            "stock": stock,
            "category": [],
            "subcategory": [],
            "description": "<p>Beads</p>",
            "benefit": "<p>Calm</p>",
            "feature": False,
            "sizes": [],
            "designs": [],
            "images": ["/images/mala.png"],
            "createdAt": now,
            "updatedAt": now,
        }
        product.update(extra)
        product["_id"] = db.products.insert_one(product).inserted_id
        return product
    return _make


@pytest.fixture
def product(make_product):
    return make_product()


@pytest.fixture
def location(db):
    country_id = db.countries.insert_one({"name": "Nepal", "isActive": True}).inserted_id
    province_id = db.provinces.insert_one(
        {"name": "Bagmati", "countryId": country_id, "isActive": True}
    ).inserted_id
    city_id = db.cities.insert_one(
        {"name": "Lalitpur", "provinceId": province_id, "shippingCost": 150, "isActive": True}
    ).inserted_id
    return {"countryId": country_id, "provinceId": province_id, "cityId": city_id}


@pytest.fixture
def make_cart(db):
    """Inserts a cart for a user from (product, quantity) pairs."""
    def _make(user, lines):
        items = [
            {
                "productId": product["_id"],
                "name": product["name"],
                "image": product["images"][0],
                "price": product["price"],
                "quantity": quantity,
                "size": None,
                "design": None,
            }
            for product, quantity in lines
        ]
        cart = {
            "customerId": user["_id"],
            "items": items,
            "subtotal": sum(p["price"] * q for p, q in lines),
            "totalItems": sum(q for _, q in lines),
            "createdAt": utcnow(),
            "updatedAt": utcnow(),
        }
        cart["_id"] = db.carts.insert_one(cart).inserted_id
        return cart
    return _make
