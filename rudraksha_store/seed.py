import click
from flask import current_app
from flask.cli import with_appcontext
from pymongo import ASCENDING, ReturnDocument

from .auth import hash_password
from .extensions import mongo
from .helpers import slugify, utcnow

INITIAL_CATEGORIES = [
    {"name": "Rudraksha Malas", "image": "/images/5muki.png"},
    {"name": "Single Mukhis", "image": "/images/single.png"},
    {"name": "Bracelets", "image": "/images/bracelet.jpg"},
    {"name": "Spiritual Jewelry", "image": "/images/mala.png"},
]

INITIAL_PRODUCTS = [
    {
        "name": "5 Mukhi Rudraksha Mala",
        "category": "Rudraksha Malas",
        "price": 149.99,
        "stock": 40,
        "description": "<p>108 + 1 bead mala of five faced Nepali Rudraksha, knotted on silk thread.</p>",
        "benefit": "<p>Calms the mind and supports daily japa.</p>",
        "feature": True,
        "images": ["/images/5muki.png"],
    },
    {
        "name": "1 Mukhi Rudraksha",
        "category": "Single Mukhis",
        "price": 899.00,
        "stock": 5,
        "description": "<p>Rare one faced bead, lab certified.</p>",
        "benefit": "<p>Traditionally worn for focus and clarity.</p>",
        "feature": True,
        "images": ["/images/single.png"],
    },
    {
        "name": "Rudraksha Wrist Bracelet",
        "category": "Bracelets",
        "price": 39.50,
        "stock": 120,
        "description": "<p>Elastic bracelet of small five faced beads.</p>",
        "benefit": "<p>An easy everyday way to wear Rudraksha.</p>",
        "feature": False,
        "images": ["/images/bracelet.jpg"],
    },
    {
        "name": "Ganesh Rudraksha Pendant",
        "category": "Spiritual Jewelry",
        "price": 79.99,
        "stock": 25,
        "description": "<p>Ganesh bead capped in silver.</p>",
        "benefit": "<p>Worn for new beginnings.</p>",
        "feature": False,
        "images": ["/images/mala.png"],
    },
]

INITIAL_LOCATIONS = {
    "country": "Nepal",
    "province": "Bagmati",
    "cities": [("Kathmandu", 100), ("Lalitpur", 150), ("Bhaktapur", 150)],
}


def ensure_indexes():
    db = mongo.db
    db.users.create_index([("email", ASCENDING)], unique=True)
    db.carts.create_index([("customerId", ASCENDING)], unique=True)
    db.checkouts.create_index([("customerId", ASCENDING), ("cartId", ASCENDING)])
    db.wishlist.create_index([("userId", ASCENDING), ("productId", ASCENDING)], unique=True)
    db.sizes.create_index([("size", ASCENDING)], unique=True)
    for collection in ("products", "categories", "subcategories", "blogs", "blogcategories", "testimonials",
                       "faqs", "benefits"):
        db[collection].create_index([("slug", ASCENDING)], unique=True)


def _upsert(collection, query, document):
    now = utcnow()
    return mongo.db[collection].find_one_and_update(
        query,
        {"$setOnInsert": dict(document, createdAt=now, updatedAt=now)},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )


def seed_database():
    """
    Populates an empty store with a starter catalogue, shipping locations
    and a default admin account. Existing documents are left untouched.
    """
    log = current_app.logger
    ensure_indexes()

    log.info("Initializing MongoDB catalogue...")
    categories = {}
    for category in INITIAL_CATEGORIES:
        slug = slugify(category["name"])
        doc = _upsert("categories", {"slug": slug}, dict(category, slug=slug, description="", benefit="", isActive=True))
        categories[category["name"]] = doc["_id"]

    for product in INITIAL_PRODUCTS:
        slug = slugify(product["name"])
        data = dict(product, slug=slug, category=[categories[product["category"]]], subcategory=[], sizes=[], designs=[])
        _upsert("products", {"slug": slug}, data)
    log.info(f"Catalogue ready: {len(categories)} categories, {len(INITIAL_PRODUCTS)} products")

    country = _upsert("countries", {"name": INITIAL_LOCATIONS["country"]},
                      {"name": INITIAL_LOCATIONS["country"], "isActive": True})
    province = _upsert("provinces", {"name": INITIAL_LOCATIONS["province"]},
                       {"name": INITIAL_LOCATIONS["province"], "countryId": country["_id"], "isActive": True})
    for name, cost in INITIAL_LOCATIONS["cities"]:
        _upsert("cities", {"name": name, "provinceId": province["_id"]},
                {"name": name, "provinceId": province["_id"], "shippingCost": cost, "isActive": True})

    # Ensure a default admin user exists for development
    admin_email = current_app.config["ADMIN_EMAIL"].strip().lower()
    if mongo.db.users.count_documents({"email": admin_email}) == 0:
        log.info("Creating default admin user...")
        now = utcnow()
        mongo.db.users.insert_one({
            "email": admin_email,
            "name": "Store Admin",
            "password": hash_password(current_app.config["ADMIN_PASSWORD"]),
            "role": "admin",
            "contactNumber": "",
            "image": "",
            "createdAt": now,
            "updatedAt": now,
        })
        log.info(f"Default admin user '{admin_email}' created (password from ADMIN_PASSWORD).")


@click.command("seed")
@with_appcontext
def seed_command():
    """Create indexes, the default admin and a starter catalogue."""
    seed_database()
    click.echo("Database seeded.")
