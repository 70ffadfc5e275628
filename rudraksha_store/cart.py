from bson import ObjectId
from flask import Blueprint, current_app, g

from .auth import token_required
from .extensions import mongo
from .helpers import ApiError, api_response, parse_object_id, read_json_body, serialize, utcnow
from .schemas import CartItemRequest, CartQuantityUpdate

bp = Blueprint("cart", __name__, url_prefix="/api/cart")

MAX_CART_LINES = 50


def line_unit_price(item):
    """Base price plus the chosen size and design surcharges."""
    size_price = (item.get("size") or {}).get("price") or 0
    design_price = (item.get("design") or {}).get("price") or 0
    return (item.get("price") or 0) + size_price + design_price


def calculate_cart_totals(items):
    subtotal = sum(line_unit_price(item) * item["quantity"] for item in items)
    total_items = sum(item["quantity"] for item in items)
    return subtotal, total_items


def _variant_key(size, design):
    size_key = None
    if size:
        size_key = str(size.get("sizeId") or "") or size.get("size")
    design_key = (design or {}).get("title")
    return size_key, design_key


def is_same_line(item, product_id, size, design):
    if str(item["productId"]) != str(product_id):
        return False
    return _variant_key(item.get("size"), item.get("design")) == _variant_key(size, design)


def find_cart(customer_id):
    return mongo.db.carts.find_one({"customerId": customer_id})


def get_or_create_cart(customer_id):
    """Returns the customer's cart, creating an empty one on first use."""
    cart = find_cart(customer_id)
    if cart:
        return cart
    now = utcnow()
    cart = {
        "customerId": customer_id,
        "items": [],
        "subtotal": 0,
        "totalItems": 0,
        "createdAt": now,
        "updatedAt": now,
    }
    result = mongo.db.carts.insert_one(cart)
    current_app.logger.debug(f"New cart created for customer {customer_id} with ID: {result.inserted_id}")
    return cart


def save_items(cart, items):
    subtotal, total_items = calculate_cart_totals(items)
    mongo.db.carts.update_one(
        {"_id": cart["_id"]},
        {"$set": {"items": items, "subtotal": subtotal, "totalItems": total_items, "updatedAt": utcnow()}},
    )
    cart.update(items=items, subtotal=subtotal, totalItems=total_items)
    return cart


def present_cart(cart):
    if not cart:
        return {"id": None, "items": [], "subtotal": 0, "totalItems": 0}
    return serialize({
        "_id": cart["_id"],
        "items": cart.get("items", []),
        "subtotal": cart.get("subtotal", 0),
        "totalItems": cart.get("totalItems", 0),
    })


def _selection(model):
    return model.model_dump() if model is not None else None


def _size_selection(model):
    """Size choice with its sizeId stored as an ObjectId, as on products."""
    size = _selection(model)
    if size is not None:
        size["sizeId"] = parse_object_id(size["sizeId"], "size ID") if size.get("sizeId") else None
    return size


@bp.route("", methods=["GET"])
@token_required()
def view_cart():
    """Displays the contents of the user's shopping cart."""
    cart = find_cart(g.current_user["_id"])
    message = "Cart retrieved successfully" if cart else "No cart found"
    return api_response(message, present_cart(cart))


@bp.route("", methods=["POST"])
@token_required()
def add_to_cart():
    """Adds a product (with an optional size and design) to the user's cart."""
    data = CartItemRequest.model_validate(read_json_body())
    size, design = _size_selection(data.size), _selection(data.design)

    product = mongo.db.products.find_one({"_id": ObjectId(data.productId)})
    if not product:
        raise ApiError("Product not found", 404)
    if product.get("stock", 0) < data.quantity:
        raise ApiError("Insufficient stock", 400)

    cart = get_or_create_cart(g.current_user["_id"])
    items = cart.get("items", [])

    same_product = any(str(item["productId"]) == data.productId for item in items)
    if len(items) >= MAX_CART_LINES and not same_product:
        raise ApiError(f"Cart cannot exceed {MAX_CART_LINES} unique items", 400)
    if any(is_same_line(item, data.productId, size, design) for item in items):
        raise ApiError("Item already in cart", 400)

    images = product.get("images") or []
    items.append({
        "productId": product["_id"],
        "name": product["name"],
        "image": images[0] if images else "",
        "price": product["price"],
        "quantity": data.quantity,
        "size": size,
        "design": design,
    })
    cart = save_items(cart, items)
    current_app.logger.debug(f"{data.quantity}x '{product['name']}' added to cart {cart['_id']}")
    return api_response("Product added to cart successfully", present_cart(cart), 201)


@bp.route("", methods=["PATCH"])
@token_required()
def update_cart_quantity():
    """Sets the quantity of one cart line; zero removes the line."""
    data = CartQuantityUpdate.model_validate(read_json_body())
    size, design = _size_selection(data.size), _selection(data.design)

    cart = find_cart(g.current_user["_id"])
    if not cart or not cart.get("items"):
        raise ApiError("Cart not found or empty", 404)

    items = cart["items"]
    line = next((item for item in items if is_same_line(item, data.productId, size, design)), None)
    if line is None:
        line = next((item for item in items if str(item["productId"]) == data.productId), None)
    if line is None:
        raise ApiError("Product not found in your cart", 404)

    if data.quantity == 0:
        items.remove(line)
        message = f"'{line['name']}' removed from cart"
    else:
        product = mongo.db.products.find_one({"_id": line["productId"]})
        if not product:
            raise ApiError("Product not found", 404)
        if data.quantity > product.get("stock", 0):
            raise ApiError(f"Only {product.get('stock', 0)} of '{line['name']}' available", 400)
        line["quantity"] = data.quantity
        message = "Cart updated successfully"

    cart = save_items(cart, items)
    return api_response(message, present_cart(cart))


@bp.route("/clear", methods=["DELETE"])
@token_required()
def clear_cart():
    """Empties the current user's shopping cart."""
    cart = find_cart(g.current_user["_id"])
    if cart:
        save_items(cart, [])
    return api_response("Your shopping cart has been cleared", {"items": []}, cartCleared=True)


@bp.route("/<product_id>", methods=["DELETE"])
@token_required()
def remove_all_from_cart(product_id):
    """Removes every line of a product from the user's cart."""
    product_oid = parse_object_id(product_id, "product ID")
    cart = find_cart(g.current_user["_id"])
    if not cart or not cart.get("items"):
        raise ApiError("Cart not found or empty", 404)

    remaining = [item for item in cart["items"] if item["productId"] != product_oid]
    if len(remaining) == len(cart["items"]):
        raise ApiError("Product not found in your cart", 404)
    cart = save_items(cart, remaining)
    return api_response("Item removed from cart", present_cart(cart))
