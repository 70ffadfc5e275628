"""
Order placement and order management.

Placing an order turns the customer's cart into a checkout document:
stock is reserved line by line with a conditional atomic decrement, and any
reservation already made is released again when a later line (or saving
the order) fails, so a rejected checkout never leaves stock missing.
"""

import re

from bson import ObjectId
from flask import Blueprint, current_app, g, request
from pydantic import ValidationError
from pymongo import ReturnDocument

from .auth import token_required
from .cart import line_unit_price
from .extensions import mongo
from .helpers import (
    ApiError,
    api_response,
    get_pagination,
    is_object_id,
    page_payload,
    parse_object_id,
    read_json_body,
    serialize,
    utcnow,
)
from .sanitize import sanitize_email, sanitize_text
from .schemas import ORDER_STATUSES, PAYMENT_STATUSES, CheckoutRequest, OrderUpdate, validation_messages

bp = Blueprint("checkout", __name__, url_prefix="/api")

STAFF = ("admin", "editor")


# --- Stock reservation ---

def reserve_stock(items, products):
    """
    Decrements stock for every cart line, in cart order.
    Each decrement only matches while stock still covers the quantity, so
    two concurrent checkouts can never oversell. On failure, the lines
    already reserved are released before the error propagates.
    """
    reserved = []
    taken = {}
    try:
        for item in items:
            key = str(item["productId"])
            product = products.get(key)
            if product is None:
                raise ApiError(f"Product not found: {item['productId']}", 404)

            quantity = item["quantity"]
            name = product.get("name") or "product"
            # Several lines (sizes, designs) can draw on the same product.
            if product.get("stock", 0) - taken.get(key, 0) < quantity:
                raise ApiError(f"Insufficient stock for {name}", 400)

            updated = mongo.db.products.find_one_and_update(
                {"_id": product["_id"], "stock": {"$gte": quantity}},
                {"$inc": {"stock": -quantity}},
                return_document=ReturnDocument.AFTER,
            )
            if updated is None:
                raise ApiError(
                    f"Failed to update stock for {name}: likely concurrent update or insufficient stock", 400
                )
            reserved.append((product["_id"], quantity))
            taken[key] = taken.get(key, 0) + quantity
    except Exception:
        release_stock(reserved)
        raise
    return reserved


def release_stock(reserved):
    for product_id, quantity in reserved:
        mongo.db.products.update_one({"_id": product_id}, {"$inc": {"stock": quantity}})
    if reserved:
        current_app.logger.warning(f"Released stock reserved for {len(reserved)} cart line(s)")


# --- Totals and order documents ---

def compute_totals(items, products, shipping):
    """Subtotal uses the current product price, falling back to the price stored in the cart."""
    subtotal = 0
    for item in items:
        product = products.get(str(item["productId"])) or {}
        priced = dict(item, price=product.get("price", item.get("price")) or 0)
        subtotal += line_unit_price(priced) * item["quantity"]
    items_count = sum(item["quantity"] for item in items if item["quantity"] > 0)
    return {
        "subtotal": subtotal,
        "shipping": shipping,
        "totalAmount": subtotal + shipping,
        "itemsCount": items_count,
    }


def order_item(item, product):
    product = product or {}
    images = product.get("images") or []
    size = item.get("size")
    if size:
        size = {"size": size.get("size") or "", "price": float(size.get("price") or 0), "sizeId": size.get("sizeId")}
    design = item.get("design")
    if design:
        title = design.get("title") or design.get("design") or design.get("name")
        design = {"title": title, "price": float(design.get("price") or 0), "image": design.get("image")} if title else None
    return {
        "productId": item["productId"],
        "name": item.get("name") or product.get("name") or "Unknown Item",
        "price": item.get("price") or product.get("price") or 0,
        "quantity": item.get("quantity") or 1,
        "image": item.get("image") or (images[0] if images else ""),
        "size": size,
        "design": design,
    }


def shipping_document(details):
    return {
        "fullName": sanitize_text(details.fullName),
        "email": sanitize_email(details.email),
        "phone": sanitize_text(details.phone),
        "address": sanitize_text(details.address),
        "countryId": ObjectId(details.countryId),
        "provinceId": ObjectId(details.provinceId),
        "cityId": ObjectId(details.cityId),
        "postalCode": sanitize_text(details.postalCode) or None,
        "locationUrl": sanitize_text(details.locationUrl) or None,
    }


def cart_items_for_validation(cart):
    items = []
    for item in cart["items"]:
        size = item.get("size")
        if size and size.get("sizeId") is not None:
            size = dict(size, sizeId=str(size["sizeId"]))
        items.append({
            "productId": str(item["productId"]),
            "name": item.get("name") or "Unknown Item",
            "price": item.get("price") or 0,
            "quantity": item.get("quantity") or 1,
            "image": item.get("image") or None,
            "size": size,
            "design": item.get("design"),
        })
    return items


# --- Routes ---

@bp.route("/checkout", methods=["POST"])
@token_required()
def create_checkout():
    """Places an order for the authenticated customer's cart."""
    user = g.current_user
    body = read_json_body()

    cart_id = body.get("cartId")
    if not is_object_id(cart_id):
        raise ApiError("Invalid cart ID provided", 400)
    cart = mongo.db.carts.find_one({"_id": ObjectId(cart_id)})
    if not cart:
        raise ApiError("Cart not found", 404)
    if not cart.get("items"):
        raise ApiError("Cannot create checkout with an empty cart", 400)
    current_app.logger.debug(f"Checkout requested for cart {cart_id} with {len(cart['items'])} line(s)")

    try:
        data = CheckoutRequest.model_validate(dict(body, items=cart_items_for_validation(cart)))
    except ValidationError as e:
        errors = validation_messages(e)
        current_app.logger.warning(f"Checkout validation failed: {errors}")
        raise ApiError("Invalid checkout data provided", 400, ", ".join(errors))

    details = data.shippingDetails
    for name, value in (
        ("customerId", data.customerId),
        ("cityId", details.cityId),
        ("provinceId", details.provinceId),
        ("countryId", details.countryId),
    ):
        if not is_object_id(value):
            raise ApiError(f"Invalid {name} provided", 400)

    if data.customerId != str(user["_id"]):
        raise ApiError("Forbidden: customerId must match authenticated user", 403)
    if cart.get("customerId") and cart["customerId"] != user["_id"]:
        raise ApiError("Forbidden: You can only checkout your own cart", 403)

    city = mongo.db.cities.find_one({"_id": ObjectId(details.cityId)})
    if not city or not city.get("isActive", True):
        raise ApiError("City not found or is inactive. Shipping cost cannot be determined.", 404)

    items = cart["items"]
    product_ids = [item["productId"] for item in items]
    products = {str(p["_id"]): p for p in mongo.db.products.find({"_id": {"$in": product_ids}})}

    totals = compute_totals(items, products, city.get("shippingCost", 0))
    if totals["itemsCount"] == 0:
        raise ApiError("No valid items in cart", 400)

    reserved = reserve_stock(items, products)

    now = utcnow()
    try:
        order = {
            "customerId": user["_id"],
            "cartId": cart["_id"],
            "shippingDetails": shipping_document(details),
            "items": [order_item(item, products.get(str(item["productId"]))) for item in items],
            **totals,
            "status": "pending",
            "paymentStatus": data.paymentStatus or "unpaid",
            "paymentMethod": data.paymentMethod or None,
            "createdAt": now,
            "updatedAt": now,
        }
        result = mongo.db.checkouts.insert_one(order)
    except Exception as e:
        release_stock(reserved)
        current_app.logger.error(f"Saving checkout for cart {cart_id} failed: {e}", exc_info=e)
        raise ApiError("Failed to create checkout", 500, str(e))
    order["_id"] = result.inserted_id

    # The order is saved; a cart that cannot be cleared must not fail it.
    try:
        mongo.db.carts.update_one(
            {"_id": cart["_id"], "customerId": user["_id"]},
            {"$set": {"items": [], "subtotal": 0, "totalItems": 0, "updatedAt": now}},
        )
    except Exception as e:
        current_app.logger.error(f"Checkout {order['_id']} saved but cart {cart_id} was not cleared: {e}", exc_info=e)

    current_app.logger.info(
        f"Checkout {order['_id']} created: {order['itemsCount']} item(s), total {order['totalAmount']}"
    )
    return api_response("Checkout created successfully", serialize(order), 201)


@bp.route("/checkout", methods=["GET"])
@token_required(*STAFF)
def list_checkouts():
    """Dashboard order list with a status filter and a name/email/id search."""
    page, limit, skip = get_pagination()
    query = {}

    status = request.args.get("status")
    if status and status != "all":
        query["status"] = status

    search = (request.args.get("search") or "").strip()
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        clauses = [{"shippingDetails.fullName": pattern}, {"shippingDetails.email": pattern}]
        if is_object_id(search):
            clauses.insert(0, {"_id": ObjectId(search)})
        query["$or"] = clauses

    total = mongo.db.checkouts.count_documents(query)
    orders = mongo.db.checkouts.find(query).sort("createdAt", -1).skip(skip).limit(limit)
    return api_response(
        "Checkouts retrieved successfully",
        page_payload("checkouts", [serialize(o) for o in orders], total, page, limit),
    )


@bp.route("/checkout/<checkout_id>", methods=["GET"])
@token_required()
def get_checkout(checkout_id):
    order = mongo.db.checkouts.find_one({"_id": parse_object_id(checkout_id, "checkout ID")})
    if not order:
        raise ApiError("Order not found", 404)
    user = g.current_user
    if user.get("role") not in STAFF and order.get("customerId") != user["_id"]:
        raise ApiError("Forbidden: You can only view your own orders", 403)
    return api_response("Order retrieved successfully", {"checkout": serialize(order)})


@bp.route("/checkout/<checkout_id>", methods=["PATCH"])
@token_required("admin")
def update_checkout(checkout_id):
    """Moves an order along its fulfilment status or marks it paid."""
    order_id = parse_object_id(checkout_id, "checkout ID")
    data = OrderUpdate.model_validate(read_json_body())

    update = {}
    if data.status in ORDER_STATUSES:
        update["status"] = data.status
    if data.paymentStatus in PAYMENT_STATUSES:
        update["paymentStatus"] = data.paymentStatus
    if not update:
        raise ApiError("No valid fields to update provided", 400)
    update["updatedAt"] = utcnow()

    order = mongo.db.checkouts.find_one_and_update(
        {"_id": order_id}, {"$set": update}, return_document=ReturnDocument.AFTER
    )
    if not order:
        raise ApiError("Checkout not found", 404)
    current_app.logger.info(f"Checkout {checkout_id} updated: {update}")
    return api_response("Order updated successfully", {"checkout": serialize(order)})


@bp.route("/checkout/<checkout_id>", methods=["DELETE"])
@token_required("admin")
def delete_checkout(checkout_id):
    deleted = mongo.db.checkouts.find_one_and_delete({"_id": parse_object_id(checkout_id, "checkout ID")})
    if not deleted:
        raise ApiError("Checkout not found", 404)
    return api_response("Checkout deleted successfully")


@bp.route("/customer/history", methods=["GET"])
@token_required("customer")
def order_history():
    """The signed-in customer's own orders, newest first."""
    query = {"customerId": g.current_user["_id"]}

    order_id = (request.args.get("orderId") or "").strip()
    if order_id:
        query["_id"] = parse_object_id(order_id, "order ID")

    status = (request.args.get("status") or "").lower()
    if status and status != "all":
        query["status"] = status

    orders = [serialize(o) for o in mongo.db.checkouts.find(query).sort("createdAt", -1)]
    message = "Order history retrieved successfully" if orders else "No orders found"
    return api_response(message, {"orders": orders})


@bp.route("/customer/stats", methods=["GET"])
@token_required("customer", "admin")
def customer_stats():
    """Order counts and spending for the signed-in customer; admins may pass ?customerId=."""
    user = g.current_user
    customer_id = user["_id"]
    if user["role"] == "admin" and request.args.get("customerId"):
        customer_id = parse_object_id(request.args["customerId"], "customer ID")

    total = mongo.db.checkouts.count_documents({"customerId": customer_id})
    pending = mongo.db.checkouts.count_documents({"customerId": customer_id, "status": "pending"})
    delivered = mongo.db.checkouts.count_documents({"customerId": customer_id, "status": "delivered"})
    spent = 0
    for row in mongo.db.checkouts.aggregate([
        {"$match": {"customerId": customer_id}},
        {"$group": {"_id": None, "total": {"$sum": "$totalAmount"}}},
    ]):
        spent = row["total"]

    return api_response("Order stats retrieved successfully", {
        "totalOrders": total,
        "pendingOrders": pending,
        "deliveredOrders": delivered,
        "totalSpent": spent,
        "successRate": delivered / total * 100 if total else 0,
        "avgOrderValue": spent / total if total else 0,
    })


@bp.route("/admin/stats", methods=["GET"])
@token_required(*STAFF)
def stats():
    """Counts for the dashboard landing page."""
    by_status = {status: 0 for status in ORDER_STATUSES}
    for row in mongo.db.checkouts.aggregate([{"$group": {"_id": "$status", "count": {"$sum": 1}}}]):
        by_status[row["_id"]] = row["count"]

    revenue = 0
    for row in mongo.db.checkouts.aggregate([
        {"$match": {"paymentStatus": "paid"}},
        {"$group": {"_id": None, "revenue": {"$sum": "$totalAmount"}}},
    ]):
        revenue = row["revenue"]

    return api_response("Stats retrieved successfully", {
        "orders": sum(by_status.values()),
        "ordersByStatus": by_status,
        "revenue": revenue,
        "customers": mongo.db.users.count_documents({"role": "customer"}),
        "products": mongo.db.products.count_documents({}),
        "outOfStock": mongo.db.products.count_documents({"stock": {"$lte": 0}}),
    })
