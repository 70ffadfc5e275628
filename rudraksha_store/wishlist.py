from flask import Blueprint, current_app, g, request

from .auth import token_required
from .extensions import mongo
from .helpers import ApiError, api_response, is_object_id, parse_object_id, read_json_body, serialize, utcnow
from .schemas import WishlistRequest

bp = Blueprint("wishlist", __name__, url_prefix="/api/wishlist")


def wishlist_entry(user_id, product):
    """Snapshot of the product as it was when saved."""
    images = product.get("images") or []
    return {
        "userId": user_id,
        "productId": product["_id"],
        "productName": product["name"],
        "productPrice": product.get("price", 0),
        "productStock": product.get("stock", 0),
        "productImage": images[0] if images else "",
        "createdAt": utcnow(),
    }


@bp.route("", methods=["GET"])
@token_required()
def view_wishlist():
    items = mongo.db.wishlist.find({"userId": g.current_user["_id"]}).sort("createdAt", -1)
    return api_response("Wishlist retrieved successfully", [serialize(item) for item in items])


@bp.route("", methods=["POST"])
@token_required()
def toggle_wishlist():
    """Adds the product to the wishlist, or removes it when it is already there."""
    data = WishlistRequest.model_validate(read_json_body())
    user_id = g.current_user["_id"]
    product_id = parse_object_id(data.productId, "product ID")

    removed = mongo.db.wishlist.find_one_and_delete({"userId": user_id, "productId": product_id})
    if removed:
        return api_response("Removed from wishlist", {"inWishlist": False})

    product = mongo.db.products.find_one({"_id": product_id})
    if not product:
        raise ApiError("Product not found", 404)
    mongo.db.wishlist.insert_one(wishlist_entry(user_id, product))
    current_app.logger.debug(f"'{product['name']}' added to wishlist of {g.current_user['email']}")
    return api_response("Added to wishlist", {"inWishlist": True})


@bp.route("", methods=["DELETE"])
@token_required()
def remove_from_wishlist():
    product_id = request.args.get("productId")
    if not is_object_id(product_id):
        raise ApiError("Invalid product ID", 400)
    result = mongo.db.wishlist.delete_one({"userId": g.current_user["_id"], "productId": parse_object_id(product_id)})
    if result.deleted_count == 0:
        raise ApiError("Item not found in wishlist", 404)
    return api_response("Item removed from wishlist")
