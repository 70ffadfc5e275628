import re

from bson import ObjectId
from flask import Blueprint, request

from .extensions import mongo
from .helpers import ApiError, parse_object_id
from .resources import ResourceView, object_id_list, query_flag, register_resource
from .schemas import (
    CategoryCreate,
    CategoryUpdate,
    DesignCreate,
    DesignUpdate,
    ProductCreate,
    ProductUpdate,
    SizeCreate,
    SizeUpdate,
    SubCategoryCreate,
    SubCategoryUpdate,
)

bp = Blueprint("catalog", __name__, url_prefix="/api")

MAX_DESIGNS = 5


class CategoryView(ResourceView):
    collection = "categories"
    label = "Category"
    plural = "categories"
    unique_fields = ("slug",)
    create_schema = CategoryCreate
    update_schema = CategoryUpdate
    text_fields = ("name", "seoTitle", "metaDescription", "metaKeywords")
    html_fields = ("description", "benefit")

    def list_filter(self):
        active = query_flag("active")
        return {} if active is None else {"isActive": active}

    def present(self, doc):
        data = super().present(doc)
        data["image"] = data.get("image") or "/placeholder.png"
        return data


class SubCategoryView(ResourceView):
    collection = "subcategories"
    label = "Subcategory"
    plural = "subcategories"
    unique_fields = ("slug", "name")
    create_schema = SubCategoryCreate
    update_schema = SubCategoryUpdate
    text_fields = ("name", "seoTitle", "metaDescription", "metaKeywords")

    def list_filter(self):
        category = request.args.get("category")
        if category:
            return {"category": parse_object_id(category, "category ID")}
        return {}

    def prepare(self, data, existing=None):
        if "category" in data:
            data["category"] = object_id_list(data["category"], "category ID")
        return data


class ProductView(ResourceView):
    collection = "products"
    label = "Product"
    plural = "products"
    unique_fields = ("slug",)
    create_schema = ProductCreate
    update_schema = ProductUpdate
    text_fields = ("name", "seoTitle", "metaDescription", "metaKeywords")
    html_fields = ("description", "benefit")
    sort = ("createdAt", -1)

    def list_filter(self):
        """
        Storefront filters: category (id or slug), a name search, the
        featured flag and a price range.
        """
        query = {}
        category = request.args.get("category")
        if category:
            if ObjectId.is_valid(category):
                query["category"] = ObjectId(category)
            else:
                found = mongo.db.categories.find_one({"slug": category})
                if not found:
                    raise ApiError("Category not found", 404)
                query["category"] = found["_id"]

        search = request.args.get("search")
        if search:
            query["name"] = {"$regex": re.escape(search.strip()), "$options": "i"}

        feature = query_flag("feature")
        if feature is not None:
            query["feature"] = feature

        price_query = {}
        try:
            if request.args.get("min_price"):
                price_query["$gte"] = float(request.args["min_price"])
            if request.args.get("max_price"):
                price_query["$lte"] = float(request.args["max_price"])
        except ValueError:
            raise ApiError("Invalid price values provided", 400)
        if price_query.get("$gte", 0) < 0 or price_query.get("$lte", 0) < 0:
            raise ApiError("Price filters cannot be negative", 400)
        if "$gte" in price_query and "$lte" in price_query and price_query["$gte"] > price_query["$lte"]:
            raise ApiError("Minimum price cannot be greater than maximum price", 400)
        if price_query:
            query["price"] = price_query
        return query

    def prepare(self, data, existing=None):
        if "category" in data:
            data["category"] = object_id_list(data["category"], "category ID")
        if "subcategory" in data:
            data["subcategory"] = object_id_list(data["subcategory"], "subcategory ID")
        for size in data.get("sizes") or []:
            if size.get("sizeId"):
                size_id = parse_object_id(size["sizeId"], "size ID")
                if not mongo.db.sizes.find_one({"_id": size_id}):
                    raise ApiError("Size not found", 404)
                size["sizeId"] = size_id
        return data


class SizeView(ResourceView):
    collection = "sizes"
    label = "Product size"
    plural = "productSizes"
    plural_label = "Product sizes"
    lookup = "_id"
    unique_fields = ("size",)
    duplicate_message = "Size already exists"
    create_schema = SizeCreate
    update_schema = SizeUpdate
    text_fields = ("size",)

    def list_filter(self):
        active = query_flag("active")
        return {} if active is None else {"isActive": active}


class DesignView(ResourceView):
    """Design add-ons (caps, threads) offered on products, at most MAX_DESIGNS."""

    collection = "designs"
    label = "Product design"
    plural = "productDesigns"
    plural_label = "Product designs"
    lookup = "_id"
    unique_fields = ("title",)
    duplicate_message = "Design already exists"
    create_schema = DesignCreate
    update_schema = DesignUpdate
    text_fields = ("title",)

    def prepare(self, data, existing=None):
        if existing is None and self.db.count_documents({}) >= MAX_DESIGNS:
            raise ApiError(f"Maximum of {MAX_DESIGNS} designs allowed", 400)
        return data


register_resource(bp, CategoryView, "/category")
register_resource(bp, SubCategoryView, "/subcategory")
register_resource(bp, ProductView, "/products")
register_resource(bp, SizeView, "/size")
register_resource(bp, DesignView, "/design")
