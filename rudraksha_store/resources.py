"""
Shared plumbing for the dashboard's CRUD collections.

Every collection is listed with page/limit, read by its key (a slug or an
ObjectId), created and edited by admins and editors and deleted by admins.
A subclass names its collection and schemas and overrides the hooks it
needs; the routes are registered with register_resource().
"""

from flask import current_app, request
from flask.views import MethodView
from pymongo import ReturnDocument

from .auth import authorize
from .extensions import mongo
from .helpers import (
    ApiError,
    api_response,
    get_pagination,
    page_payload,
    parse_object_id,
    read_json_body,
    serialize,
    slugify,
    utcnow,
)
from .sanitize import sanitize_html, sanitize_text


class ResourceView(MethodView):
    collection = None
    label = None
    plural = None
    plural_label = None
    lookup = "slug"
    slug_source = "name"
    unique_fields = ()
    duplicate_message = None
    create_schema = None
    update_schema = None
    text_fields = ()
    html_fields = ()
    write_roles = ("admin", "editor")
    delete_roles = ("admin",)
    sort = None

    @property
    def db(self):
        return mongo.db[self.collection]

    # --- hooks ---

    def list_filter(self):
        return {}

    def prepare(self, data, existing=None):
        """Converts validated input into the stored shape (ids, references)."""
        return data

    def present(self, doc):
        return serialize(doc)

    # --- helpers ---

    def key_filter(self, key):
        if self.lookup == "_id":
            return {"_id": parse_object_id(key, f"{self.label.lower()} ID")}
        if not key:
            raise ApiError(f"{self.label} slug is required", 400)
        return {"slug": key}

    def clean(self, data):
        for field in self.text_fields:
            if isinstance(data.get(field), str):
                data[field] = sanitize_text(data[field])
            elif isinstance(data.get(field), list):
                data[field] = [sanitize_text(item) for item in data[field]]
        for field in self.html_fields:
            if isinstance(data.get(field), str):
                data[field] = sanitize_html(data[field])
        return data

    def ensure_unique(self, data, existing=None):
        for field in self.unique_fields:
            value = data.get(field)
            if value is None:
                continue
            query = {field: value}
            if existing is not None:
                query["_id"] = {"$ne": existing["_id"]}
            if self.db.find_one(query):
                if self.duplicate_message and field != "slug":
                    raise ApiError(self.duplicate_message, 400)
                label = "Slug" if field == "slug" else f"{self.label} {field}"
                raise ApiError(f"{label} already in use", 400)

    # --- HTTP methods ---

    def get(self, key=None):
        if key is None:
            return self.list_documents()
        doc = self.db.find_one(self.key_filter(key))
        if not doc:
            raise ApiError(f"{self.label} not found", 404)
        return api_response(f"{self.label} retrieved successfully", self.present(doc))

    def list_documents(self):
        page, limit, skip = get_pagination()
        query = self.list_filter()
        total = self.db.count_documents(query)
        cursor = self.db.find(query)
        if self.sort:
            cursor = cursor.sort(*self.sort)
        docs = [self.present(doc) for doc in cursor.skip(skip).limit(limit)]
        return api_response(
            f"{self.plural_label or self.plural.capitalize()} retrieved successfully",
            page_payload(self.plural, docs, total, page, limit),
        )

    def post(self):
        user = authorize(*self.write_roles)
        data = self.create_schema.model_validate(read_json_body()).model_dump()
        data = self.clean(data)
        if self.lookup == "slug":
            data["slug"] = slugify(data.get("slug") or data.get(self.slug_source))
            if not data["slug"]:
                raise ApiError("Slug could not be derived", 400)
        data = self.prepare(data)
        self.ensure_unique(data)

        now = utcnow()
        data["createdAt"] = now
        data["updatedAt"] = now
        result = self.db.insert_one(data)
        data["_id"] = result.inserted_id
        current_app.logger.info(f"{user['email']} added {self.label.lower()} {data.get('slug', result.inserted_id)}")
        return api_response(f"{self.label} added successfully", self.present(data), 201)

    def patch(self, key):
        authorize(*self.write_roles)
        existing = self.db.find_one(self.key_filter(key))
        if not existing:
            raise ApiError(f"{self.label} not found", 404)

        data = self.update_schema.model_validate(read_json_body()).model_dump(exclude_unset=True)
        data = {field: value for field, value in data.items() if value is not None}
        if not data:
            raise ApiError("No valid fields to update provided", 400)
        data = self.clean(data)
        if "slug" in data:
            data["slug"] = slugify(data["slug"])
        data = self.prepare(data, existing)
        self.ensure_unique(data, existing)

        data["updatedAt"] = utcnow()
        updated = self.db.find_one_and_update(
            {"_id": existing["_id"]}, {"$set": data}, return_document=ReturnDocument.AFTER
        )
        return api_response(f"{self.label} updated successfully", self.present(updated))

    def delete(self, key):
        user = authorize(*self.delete_roles)
        deleted = self.db.find_one_and_delete(self.key_filter(key))
        if not deleted:
            raise ApiError(f"{self.label} not found", 404)
        current_app.logger.info(f"{user['email']} deleted {self.label.lower()} {key}")
        return api_response(f"{self.label} deleted successfully")


def register_resource(bp, view_class, url):
    view = view_class.as_view(view_class.__name__.lower())
    bp.add_url_rule(url, view_func=view, methods=["GET", "POST"])
    bp.add_url_rule(f"{url}/<key>", view_func=view, methods=["GET", "PATCH", "DELETE"])


def object_id_list(values, label):
    return [parse_object_id(value, label) for value in values or []]


def query_flag(name):
    value = request.args.get(name)
    if value is None:
        return None
    return value.lower() in ("1", "true", "yes")
