from flask import Blueprint, request

from .helpers import ApiError
from .resources import ResourceView, register_resource
from .schemas import (
    BenefitCreate,
    BenefitUpdate,
    BlogCategoryCreate,
    BlogCategoryUpdate,
    BlogCreate,
    BlogUpdate,
    ContentCreate,
    ContentUpdate,
    FaqCreate,
    FaqUpdate,
    TestimonialCreate,
    TestimonialUpdate,
)

bp = Blueprint("content", __name__, url_prefix="/api")


class BlogView(ResourceView):
    collection = "blogs"
    label = "Blog"
    plural = "blogs"
    unique_fields = ("slug",)
    create_schema = BlogCreate
    update_schema = BlogUpdate
    text_fields = ("name", "heading", "category", "seoTitle", "metaDescription", "metaKeywords")
    html_fields = ("description",)
    sort = ("createdAt", -1)

    def list_filter(self):
        category = request.args.get("category")
        return {"category": category} if category else {}


class BlogCategoryView(ResourceView):
    collection = "blogcategories"
    label = "Blog category"
    plural = "categories"
    plural_label = "Blog categories"
    unique_fields = ("slug", "name")
    create_schema = BlogCategoryCreate
    update_schema = BlogCategoryUpdate
    text_fields = ("name",)


class TestimonialView(ResourceView):
    collection = "testimonials"
    label = "Testimonial"
    plural = "testimonials"
    slug_source = "fullName"
    unique_fields = ("slug",)
    create_schema = TestimonialCreate
    update_schema = TestimonialUpdate
    text_fields = ("fullName", "address", "description", "seoTitle", "metaDescription", "metaKeywords")
    sort = ("createdAt", -1)


class ContentView(ResourceView):
    """Banner and package blocks shown on the home page."""

    collection = "contents"
    label = "Content"
    plural = "contents"
    lookup = "_id"
    create_schema = ContentCreate
    update_schema = ContentUpdate
    text_fields = ("title",)
    html_fields = ("description",)
    sort = ("createdAt", -1)

    def list_filter(self):
        kind = request.args.get("type")
        if kind is None:
            return {}
        if kind not in ("banner", "package"):
            raise ApiError("type must be 'banner' or 'package'", 400)
        return {"type": kind}



class FaqView(ResourceView):
    """Questions and answers, plus the single illustration shown beside them (type "image")."""

    collection = "faqs"
    label = "FAQ"
    plural = "faqs"
    plural_label = "FAQs"
    slug_source = "question"
    unique_fields = ("slug",)
    create_schema = FaqCreate
    update_schema = FaqUpdate
    text_fields = ("question", "seoTitle", "metaDescription", "metaKeywords")
    html_fields = ("answer",)
    sort = ("createdAt", -1)

    def list_filter(self):
        kind = request.args.get("type", "faq")
        if kind not in ("faq", "image"):
            raise ApiError("type must be 'faq' or 'image'", 400)
        return {"type": kind}

    def prepare(self, data, existing=None):
        if data.get("type") == "image":
            query = {"type": "image"}
            if existing is not None:
                query["_id"] = {"$ne": existing["_id"]}
            if self.db.find_one(query):
                raise ApiError("Only one image document is allowed", 400)
        return data


class BenefitView(ResourceView):
    collection = "benefits"
    label = "Benefit"
    plural = "benefits"
    slug_source = "title"
    unique_fields = ("slug", "title")
    create_schema = BenefitCreate
    update_schema = BenefitUpdate
    text_fields = ("title", "seoTitle", "metaDescription", "metaKeywords")
    html_fields = ("description",)
    sort = ("createdAt", -1)


register_resource(bp, BlogView, "/blog")
register_resource(bp, BlogCategoryView, "/blogcategory")
register_resource(bp, TestimonialView, "/testimonial")
register_resource(bp, ContentView, "/content")
register_resource(bp, FaqView, "/faq")
register_resource(bp, BenefitView, "/benefit")
