from flask import Blueprint, request

from .extensions import mongo
from .helpers import ApiError, parse_object_id
from .resources import ResourceView, query_flag, register_resource
from .schemas import CityCreate, CityUpdate, CountryCreate, CountryUpdate, ProvinceCreate, ProvinceUpdate

bp = Blueprint("locations", __name__, url_prefix="/api")


class LocationView(ResourceView):
    lookup = "_id"
    text_fields = ("name",)
    parent_field = None
    parent_collection = None

    def list_filter(self):
        query = {}
        if self.parent_field and request.args.get(self.parent_field):
            query[self.parent_field] = parse_object_id(request.args[self.parent_field], self.parent_field)
        active = query_flag("active")
        if active is not None:
            query["isActive"] = active
        return query

    def prepare(self, data, existing=None):
        if self.parent_field and self.parent_field in data:
            parent_id = parse_object_id(data[self.parent_field], self.parent_field)
            if not mongo.db[self.parent_collection].find_one({"_id": parent_id}):
                raise ApiError(f"{self.parent_field[:-2].capitalize()} not found", 404)
            data[self.parent_field] = parent_id
        return data

    def ensure_unique(self, data, existing=None):
        name = data.get("name")
        if name is None:
            return
        query = {"name": name}
        if self.parent_field:
            parent = data.get(self.parent_field) or (existing or {}).get(self.parent_field)
            query[self.parent_field] = parent
        if existing is not None:
            query["_id"] = {"$ne": existing["_id"]}
        if self.db.find_one(query):
            raise ApiError(f"{self.label} with this name already exists", 400)


class CountryView(LocationView):
    collection = "countries"
    label = "Country"
    plural = "countries"
    create_schema = CountryCreate
    update_schema = CountryUpdate


class ProvinceView(LocationView):
    collection = "provinces"
    label = "Province"
    plural = "provinces"
    create_schema = ProvinceCreate
    update_schema = ProvinceUpdate
    parent_field = "countryId"
    parent_collection = "countries"


class CityView(LocationView):
    collection = "cities"
    label = "City"
    plural = "cities"
    plural_label = "Cities"
    create_schema = CityCreate
    update_schema = CityUpdate
    parent_field = "provinceId"
    parent_collection = "provinces"


register_resource(bp, CountryView, "/country")
register_resource(bp, ProvinceView, "/province")
register_resource(bp, CityView, "/city")
