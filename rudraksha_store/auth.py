from datetime import timedelta
from functools import wraps

import jwt
from bson import ObjectId
from flask import Blueprint, current_app, g, request
from pymongo import ReturnDocument
from werkzeug.security import check_password_hash, generate_password_hash

from .extensions import mongo
from .helpers import ApiError, api_response, get_pagination, page_payload, read_json_body, serialize, utcnow
from .sanitize import sanitize_email, sanitize_text
from .schemas import (
    STAFF_ROLES,
    ChangeEmailRequest,
    ChangeImageRequest,
    ChangePasswordRequest,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
)

bp = Blueprint("auth", __name__, url_prefix="/api")

PROFILE_FIELDS = ("email", "name", "contactNumber", "image", "role", "createdAt", "updatedAt")


# --- Passwords and tokens ---

def hash_password(password):
    return generate_password_hash(password)


def _secret_for(role):
    if role == "customer":
        return current_app.config["CUSTOMER_JWT_SECRET"]
    return current_app.config["JWT_SECRET"]


def generate_token(email, role):
    """Signs a bearer token; customers and staff use separate secrets and lifetimes."""
    days = (
        current_app.config["CUSTOMER_TOKEN_DAYS"]
        if role == "customer"
        else current_app.config["STAFF_TOKEN_DAYS"]
    )
    payload = {"email": email, "role": role, "exp": utcnow() + timedelta(days=days)}
    return jwt.encode(payload, _secret_for(role), algorithm="HS256")


def decode_token(token):
    """
    Verifies a bearer token and returns its payload, or None.
    The unverified role only selects which secret to verify against.
    """
    try:
        unverified = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        current_app.logger.debug("Rejected malformed token")
        return None
    try:
        return jwt.decode(token, _secret_for(unverified.get("role")), algorithms=["HS256"])
    except jwt.InvalidTokenError as e:
        current_app.logger.debug(f"Rejected token: {e}")
        return None


def get_bearer_token():
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    return header.split(" ", 1)[1].strip() or None


def authorize(*roles):
    """
    Resolves the user behind the request's bearer token.
    Raises a 401 without a valid token and a 403 when roles are given and
    the user holds none of them. The user is also stored on flask.g.
    """
    token = get_bearer_token()
    if not token:
        raise ApiError("Unauthorized", 401)
    payload = decode_token(token)
    if not payload:
        raise ApiError("Invalid or expired token", 401)
    user = mongo.db.users.find_one({"email": payload.get("email")})
    if not user:
        raise ApiError("Unauthorized", 401)
    if roles and user.get("role") not in roles:
        raise ApiError("Forbidden: Insufficient permissions", 403)
    g.current_user = user
    return user


def token_required(*roles):
    """Decorator to protect routes that require a (role-holding) user."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            authorize(*roles)
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def public_profile(user):
    profile = {key: user.get(key) for key in PROFILE_FIELDS}
    profile["id"] = str(user["_id"])
    return serialize(profile)


# --- Registration and login ---

@bp.route("/auth/register", methods=["POST"])
def register():
    """Customers sign themselves up; staff accounts can only be created by an admin."""
    data = RegisterRequest.model_validate(read_json_body())
    if data.role != "customer":
        authorize("admin")

    email = sanitize_email(data.email)
    if mongo.db.users.find_one({"email": email}):
        raise ApiError("Email already registered", 400)

    now = utcnow()
    new_user = {
        "email": email,
        "name": sanitize_text(data.name),
        "password": hash_password(data.password),
        "role": data.role,
        "contactNumber": sanitize_text(data.contactNumber) or "",
        "image": "",
        "createdAt": now,
        "updatedAt": now,
    }
    result = mongo.db.users.insert_one(new_user)
    new_user["_id"] = result.inserted_id
    current_app.logger.info(f"Registered {data.role} account {email}")
    return api_response("Registration successful", public_profile(new_user), 201)


@bp.route("/auth/login", methods=["POST"])
def login():
    data = LoginRequest.model_validate(read_json_body())
    user = mongo.db.users.find_one({"email": sanitize_email(data.email)})
    if not user or not check_password_hash(user["password"], data.password):
        raise ApiError("Invalid email or password", 401)

    token = generate_token(user["email"], user["role"])
    return api_response("Login successful", {"token": token, "user": public_profile(user)})


# --- Profiles ---

@bp.route("/users/profiles", methods=["GET"])
@token_required("admin", "editor")
def list_profiles():
    """Staff profiles by ids, by email, or paginated."""
    fields = {key: 1 for key in PROFILE_FIELDS}
    ids = request.args.get("ids")
    email = request.args.get("email")

    if ids:
        id_list = [ObjectId(i.strip()) for i in ids.split(",") if ObjectId.is_valid(i.strip())]
        users = list(mongo.db.users.find({"_id": {"$in": id_list}}, fields).sort("createdAt", -1))
    elif email:
        users = list(
            mongo.db.users.find(
                {"email": sanitize_email(email), "role": {"$in": list(STAFF_ROLES)}}, fields
            ).limit(1)
        )
    else:
        page, limit, skip = get_pagination()
        users = list(
            mongo.db.users.find({"role": {"$in": list(STAFF_ROLES)}}, fields)
            .sort("createdAt", -1)
            .skip(skip)
            .limit(limit)
        )

    if not users:
        raise ApiError("No profiles found", 404)
    return api_response("Profiles retrieved successfully", {"users": [public_profile(u) for u in users]})


@bp.route("/customer", methods=["GET"])
@token_required(*STAFF_ROLES)
def list_customers():
    page, limit, skip = get_pagination()
    query = {"role": "customer"}
    total = mongo.db.users.count_documents(query)
    users = list(mongo.db.users.find(query).sort("createdAt", -1).skip(skip).limit(limit))
    if not users:
        raise ApiError("No customer found", 404)
    return api_response(
        "Customers retrieved successfully",
        page_payload("users", [public_profile(u) for u in users], total, page, limit),
    )


@bp.route("/customer/profile", methods=["GET"])
@token_required()
def get_profile():
    return api_response("Profile retrieved successfully", public_profile(g.current_user))


@bp.route("/customer/profile", methods=["PATCH"])
@token_required()
def update_profile():
    data = ProfileUpdate.model_validate(read_json_body()).model_dump(exclude_unset=True, exclude_none=True)
    if not data:
        raise ApiError("No valid fields to update provided", 400)
    update = {key: sanitize_text(value) for key, value in data.items()}
    update["updatedAt"] = utcnow()
    user = mongo.db.users.find_one_and_update(
        {"_id": g.current_user["_id"]}, {"$set": update}, return_document=ReturnDocument.AFTER
    )
    return api_response("Profile updated successfully", public_profile(user))


@bp.route("/customer/change-password", methods=["POST"])
@token_required()
def change_password():
    data = ChangePasswordRequest.model_validate(read_json_body())
    user = g.current_user
    if not check_password_hash(user["password"], data.oldPassword):
        raise ApiError("Old password is incorrect", 400)
    mongo.db.users.update_one(
        {"_id": user["_id"]},
        {"$set": {"password": hash_password(data.newPassword), "updatedAt": utcnow()}},
    )
    return api_response("Password changed successfully")


@bp.route("/users/change-image", methods=["POST"])
@token_required()
def change_image():
    data = ChangeImageRequest.model_validate(read_json_body())
    user = mongo.db.users.find_one_and_update(
        {"_id": g.current_user["_id"]},
        {"$set": {"image": data.newImage, "updatedAt": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    return api_response("Image updated successfully", public_profile(user))


@bp.route("/customer/change-email", methods=["POST"])
@token_required()
def change_email():
    """Moves the account to a new email. Tokens carry the email, so a fresh one is issued."""
    data = ChangeEmailRequest.model_validate(read_json_body())
    email = sanitize_email(data.newEmail)
    if mongo.db.users.find_one({"email": email}):
        raise ApiError("Email is already in use", 400)

    user = mongo.db.users.find_one_and_update(
        {"_id": g.current_user["_id"]},
        {"$set": {"email": email, "updatedAt": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    current_app.logger.info(f"Account {g.current_user['email']} changed email to {email}")
    return api_response(
        "Email updated successfully",
        {"token": generate_token(email, user["role"]), "user": public_profile(user)},
    )
