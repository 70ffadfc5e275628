"""
Request Schemas

Pydantic models validating the JSON bodies the API accepts.
Create models require the fields a new document needs; the matching
Update models make every field optional and are dumped with
exclude_unset so only the provided fields are written.
"""

import re
from typing import Annotated, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, EmailStr, Field, ValidationError, field_validator, model_validator

OBJECT_ID_PATTERN = r"^[0-9a-fA-F]{24}$"
PHONE_PATTERN = r"^\+?[\d\s-]{9,15}$"

ORDER_STATUSES = (
    "pending",
    "confirm",
    "processing",
    "pickup",
    "on the way",
    "delivered",
    "cancelled",
)
PAYMENT_STATUSES = ("paid", "unpaid")
STAFF_ROLES = ("admin", "editor", "user")
ROLES = STAFF_ROLES + ("customer",)

_PASSWORD_RULE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[\W_]).{8,}$")
_URL_RULE = re.compile(r"^https?://\S+$", re.IGNORECASE)
_IMAGE_RULES = (
    re.compile(r"^https?://", re.IGNORECASE),
    re.compile(r"^data:image/(png|jpeg|jpg|gif);base64,", re.IGNORECASE),
    re.compile(r"^/"),
)


def is_valid_image(value):
    return isinstance(value, str) and any(rule.match(value) for rule in _IMAGE_RULES)


def is_strong_password(value):
    return isinstance(value, str) and bool(_PASSWORD_RULE.match(value))


def validation_messages(exc: ValidationError) -> List[str]:
    """Flattens a pydantic error into 'field: message' strings."""
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"])
        messages.append(f"{location}: {err['msg']}" if location else err["msg"])
    return messages


def _check_image(value):
    if value is not None and value != "" and not is_valid_image(value):
        raise ValueError("image must be an http(s) URL, a data:image URI or a /path")
    return value


ImageRef = Annotated[str, AfterValidator(_check_image)]


# -----------------------------
# Checkout
# -----------------------------

class ShippingDetails(BaseModel):
    fullName: str = Field(..., min_length=2)
    email: EmailStr
    phone: str = Field(..., pattern=PHONE_PATTERN)
    address: str = Field(..., min_length=3)
    countryId: str
    provinceId: str
    cityId: str
    postalCode: Optional[str] = None
    locationUrl: Optional[str] = None

    @field_validator("locationUrl")
    @classmethod
    def _location_is_url(cls, value):
        if value and not _URL_RULE.match(value):
            raise ValueError("locationUrl must be a valid http(s) URL")
        return value


class SizeSelection(BaseModel):
    size: Optional[str] = None
    price: float = Field(0, ge=0)
    sizeId: Optional[str] = None


class DesignSelection(BaseModel):
    title: str
    price: float = Field(0, ge=0)
    image: Optional[ImageRef] = None


class CheckoutItem(BaseModel):
    productId: str = Field(..., pattern=OBJECT_ID_PATTERN)
    name: str
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    image: Optional[ImageRef] = None
    size: Optional[SizeSelection] = None
    design: Optional[DesignSelection] = None


class CheckoutRequest(BaseModel):
    customerId: str = Field(..., pattern=OBJECT_ID_PATTERN)
    cartId: str = Field(..., pattern=OBJECT_ID_PATTERN)
    shippingDetails: ShippingDetails
    items: Optional[List[CheckoutItem]] = Field(None, min_length=1)
    paymentStatus: Optional[Literal["paid", "unpaid"]] = None
    paymentMethod: Optional[str] = None


class OrderUpdate(BaseModel):
    status: Optional[str] = None
    paymentStatus: Optional[str] = None


# -----------------------------
# Cart
# -----------------------------

class CartItemRequest(BaseModel):
    productId: str = Field(..., pattern=OBJECT_ID_PATTERN)
    quantity: int = Field(..., ge=1, le=100)
    size: Optional[SizeSelection] = None
    design: Optional[DesignSelection] = None


class CartQuantityUpdate(BaseModel):
    productId: str = Field(..., pattern=OBJECT_ID_PATTERN)
    quantity: int = Field(..., ge=0, le=100)
    size: Optional[SizeSelection] = None
    design: Optional[DesignSelection] = None


# -----------------------------
# Accounts
# -----------------------------

class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str
    confirmPassword: str
    role: Literal["admin", "editor", "user", "customer"] = "customer"
    contactNumber: Optional[str] = None

    @field_validator("password")
    @classmethod
    def _strong_password(cls, value):
        if not is_strong_password(value):
            raise ValueError(
                "password needs 8+ characters with upper and lower case letters, a digit and a symbol"
            )
        return value

    @model_validator(mode="after")
    def _check_consistency(self):
        if self.password != self.confirmPassword:
            raise ValueError("Passwords do not match")
        if self.role == "customer" and not (self.contactNumber or "").strip():
            raise ValueError("contactNumber is required for customers")
        return self


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ChangePasswordRequest(BaseModel):
    oldPassword: str
    newPassword: str

    @field_validator("newPassword")
    @classmethod
    def _strong_password(cls, value):
        if not is_strong_password(value):
            raise ValueError(
                "password needs 8+ characters with upper and lower case letters, a digit and a symbol"
            )
        return value


class ChangeImageRequest(BaseModel):
    newImage: ImageRef


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    contactNumber: Optional[str] = None


class ChangeEmailRequest(BaseModel):
    newEmail: EmailStr


class WishlistRequest(BaseModel):
    productId: str = Field(..., pattern=OBJECT_ID_PATTERN)


# -----------------------------
# Catalogue and content
# -----------------------------

class SeoFields(BaseModel):
    seoTitle: Optional[str] = None
    metaDescription: Optional[str] = None
    metaKeywords: Optional[str] = None


class CategoryCreate(SeoFields):
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None
    image: ImageRef
    description: Optional[str] = ""
    benefit: Optional[str] = ""
    isActive: bool = True


class CategoryUpdate(SeoFields):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = None
    image: Optional[ImageRef] = None
    description: Optional[str] = None
    benefit: Optional[str] = None
    isActive: Optional[bool] = None


class SubCategoryCreate(SeoFields):
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None
    category: List[str] = Field(..., min_length=1)
    isActive: bool = True


class SubCategoryUpdate(SeoFields):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = None
    category: Optional[List[str]] = None
    isActive: Optional[bool] = None


class SizeCreate(BaseModel):
    size: str = Field(..., min_length=1)
    isActive: bool = True


class SizeUpdate(BaseModel):
    size: Optional[str] = Field(None, min_length=1)
    isActive: Optional[bool] = None


class DesignCreate(BaseModel):
    title: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    image: ImageRef


class DesignUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, ge=0)
    image: Optional[ImageRef] = None


class ProductSize(BaseModel):
    sizeId: Optional[str] = None
    size: Literal["small", "regular"] = "regular"
    price: float = Field(..., ge=0)


class ProductDesign(BaseModel):
    title: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    image: ImageRef


class ProductCreate(SeoFields):
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None
    category: List[str] = Field(..., min_length=1)
    subcategory: List[str] = []
    price: float = Field(..., ge=0)
    stock: int = Field(..., ge=0)
    description: str = Field(..., min_length=1)
    benefit: str = Field(..., min_length=1)
    feature: bool = False
    sizes: List[ProductSize] = []
    designs: List[ProductDesign] = []
    images: List[str] = []


class ProductUpdate(SeoFields):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = None
    category: Optional[List[str]] = None
    subcategory: Optional[List[str]] = None
    price: Optional[float] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None
    benefit: Optional[str] = None
    feature: Optional[bool] = None
    sizes: Optional[List[ProductSize]] = None
    designs: Optional[List[ProductDesign]] = None
    images: Optional[List[str]] = None


class BlogCreate(SeoFields):
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None
    heading: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    category: List[str] = []
    image: Optional[ImageRef] = None


class BlogUpdate(SeoFields):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = None
    heading: Optional[str] = None
    description: Optional[str] = None
    category: Optional[List[str]] = None
    image: Optional[ImageRef] = None


class BlogCategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None


class BlogCategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = None


class TestimonialCreate(SeoFields):
    fullName: str = Field(..., min_length=1)
    slug: Optional[str] = None
    address: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    description: str = Field(..., min_length=1)
    image: ImageRef


class TestimonialUpdate(SeoFields):
    fullName: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = None
    address: Optional[str] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    description: Optional[str] = None
    image: Optional[ImageRef] = None


class ContentCreate(BaseModel):
    type: Literal["banner", "package"]
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    image: Optional[ImageRef] = ""


class ContentUpdate(BaseModel):
    type: Optional[Literal["banner", "package"]] = None
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    image: Optional[ImageRef] = None


class FaqCreate(SeoFields):
    type: Literal["faq", "image"] = "faq"
    question: str = Field(..., min_length=1)
    slug: Optional[str] = None
    answer: str = Field(..., min_length=1)
    image: Optional[ImageRef] = None


class FaqUpdate(SeoFields):
    type: Optional[Literal["faq", "image"]] = None
    question: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = None
    answer: Optional[str] = None
    image: Optional[ImageRef] = None


class BenefitCreate(SeoFields):
    title: str = Field(..., min_length=1)
    slug: Optional[str] = None
    description: str = Field(..., min_length=1)


class BenefitUpdate(SeoFields):
    title: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = None
    description: Optional[str] = None


# -----------------------------
# Locations
# -----------------------------

class CountryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    isActive: bool = True


class CountryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    isActive: Optional[bool] = None


class ProvinceCreate(BaseModel):
    name: str = Field(..., min_length=1)
    countryId: str = Field(..., pattern=OBJECT_ID_PATTERN)
    isActive: bool = True


class ProvinceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    countryId: Optional[str] = Field(None, pattern=OBJECT_ID_PATTERN)
    isActive: Optional[bool] = None


class CityCreate(BaseModel):
    name: str = Field(..., min_length=1)
    provinceId: str = Field(..., pattern=OBJECT_ID_PATTERN)
    shippingCost: float = Field(..., ge=0)
    isActive: bool = True


class CityUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    provinceId: Optional[str] = Field(None, pattern=OBJECT_ID_PATTERN)
    shippingCost: Optional[float] = Field(None, ge=0)
    isActive: Optional[bool] = None
