import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _int_env(name, default):
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


class Config:
    """Settings read from the environment and the .env file."""

    MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017/rudraksha")
    SECRET_KEY = os.getenv("SECRET_KEY", "a_very_secret_key_for_the_rudraksha_store")

    # Customer tokens are signed with their own secret.
    JWT_SECRET = os.getenv("JWT_SECRET", "rudraksha-staff-secret")
    CUSTOMER_JWT_SECRET = os.getenv("CUSTOMER_JWT_SECRET", "rudraksha-customer-secret")
    STAFF_TOKEN_DAYS = _int_env("STAFF_TOKEN_DAYS", 7)
    CUSTOMER_TOKEN_DAYS = _int_env("CUSTOMER_TOKEN_DAYS", 30)

    UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", os.path.join(os.getcwd(), "uploads"))
    MAX_UPLOAD_BYTES = _int_env("MAX_UPLOAD_BYTES", 5 * 1024 * 1024)
    # Leave headroom above the per-file limit for the multipart envelope.
    MAX_CONTENT_LENGTH = MAX_UPLOAD_BYTES + 1024 * 1024

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@rudraksha.store")
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "Admin@12345")
