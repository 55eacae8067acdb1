import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name, default="false"):
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Config:
    ENV_NAME = os.getenv("ENV_NAME", "development")
    SECRET_KEY = os.getenv("SECRET_KEY", "supersecretkey")

    # ----------------------------
    # Auth
    # ----------------------------
    JWT_SECRET = os.getenv("JWT_SECRET", "super_jwt_secret")
    JWT_EXPIRES_IN_DAYS = int(os.getenv("JWT_EXPIRES_IN_DAYS", 30))

    # ----------------------------
    # Database
    # ----------------------------
    MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017/wasteless")
    MONGO_MOCK = _env_bool("MONGO_MOCK")

    # ----------------------------
    # Media (Cloudinary)
    # ----------------------------
    CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME")
    CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY")
    CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET")
    CLOUDINARY_FOLDER = os.getenv("CLOUDINARY_FOLDER", "wasteless/food")
    UPLOAD_TEMP_DIR = os.getenv("UPLOAD_TEMP_DIR", os.path.join(os.getcwd(), "uploads"))
    MAX_IMAGE_SIZE = int(os.getenv("MAX_IMAGE_SIZE", 5 * 1024 * 1024))
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_CONTENT_LENGTH", 10 * 1024 * 1024))
    ALLOWED_IMAGE_EXTENSIONS = {
        ext.strip().lower()
        for ext in os.getenv("ALLOWED_IMAGE_EXTENSIONS", "jpg,jpeg,png,gif,webp").split(",")
        if ext.strip()
    }

    # ----------------------------
    # API behaviour
    # ----------------------------
    MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", 100))
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "http://localhost:5500,http://127.0.0.1:5500").split(",")
        if origin.strip()
    ]

    # ----------------------------
    # Logging
    # ----------------------------
    LOG_DIR = os.getenv("LOG_DIR", "logs")
    LOG_TO_FILE = _env_bool("LOG_TO_FILE", "true")

    # ----------------------------
    # Rate limiting (flask-limiter reads the RATELIMIT_* keys)
    # ----------------------------
    RATELIMIT_ENABLED = _env_bool("RATELIMIT_ENABLED", "true")
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "200 per hour;10 per second")
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    LOGIN_RATE_LIMIT = os.getenv("LOGIN_RATE_LIMIT", "10 per minute")


class TestingConfig(Config):
    ENV_NAME = "testing"
    TESTING = True
    JWT_SECRET = "test_jwt_secret"
    MONGODB_URI = "mongodb://localhost:27017/wasteless_test"
    MONGO_MOCK = True
    CLOUDINARY_CLOUD_NAME = None
    CLOUDINARY_API_KEY = None
    CLOUDINARY_API_SECRET = None
    LOG_TO_FILE = False
    RATELIMIT_ENABLED = False
