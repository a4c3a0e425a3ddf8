import os
from datetime import timedelta
from dotenv import load_dotenv


load_dotenv()

class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", os.getenv("JWT_SECRET_KEY", "dev-secret"))
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "fallback-jwt")
    SQLALCHEMY_DATABASE_URI = os.getenv("SQLALCHEMY_DATABASE_URI", "sqlite:///schooldesk.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    REDIS_URL = os.getenv("REDIS_URL")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    FLASK_ENV = os.getenv("FLASK_ENV", "development")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=1)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=7)
    JWT_TOKEN_LOCATION = ["cookies", "headers"]
    JWT_COOKIE_SECURE = os.getenv("JWT_COOKIE_SECURE", "true").lower() == "true"
    JWT_COOKIE_SAMESITE = "Lax"
    JWT_COOKIE_CSRF_PROTECT = False

    # Listing endpoints
    TABLES_DEFAULT_PER_PAGE = int(os.getenv("TABLES_DEFAULT_PER_PAGE", 20))
    TABLES_MAX_PER_PAGE = int(os.getenv("TABLES_MAX_PER_PAGE", 100))
    TABLES_MAX_PAGE = int(os.getenv("TABLES_MAX_PAGE", 100000))

    # Background jobs
    JOBS_RUN_INLINE = os.getenv("JOBS_RUN_INLINE", "false").lower() == "true"
    JOBS_MAX_WORKERS = int(os.getenv("JOBS_MAX_WORKERS", 2))
    JOBS_RETRY_BACKOFF = True


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-length"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_COOKIE_SECURE = False
    RATELIMIT_ENABLED = False
    JOBS_RUN_INLINE = True
    JOBS_RETRY_BACKOFF = False
