import os
import tempfile
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent.parent


def env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


SECRET_KEY = os.getenv("SECRET_KEY", "django-insecure-change-me")

DEBUG = env_bool("DEBUG", False)

ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "*").split(",") if h.strip()]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "django.contrib.staticfiles",
    "ninja",
    "corsheaders",
    "api",
    "core",
    "apps.logs.apps.LogsConfig",
    "apps.orders.apps.OrdersConfig",
    "apps.supplier.apps.SupplierConfig",
    "apps.seapay.apps.SeapayConfig",
    "apps.scheduler.apps.SchedulerConfig",
]

MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "apps.logs.middleware.RequestLoggingMiddleware",
]

ROOT_URLCONF = "config.urls"

WSGI_APPLICATION = "config.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": os.getenv("DB_NAME", "mavryk"),
        "USER": os.getenv("DB_USER", "postgres"),
        "PASSWORD": os.getenv("DB_PASSWORD", ""),
        "HOST": os.getenv("DB_HOST", "localhost"),
        "PORT": os.getenv("DB_PORT", "5432"),
    }
}

# Ngày nghiệp vụ tính theo giờ Việt Nam
APP_TIMEZONE = os.getenv("APP_TIMEZONE", "Asia/Ho_Chi_Minh")

LANGUAGE_CODE = "vi"
TIME_ZONE = APP_TIMEZONE
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Django-Ninja settings
NINJA_PAGINATION_PER_PAGE = 20
NINJA_NUM_PROXIES = 0

# YYYY-MM-DD, chỉ dùng khi test thủ công
MOCK_DATE = os.getenv("MOCK_DATE") or None

# SePay
SEPAY_WEBHOOK_SECRET = os.getenv("SEPAY_WEBHOOK_SECRET", "")
SEPAY_API_KEY = os.getenv("SEPAY_API_KEY", "")

RENEWAL_WINDOW_DAYS = env_int("RENEWAL_WINDOW_DAYS", 4)

# Tên bảng NCC khác nhau giữa các môi trường; đọc một lần khi khởi động
SUPPLIER_TABLE = os.getenv("SUPPLIER_TABLE", "supplier")

# Backup
ENABLE_DB_BACKUP = env_bool("ENABLE_DB_BACKUP", True)
BACKUP_DATABASE_URL = os.getenv("BACKUP_DATABASE_URL") or os.getenv("DATABASE_URL", "")
PG_DUMP_PATH = os.getenv("PG_DUMP_PATH", "pg_dump")
BACKUP_DIR = os.getenv("BACKUP_DIR", tempfile.gettempdir())
BACKUP_RETENTION_DAYS = env_int("BACKUP_RETENTION_DAYS", 7)

# Telegram
TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN", "")
TELEGRAM_CHAT_ID = os.getenv("TELEGRAM_CHAT_ID", "")
RENEWAL_TOPIC_ID = env_int("RENEWAL_TOPIC_ID", 2)
TELEGRAM_TIMEOUT = env_int("TELEGRAM_TIMEOUT", 10)

APP_ENV = os.getenv("APP_ENV", "local")
LOG_TO_DATABASE = env_bool("LOG_TO_DATABASE", False)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
        "database": {
            "class": "apps.logs.handlers.DatabaseLogHandler",
            "level": "INFO",
        },
    },
    "loggers": {
        "app": {
            "handlers": ["console", "database"] if LOG_TO_DATABASE else ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
    },
}

CORS_ALLOWED_ORIGINS = [
    "http://localhost:3000",
]
