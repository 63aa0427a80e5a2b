from .base import *

DEBUG = False
ALLOWED_HOSTS = ["*"]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

SECRET_KEY = "test-secret-key"
MOCK_DATE = None

SEPAY_WEBHOOK_SECRET = "test-webhook-secret"
SEPAY_API_KEY = "test-api-key"
RENEWAL_WINDOW_DAYS = 4
SUPPLIER_TABLE = "supplier"

ENABLE_DB_BACKUP = False
BACKUP_DATABASE_URL = ""

TELEGRAM_BOT_TOKEN = ""
TELEGRAM_CHAT_ID = ""

LOG_TO_DATABASE = False
LOGGING["loggers"]["app"]["handlers"] = ["console"]
LOGGING["loggers"]["app"]["level"] = "WARNING"
