"""
Custody Tracker – Django Settings (Infrastructure Only)
=========================================================
Django serves as the ORM and configuration container.
The custody engine does not depend on Django outside the
DB-backed stores.

Environment:
    CUSTODY_DB_PATH         SQLite file (default: <root>/custody.sqlite3)
    CUSTODY_LOG_LEVEL       Level for the "custody" logger tree (default: INFO)
    CUSTODY_ADMIN_ACTOR_ID  Administrator used by bootstrap when none is passed
    CUSTODY_SECRET_KEY      Django secret key
"""

import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

# ── Security ──────────────────────────────────────────────────
SECRET_KEY = os.environ.get("CUSTODY_SECRET_KEY", "custody-dev-key-not-for-deployment")

DEBUG = False

ALLOWED_HOSTS = []

# ── Installed Apps ────────────────────────────────────────────
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    # ── Custody stores ────────────────────────────────────
    "core.permissions_store",
    "core.ledger_store",
]

# ── Database ──────────────────────────────────────────────────
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("CUSTODY_DB_PATH", str(BASE_DIR / "custody.sqlite3")),
    }
}

# ── Internationalization ──────────────────────────────────────
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = False
USE_TZ = True

# ── Default Primary Key ──────────────────────────────────────
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── Custody ───────────────────────────────────────────────────
CUSTODY_ADMIN_ACTOR_ID = os.environ.get("CUSTODY_ADMIN_ACTOR_ID", "")

# ── Logging ───────────────────────────────────────────────────
CUSTODY_LOG_LEVEL = os.environ.get("CUSTODY_LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "plain",
        },
    },
    "loggers": {
        "custody": {
            "handlers": ["console"],
            "level": CUSTODY_LOG_LEVEL,
            "propagate": True,
        },
    },
}
