# web/trendhunter_site/settings.py
import os

from trendhunter.config import settings as app_settings

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = os.getenv("DJANGO_DEBUG", "").lower() in ("1", "true", "yes")
ALLOWED_HOSTS = [h.strip() for h in os.getenv("DJANGO_ALLOWED_HOSTS", "*").split(",") if h.strip()]

INSTALLED_APPS = [
    "trends",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "trendhunter_site.urls"
WSGI_APPLICATION = "trendhunter_site.wsgi.application"

# storage goes through trendhunter's SQLAlchemy gateway, not the ORM
DATABASES = {}

APPEND_SLASH = False
USE_TZ = True
TIME_ZONE = "America/Chicago"

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "root": {"handlers": ["console"], "level": app_settings.log_level.upper()},
}
