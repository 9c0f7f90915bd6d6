"""
Django settings for the backoffice project.

Values that change between environments are read from environment variables;
everything else is shared by all deployments.
"""
from __future__ import annotations

import os
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: str = "") -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "django-insecure-backoffice-dev-key")

DEBUG = _env_bool("DJANGO_DEBUG", default=False)

ALLOWED_HOSTS = _env_list("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver")


INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "core",
    "users",
    "catalogs",
    "roles",
    "audit",
]

MIDDLEWARE = [
    "backoffice.middleware.RequestIdMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "backoffice.middleware.MethodOverrideMiddleware",
]

ROOT_URLCONF = "backoffice.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "backoffice.wsgi.application"


DB_ENGINE = os.getenv("DB_ENGINE", "django.db.backends.sqlite3")

if DB_ENGINE.endswith("sqlite3"):
    DATABASES = {
        "default": {
            "ENGINE": DB_ENGINE,
            "NAME": os.getenv("DB_NAME", str(BASE_DIR / "db.sqlite3")),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": DB_ENGINE,
            "NAME": os.getenv("DB_NAME", "backoffice"),
            "USER": os.getenv("DB_USER", "backoffice"),
            "PASSWORD": os.getenv("DB_PASSWORD", ""),
            "HOST": os.getenv("DB_HOST", "localhost"),
            "PORT": os.getenv("DB_PORT", "5432"),
            "ATOMIC_REQUESTS": False,
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

AUTH_USER_MODEL = "users.User"

AUTHENTICATION_BACKENDS = [
    "users.auth_backends.RoleAwareModelBackend",
]

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
    {"NAME": "users.password_validation.ComplexityValidator"},
]

LOGIN_URL = "admin:login"

MESSAGE_STORAGE = "django.contrib.messages.storage.session.SessionStorage"


LANGUAGE_CODE = "es"

TIME_ZONE = os.getenv("DJANGO_TIME_ZONE", "America/Lima")

USE_I18N = True

USE_TZ = True


STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

TEST_RUNNER = "backoffice.test_runner.NonInteractiveDiscoverRunner"


# Listados paginados
LIST_QUERY = {
    "MAX_PER_PAGE": int(os.getenv("LIST_MAX_PER_PAGE", "100")),
    "DEFAULT_PER_PAGE": 15,
    "EXPORT_CHUNK_SIZE": 1000,
}

# Reglas de negocio para roles
ROLE_RULES = {
    "protected": ["admin"],
    "deletion": {
        "block_if_has_permissions": False,
        "require_inactive": False,
    },
    "critical_permissions": [
        "users.view_role",
        "users.change_role",
        "users.delete_role",
        "users.export_role",
    ],
    "activation": {
        "block_deactivate_if_has_users": True,
        "block_deactivate_protected": True,
    },
}

# Reglas de negocio para usuarios
USER_RULES = {
    "admin_role_name": "admin",
    "activation": {
        "block_self_deactivate": True,
        "block_deactivate_if_last_admin": True,
    },
    "deletion": {
        "require_inactive": True,
        "block_if_last_admin": True,
    },
}

AUDIT = {
    "ENABLED": _env_bool("AUDIT_ENABLED", default=True),
    "EXCLUDED_FIELDS": ["created_at", "updated_at", "password", "last_login"],
}


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "request_id": {
            "()": "backoffice.log_filters.RequestIdFilter",
        },
    },
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} [{request_id}] {name} {message}",
            "style": "{",
        },
        "simple": {
            "format": "{levelname} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
            "filters": ["request_id"],
        },
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": True,
        },
        "django.request": {
            "handlers": ["console"],
            "level": "ERROR",
            "propagate": False,
        },
        "core": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "catalogs": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "roles": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "audit": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
    },
}
