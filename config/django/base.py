import os

from config.env import BASE_DIR, env, env_get

env.read_env(os.path.join(BASE_DIR, ".env"))

DEBUG = env.bool("DEBUG", default=False)

SECRET_KEY = env_get("DJANGO_SECRET_KEY", default="insecure-dev-only")

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=[])

INSTALLED_APPS = [
    "src.core",
    "src.custody",
    "src.ledger",
    "src.delegations",
]

# No ORM models: the ledger is the system of record, the secret store holds custody
DATABASES = {}

USE_TZ = True
TIME_ZONE = "UTC"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

from config.settings.logging import *  # noqa
from config.settings.custody import *  # noqa
from config.settings.ledger import *  # noqa
from config.settings.celery import *  # noqa
