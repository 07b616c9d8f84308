from .base import *  # noqa

env.read_env(os.path.join(BASE_DIR, ".env.backend"))

DEBUG = env_get("DEBUG", default=False)

SECRET_KEY = env_get("DJANGO_SECRET_KEY")

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=[])

LOG_LEVEL = env("LOG_LEVEL", default="INFO")
LOGGING["root"]["level"] = LOG_LEVEL  # noqa: F405
