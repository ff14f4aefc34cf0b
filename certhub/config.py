import os
from datetime import timedelta

from dotenv import load_dotenv

from certhub.errors import ConfigError

load_dotenv()

REQUIRED_KEYS = ("SQLALCHEMY_DATABASE_URI", "JWT_SECRET_KEY")


class Config:
    _root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = os.getenv("JWT_SECRET")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=24)
    JWT_TOKEN_LOCATION = ["headers"]
    PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL")
    FRONTEND_DIR = os.getenv("FRONTEND_DIR") or os.path.join(_root, "frontend")
    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))
    CERTIFICATE_ID_ATTEMPTS = int(os.getenv("CERTIFICATE_ID_ATTEMPTS", "5"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def validate_config(config):
    """Fail fast when a required setting was not supplied."""
    missing = [key for key in REQUIRED_KEYS if not config.get(key)]
    if missing:
        raise ConfigError("missing required configuration: " + ", ".join(missing))
    if config.get("CERTIFICATE_ID_ATTEMPTS", 1) < 1:
        raise ConfigError("CERTIFICATE_ID_ATTEMPTS must be at least 1")
