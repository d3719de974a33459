
import os
from pathlib import Path

from dotenv import load_dotenv


_BACKEND_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _BACKEND_DIR.parent

# Root .env is canonical; backend/.env remains a fallback.
load_dotenv(_PROJECT_ROOT / ".env")
load_dotenv(_BACKEND_DIR / ".env")


def _first_non_empty_env(*names: str, default: str) -> str:
    """Returns the first non-empty env var value from `names`, else `default`."""
    for name in names:
        value = os.getenv(name)
        if value is not None and value != "":
            return value
    return default


def _log_level() -> str:
    """
    Resolves the log level name.

    Unknown names fall back to INFO rather than failing app start-up,
    because logging.getLevelName() would otherwise return "Level X" strings.
    """
    raw = _first_non_empty_env("LOG_LEVEL", default="INFO").upper()
    if raw not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        return "INFO"
    return raw


class BaseConfig:

    SECRET_KEY: str = _first_non_empty_env(
        "SECRET_KEY",
        default="change-me-in-production",
    )

    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False

    JSON_SORT_KEYS: bool = False

    LOG_LEVEL: str = _log_level()

    # Display metadata only. Every amount in the core is a plain Decimal in
    # one abstract currency unit.
    CURRENCY_CODE: str = _first_non_empty_env("CURRENCY_CODE", default="USD")

    # Header that names the acting person on every identity-bound request.
    PERSON_HEADER: str = _first_non_empty_env("PERSON_HEADER", default="X-Person-Id")


class DevelopmentConfig(BaseConfig):
    DEBUG:   bool = True
    TESTING: bool = False

    SQLALCHEMY_DATABASE_URI: str = os.getenv(
        "DATABASE_URL",
        f"sqlite:///{_PROJECT_ROOT / 'swiff_ledger.db'}",
    )
    SQLALCHEMY_ECHO: bool = False


class TestingConfig(BaseConfig):

    DEBUG:   bool = True
    TESTING: bool = True

    # In-memory SQLite; Flask-SQLAlchemy pins it to a single shared connection.
    SQLALCHEMY_DATABASE_URI: str = os.getenv("TEST_DATABASE_URL", "sqlite://")
    SQLALCHEMY_ECHO: bool = False
    LOG_LEVEL: str = "WARNING"


class ProductionConfig(BaseConfig):

    DEBUG:   bool = False
    TESTING: bool = False
    SQLALCHEMY_ECHO: bool = False

    # SQLAlchemy only accepts the "postgresql://" scheme.
    _raw_db_url: str = os.getenv("DATABASE_URL", "")
    SQLALCHEMY_DATABASE_URI: str = (
        _raw_db_url.replace("postgres://", "postgresql://", 1)
        if _raw_db_url.startswith("postgres://")
        else _raw_db_url
    )


def validate_production_config(app) -> None:
    """Raises ValueError when production starts without a database URL or with the placeholder secret."""
    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        raise ValueError(
            "DATABASE_URL environment variable is required in production. "
            "Set it to a valid database connection string."
        )
    if app.config.get("SECRET_KEY") == "change-me-in-production":
        raise ValueError(
            "SECRET_KEY must be set to a strong random value in production. "
            "Do not use the default placeholder."
        )


# ── Config selector ────────────────────────────────────────────────────────
#
# create_app(name) looks the class up here.
# ──────────────────────────────────────────────────────────────────────────

config_by_name: dict[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing":     TestingConfig,
    "production":  ProductionConfig,
}
