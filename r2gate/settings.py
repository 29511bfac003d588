from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from r2gate.exceptions import ConfigurationError

# Load .env file from project root
_env_path = Path(__file__).parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


DEFAULT_PATH_PREFIX = "/r2"
DEFAULT_URL_EXPIRY_SECONDS = 900
# SigV4 pre-signed URLs cannot outlive seven days
MAX_URL_EXPIRY_SECONDS = 7 * 24 * 3600

STORE_ENV = {
    "bucket": "R2_BUCKET",
    "endpoint": "R2_ENDPOINT",
    "access_key_id": "R2_ACCESS_KEY_ID",
    "secret_access_key": "R2_SECRET_ACCESS_KEY",
}


def _first_non_blank(*values: Any) -> str | None:
    for value in values:
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def _truthy(value: str | None, default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"true", "1", "yes", "on"}


def normalize_prefix(prefix: str | None) -> str:
    """Return ``prefix`` with a single leading slash and no trailing slash."""
    cleaned = (prefix or "").strip().strip("/")
    return f"/{cleaned}" if cleaned else ""


class StoreContext(BaseModel):
    """Immutable location and credentials of one bucket.

    Shared read-only by every operation against the bucket. Rotating
    credentials means building a new context.
    """

    model_config = ConfigDict(frozen=True)

    bucket: str
    endpoint: str
    access_key_id: str
    secret_access_key: str = Field(repr=False)
    region: str = "auto"
    url_expiry_seconds: int = Field(DEFAULT_URL_EXPIRY_SECONDS, gt=0, le=MAX_URL_EXPIRY_SECONDS)

    @field_validator("endpoint")
    @classmethod
    def _check_endpoint(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError("endpoint must be an http(s) URL")
        return value.rstrip("/")

    @classmethod
    def resolve(
        cls,
        *,
        bucket: str | None = None,
        endpoint: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        region: str | None = None,
        url_expiry_seconds: int | None = None,
    ) -> "StoreContext":
        """Build a context from explicit values, falling back to the environment.

        Raises:
            ConfigurationError: If a setting is missing or invalid.
        """
        explicit = {
            "bucket": bucket,
            "endpoint": endpoint,
            "access_key_id": access_key_id,
            "secret_access_key": secret_access_key,
        }
        values: dict[str, Any] = {}
        missing: list[str] = []
        for field, env_name in STORE_ENV.items():
            value = _first_non_blank(explicit[field], os.getenv(env_name))
            if value is None:
                missing.append(env_name)
            else:
                values[field] = value
        if missing:
            raise ConfigurationError(
                f"Missing object store settings: {', '.join(missing)}",
                {"missing": ", ".join(missing)},
            )
        if _first_non_blank(region):
            values["region"] = region.strip()
        if url_expiry_seconds is not None:
            values["url_expiry_seconds"] = url_expiry_seconds
        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid object store settings: {exc}") from exc


class StoreSettings(BaseModel):
    bucket: str | None = None
    endpoint: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = Field(default=None, repr=False)
    region: str | None = None
    url_expiry_seconds: int | None = None

    def context(self) -> StoreContext:
        return StoreContext.resolve(**self.model_dump())


class GatewaySettings(BaseModel):
    path_prefix: str = DEFAULT_PATH_PREFIX
    allowed_origin: str | None = None
    origin_env: str = "CLIENT_ORIGIN"

    @field_validator("path_prefix", mode="before")
    @classmethod
    def _normalize_prefix(cls, value: Any) -> str:
        if value is None:
            return DEFAULT_PATH_PREFIX
        if not isinstance(value, str):
            raise ValueError("path_prefix must be a string")
        return normalize_prefix(value)

    @property
    def origin(self) -> str | None:
        return _first_non_blank(self.allowed_origin, os.getenv(self.origin_env))


class LoggingSettings(BaseModel):
    level: str = "INFO"
    json_format: bool = False
    file: str | None = None

    @property
    def resolved_level(self) -> str:
        return _first_non_blank(os.getenv("LOG_LEVEL"), self.level) or "INFO"

    @property
    def resolved_json(self) -> bool:
        return _truthy(os.getenv("JSON_LOGGING"), self.json_format)

    @property
    def resolved_file(self) -> Path | None:
        value = _first_non_blank(os.getenv("LOG_FILE"), self.file)
        return Path(value) if value else None


class Settings(BaseModel):
    store: StoreSettings = Field(default_factory=StoreSettings)
    gateway: GatewaySettings = Field(default_factory=GatewaySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def load(cls, path: Path | None = None) -> "Settings":
        """Load settings from a YAML configuration file.

        Args:
            path: Optional path to configuration file. If not provided, uses
                the R2GATE_CONFIG environment variable or defaults to
                config/default.yaml.

        Returns:
            Settings instance with loaded configuration. When no path was
            requested and the default file is absent, settings come from the
            environment only.

        Raises:
            ConfigurationError: If a requested file does not exist or the
                configuration is invalid.
        """
        requested = path or (Path(os.environ["R2GATE_CONFIG"]) if os.getenv("R2GATE_CONFIG") else None)
        config_path = requested or Path("config/default.yaml")
        payload: dict[str, Any] = {}
        if config_path.exists():
            with config_path.open("r", encoding="utf-8") as fp:
                payload = yaml.safe_load(fp) or {}
        elif requested is not None:
            raise ConfigurationError(f"Configuration file not found: {config_path}", {"path": str(config_path)})
        try:
            return cls(**payload)
        except (TypeError, ValidationError) as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}", {"path": str(config_path)}) from exc


@lru_cache(maxsize=1)
def get_settings(path: str | None = None) -> Settings:
    return Settings.load(Path(path) if path else None)


__all__ = [
    "DEFAULT_PATH_PREFIX",
    "DEFAULT_URL_EXPIRY_SECONDS",
    "GatewaySettings",
    "LoggingSettings",
    "Settings",
    "StoreContext",
    "StoreSettings",
    "get_settings",
    "normalize_prefix",
]
