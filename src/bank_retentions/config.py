from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigurationError
from .extractor import DEFAULT_RETENTION_PATTERN


DEFAULT_LOGIN_URL = "https://onlinebanking.bancogalicia.com.ar/login"

_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z0-9_]+)\}")


def _expand_env_vars(value: object) -> object:
    if isinstance(value, str):
        def repl(match: re.Match[str]) -> str:
            var = match.group(1)
            return os.getenv(var, "")

        return _ENV_VAR_PATTERN.sub(repl, value)
    if isinstance(value, list):
        return [_expand_env_vars(v) for v in value]
    if isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    return value


def _deep_merge(base: object, override: object) -> object:
    if isinstance(base, dict) and isinstance(override, dict):
        out = dict(base)
        for k, v in override.items():
            if k in out:
                out[k] = _deep_merge(out[k], v)
            else:
                out[k] = v
        return out
    return override


def _default_config_from_env() -> dict:
    """
    Env-only config so most users only need `.env`; YAML is an optional override.
    """
    return {
        "credentials": {
            "document_number": os.getenv("ING_BRUTOS_DOCUMENTO", ""),
            "username": os.getenv("ING_BRUTOS_USER", ""),
            "password": os.getenv("ING_BRUTOS_PASSWORD", ""),
        },
        "portal": {
            "login_url": os.getenv("PORTAL_LOGIN_URL", DEFAULT_LOGIN_URL),
            "debug_dir": os.getenv("DEBUG_DIR", "data/debug"),
        },
        "search": {
            "account_locator": os.getenv("ING_BRUTOS_ACCOUNT_NUMBER", ""),
            "description_pattern": os.getenv("RETENTION_PATTERN", DEFAULT_RETENTION_PATTERN),
            "date_from": os.getenv("ING_BRUTOS_FROM", ""),
            "date_to": os.getenv("ING_BRUTOS_TO", ""),
        },
        "logging": {
            "level": os.getenv("LOG_LEVEL", "INFO"),
            "file_path": os.getenv("LOG_FILE", ""),
        },
    }


def _require_text(value: str, name: str) -> str:
    s = (value or "").strip()
    if not s:
        raise ValueError(f"{name} is required")
    return s


class CredentialsConfig(BaseModel):
    """
    Online banking login. Values are never logged (repr=False).
    """

    document_number: str = Field(repr=False)
    username: str = Field(repr=False)
    password: str = Field(repr=False)

    @field_validator("document_number", "username", "password")
    @classmethod
    def _not_blank(cls, v: str, info) -> str:
        return _require_text(v, f"credentials.{info.field_name}")


class PortalConfig(BaseModel):
    login_url: str = DEFAULT_LOGIN_URL
    debug_dir: str = "data/debug"


class SearchConfig(BaseModel):
    account_locator: str
    description_pattern: str = DEFAULT_RETENTION_PATTERN
    # DD/MM/YYYY; empty means "previous calendar month".
    date_from: str = ""
    date_to: str = ""

    @field_validator("account_locator")
    @classmethod
    def _locator_not_blank(cls, v: str) -> str:
        return _require_text(v, "search.account_locator")

    @field_validator("description_pattern")
    @classmethod
    def _pattern_compiles(cls, v: str) -> str:
        v = _require_text(v, "search.description_pattern")
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"search.description_pattern is not a valid regex: {e}") from e
        return v


class TimeoutsConfig(BaseModel):
    field_visible_ms: int = 5_000
    network_idle_ms: int = 30_000
    after_account_click_ms: int = 5_000
    after_movements_click_ms: int = 5_000
    after_filter_click_ms: int = 3_000


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file_path: str = ""


class AppConfig(BaseModel):
    credentials: CredentialsConfig
    search: SearchConfig
    portal: PortalConfig = PortalConfig()
    timeouts: TimeoutsConfig = TimeoutsConfig()
    logging: LoggingConfig = LoggingConfig()


def _describe_validation_error(e: ValidationError) -> str:
    parts: list[str] = []
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", ()))
        msg = err.get("msg", "invalid value")
        if err.get("type") == "missing":
            msg = "is required"
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts)


def load_config(path: Optional[Union[str, Path]] = None) -> AppConfig:
    raw: dict = {}
    if path:
        p = Path(path)
        if p.exists():
            raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
            raw = _expand_env_vars(raw)  # supports ${ENV_VAR} in YAML

    merged = _deep_merge(_default_config_from_env(), raw)
    try:
        return AppConfig.model_validate(merged)
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid configuration: "
            + _describe_validation_error(e)
            + ". Set ING_BRUTOS_DOCUMENTO, ING_BRUTOS_USER, ING_BRUTOS_PASSWORD and "
            "ING_BRUTOS_ACCOUNT_NUMBER in your .env file (or the YAML config)."
        ) from e
