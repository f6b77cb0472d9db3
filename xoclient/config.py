# xoclient/config.py
import logging
import re
from typing import Any, Optional
from urllib.parse import urlsplit, urlunsplit

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict, SettingsError

from .errors import ConfigError
from .paths import REST_PREFIX
from .retry import RetryMode

DEFAULT_RETRY_MAX_TIME = 5 * 60.0
DEFAULT_CALL_TIMEOUT = 5 * 60.0

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}
_HTTP_SCHEMES = {"http": "http", "https": "https", "ws": "http", "wss": "https"}
_WS_SCHEMES = {"http": "ws", "https": "wss", "ws": "ws", "wss": "wss"}


def parse_duration(value: Any) -> float:
    """
    Parse a duration into seconds.
    Accepts numbers (seconds) and strings like "90", "500ms", "30s", "5m", "1h30m".
    """
    if isinstance(value, bool):
        raise ValueError("duration must be a number or a duration string")
    if isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("empty duration")
        try:
            seconds = float(text)
        except ValueError:
            pos = 0
            seconds = 0.0
            for match in _DURATION_PART.finditer(text):
                if match.start() != pos:
                    break
                seconds += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
                pos = match.end()
            if pos != len(text):
                raise ValueError(f"invalid duration {value!r}")
    else:
        raise ValueError("duration must be a number or a duration string")
    if seconds < 0:
        raise ValueError("duration must not be negative")
    return seconds


class ClientConfig(BaseSettings):
    """
    Immutable client configuration.

    Read from the environment (XOA_URL, XOA_TOKEN, XOA_USER, XOA_PASSWORD,
    XOA_INSECURE, XOA_DEVELOPMENT, XOA_RETRY_MODE, XOA_RETRY_MAX_TIME,
    XOA_CALL_TIMEOUT) or an optional .env file. Exactly one of a token or a
    user/password pair must be provided.
    """

    url: str
    token: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = Field(default=None, repr=False)
    insecure: bool = False
    development: bool = False
    retry_mode: RetryMode = RetryMode.NONE
    retry_max_time: float = DEFAULT_RETRY_MAX_TIME
    call_timeout: float = DEFAULT_CALL_TIMEOUT
    logger: Optional[logging.Logger] = Field(default=None, exclude=True, repr=False)

    model_config = SettingsConfigDict(
        env_prefix="XOA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        arbitrary_types_allowed=True,
    )

    def __repr__(self):
        # token and password stay out of reprs and logs
        return (f"ClientConfig(url={self.url!r}, auth={'token' if self.token else 'password'}, "
                f"retry_mode={self.retry_mode.value!r}, insecure={self.insecure})")

    __str__ = __repr__

    @field_validator("token", "user", "password", mode="before")
    @classmethod
    def _blank_is_unset(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("retry_mode", mode="before")
    @classmethod
    def _normalize_retry_mode(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("retry_max_time", "call_timeout", mode="before")
    @classmethod
    def _parse_durations(cls, value):
        return parse_duration(value)

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        parts = urlsplit(value.strip())
        if parts.scheme not in _HTTP_SCHEMES or not parts.netloc:
            raise ValueError(f"url must be an absolute http(s) or ws(s) URL, got {value!r}")
        return value.strip().rstrip("/")

    @model_validator(mode="after")
    def _check_auth(self):
        has_token = self.token is not None
        has_user = self.user is not None or self.password is not None
        if has_token and has_user:
            raise ValueError("set either a token or a user/password pair, not both")
        if not has_token and (self.user is None or self.password is None):
            raise ValueError("authentication information not provided: set XOA_TOKEN "
                             "or both XOA_USER and XOA_PASSWORD")
        return self

    @classmethod
    def from_env(cls, **overrides) -> "ClientConfig":
        try:
            return cls(**overrides)
        except (ValidationError, SettingsError) as exc:
            raise ConfigError(f"invalid configuration: {exc}") from exc

    @classmethod
    def from_values(cls, **values) -> "ClientConfig":
        """Build a config from explicit values only; the environment is not consulted."""
        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            raise ConfigError(f"invalid configuration: {exc}") from exc

    @property
    def uses_token(self) -> bool:
        return self.token is not None

    def _with_scheme(self, schemes) -> tuple:
        parts = urlsplit(self.url)
        return schemes[parts.scheme], parts.netloc, parts.path.rstrip("/")

    @property
    def origin(self) -> str:
        scheme, netloc, _ = self._with_scheme(_HTTP_SCHEMES)
        return f"{scheme}://{netloc}/"

    @property
    def rest_base_url(self) -> str:
        scheme, netloc, path = self._with_scheme(_HTTP_SCHEMES)
        return urlunsplit((scheme, netloc, path + REST_PREFIX, "", ""))

    @property
    def websocket_url(self) -> str:
        scheme, netloc, path = self._with_scheme(_WS_SCHEMES)
        return urlunsplit((scheme, netloc, path + "/api/", "", ""))
