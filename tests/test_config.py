# tests/test_config.py
import logging

import pytest

from xoclient.config import ClientConfig, parse_duration
from xoclient.errors import ConfigError
from xoclient.retry import RetryMode


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ("URL", "TOKEN", "USER", "PASSWORD", "INSECURE", "DEVELOPMENT",
                 "RETRY_MODE", "RETRY_MAX_TIME", "CALL_TIMEOUT"):
        monkeypatch.delenv(f"XOA_{name}", raising=False)
    # keep a stray .env out of the way
    monkeypatch.chdir(tmp_path)
    return monkeypatch


def test_from_env_with_token(clean_env):
    clean_env.setenv("XOA_URL", "https://xo.example.org/")
    clean_env.setenv("XOA_TOKEN", "abc")
    clean_env.setenv("XOA_INSECURE", "true")
    clean_env.setenv("XOA_RETRY_MODE", "BACKOFF")
    clean_env.setenv("XOA_RETRY_MAX_TIME", "30s")

    config = ClientConfig.from_env()

    assert config.url == "https://xo.example.org"
    assert config.uses_token
    assert config.insecure is True
    assert config.retry_mode is RetryMode.BACKOFF
    assert config.retry_max_time == 30.0
    assert config.call_timeout == 300.0


def test_from_env_with_password(clean_env):
    clean_env.setenv("XOA_URL", "http://xo.local")
    clean_env.setenv("XOA_USER", "admin@example.org")
    clean_env.setenv("XOA_PASSWORD", "pw")

    config = ClientConfig.from_env()

    assert not config.uses_token
    assert config.user == "admin@example.org"
    assert config.retry_mode is RetryMode.NONE


def test_from_env_reads_dotenv_file(clean_env, tmp_path):
    (tmp_path / ".env").write_text("XOA_URL=https://xo.dotenv\nXOA_TOKEN=from-file\n")
    config = ClientConfig.from_env()
    assert config.url == "https://xo.dotenv"
    assert config.token == "from-file"


def test_missing_credentials(clean_env):
    clean_env.setenv("XOA_URL", "https://xo.example.org")
    with pytest.raises(ConfigError, match="authentication information not provided"):
        ClientConfig.from_env()


def test_missing_url(clean_env):
    clean_env.setenv("XOA_TOKEN", "abc")
    with pytest.raises(ConfigError):
        ClientConfig.from_env()


def test_token_and_password_are_exclusive():
    with pytest.raises(ConfigError, match="not both"):
        ClientConfig.from_values(url="https://xo", token="t", user="u", password="p")


def test_user_without_password_is_rejected():
    with pytest.raises(ConfigError):
        ClientConfig.from_values(url="https://xo", user="u")


def test_blank_token_counts_as_unset():
    config = ClientConfig.from_values(url="https://xo", token="  ", user="u", password="p")
    assert config.token is None
    assert not config.uses_token


def test_unknown_retry_mode():
    with pytest.raises(ConfigError):
        ClientConfig.from_values(url="https://xo", token="t", retry_mode="sometimes")


@pytest.mark.parametrize("url", ["xo.example.org", "ftp://xo", "https://"])
def test_invalid_url(url):
    with pytest.raises(ConfigError):
        ClientConfig.from_values(url=url, token="t")


def test_derived_urls():
    config = ClientConfig.from_values(url="https://xo.example.org/", token="t")
    assert config.origin == "https://xo.example.org/"
    assert config.rest_base_url == "https://xo.example.org/rest/v0"
    assert config.websocket_url == "wss://xo.example.org/api/"


def test_derived_urls_keep_path_prefix():
    config = ClientConfig.from_values(url="http://proxy.local/xo", token="t")
    assert config.rest_base_url == "http://proxy.local/xo/rest/v0"
    assert config.websocket_url == "ws://proxy.local/xo/api/"


def test_ws_url_accepted():
    config = ClientConfig.from_values(url="wss://xo.example.org", token="t")
    assert config.rest_base_url == "https://xo.example.org/rest/v0"


def test_repr_hides_secrets():
    config = ClientConfig.from_values(url="https://xo", user="admin", password="hunter2")
    assert "hunter2" not in repr(config)
    assert "password" in repr(config)


def test_custom_logger_is_kept():
    parent = logging.getLogger("my-app")
    config = ClientConfig.from_values(url="https://xo", token="t", logger=parent)
    assert config.logger is parent


@pytest.mark.parametrize("raw, seconds", [
    (90, 90.0),
    (1.5, 1.5),
    ("45", 45.0),
    ("500ms", 0.5),
    ("30s", 30.0),
    ("5m", 300.0),
    ("1h30m", 5400.0),
])
def test_parse_duration(raw, seconds):
    assert parse_duration(raw) == pytest.approx(seconds)


@pytest.mark.parametrize("raw", ["", "abc", "5x", "-1", True, None, "10s junk"])
def test_parse_duration_rejects(raw):
    with pytest.raises(ValueError):
        parse_duration(raw)
