"""Tests for configuration loading."""

import pytest

from pkg.orderboard.client import HttpOrdersClient, LocalOrdersClient
from pkg.orderboard.config import BoardConfig, ConfigError, make_client


def write_config(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return str(path)


def test_defaults_when_file_missing(tmp_path):
    cfg = BoardConfig.load(str(tmp_path / "missing.yaml"), environ={})
    assert cfg.api_url is None
    assert cfg.fetch_limit == 1000
    assert cfg.request_timeout == 10.0
    assert cfg.port == 3000
    assert not cfg.db_path.startswith("~")


def test_yaml_values_and_unknown_keys(tmp_path):
    path = write_config(tmp_path, (
        "api_url: http://localhost:3000\n"
        "organization_id: org-9\n"
        "request_timeout: 2.5\n"
        "fetch_limit: '250'\n"
        "board_theme: ignored\n"
    ))
    cfg = BoardConfig.load(path, environ={})
    assert cfg.api_url == "http://localhost:3000"
    assert cfg.organization_id == "org-9"
    assert cfg.request_timeout == 2.5
    assert cfg.fetch_limit == 250
    assert not hasattr(cfg, "board_theme")


def test_env_overrides_file(tmp_path):
    path = write_config(tmp_path, "organization_id: from-file\n")
    cfg = BoardConfig.load(path, environ={
        "ORDERBOARD_ORG": "from-env",
        "ORDERBOARD_DB": str(tmp_path / "env.db"),
        "ORDERBOARD_API_URL": "",
    })
    assert cfg.organization_id == "from-env"
    assert cfg.db_path == str(tmp_path / "env.db")
    assert cfg.api_url is None


@pytest.mark.parametrize("text", [
    "request_timeout: 0\n",
    "fetch_limit: -5\n",
    "fetch_limit: lots\n",
    "log_level: chatty\n",
    "- just\n- a list\n",
    "api_url: [unclosed\n",
])
def test_invalid_config_raises(tmp_path, text):
    path = write_config(tmp_path, text)
    with pytest.raises(ConfigError):
        BoardConfig.load(path, environ={})


def test_make_client_selects_backend(tmp_path):
    local = make_client(BoardConfig(db_path=str(tmp_path / "orders.db")))
    assert isinstance(local, LocalOrdersClient)
    assert local.limit == 1000

    remote = make_client(BoardConfig(api_url="http://board:3000/", request_timeout=4))
    assert isinstance(remote, HttpOrdersClient)
    assert remote.base_url == "http://board:3000"
    assert remote.timeout == 4
