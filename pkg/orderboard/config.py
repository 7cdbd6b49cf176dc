# Order board configuration
# Override via config.yaml (see config.example.yaml) or ORDERBOARD_* env vars.

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from .client import HttpOrdersClient, LocalOrdersClient, OrderBoardError
from .repository import WorkOrderRepository

CONFIG_PATH = Path(__file__).parent.parent.parent / "config.yaml"

ENV_OVERRIDES = {
    "ORDERBOARD_API_URL": "api_url",
    "ORDERBOARD_DB": "db_path",
    "ORDERBOARD_ORG": "organization_id",
    "ORDERBOARD_LOG_LEVEL": "log_level",
}


class ConfigError(OrderBoardError):
    """Raised when configuration is invalid or incomplete."""
    pass


@dataclass
class BoardConfig:
    """Runtime configuration for the board and its API server."""

    # Persistence
    api_url: Optional[str] = None  # None = standalone mode (local SQLite)
    db_path: str = "~/.local/share/orderboard/orders.db"
    organization_id: str = ""

    # Behavior
    request_timeout: float = 10.0
    fetch_limit: int = 1000

    # API server
    host: str = "127.0.0.1"
    port: int = 3000

    log_level: str = "INFO"

    def resolve_paths(self):
        """Expand ~ in paths."""
        self.db_path = str(Path(self.db_path).expanduser())

    def apply_env(self, environ=None):
        environ = os.environ if environ is None else environ
        for env_name, attr in ENV_OVERRIDES.items():
            value = environ.get(env_name)
            if value:
                setattr(self, attr, value)

    def validate(self):
        if self.request_timeout <= 0:
            raise ConfigError(f"request_timeout must be positive, got {self.request_timeout}")
        if self.fetch_limit <= 0:
            raise ConfigError(f"fetch_limit must be positive, got {self.fetch_limit}")
        if logging.getLevelName(self.log_level.upper()) == f"Level {self.log_level.upper()}":
            raise ConfigError(f"Unknown log_level: {self.log_level}")

    @classmethod
    def load(cls, path: Optional[str] = None, environ=None) -> "BoardConfig":
        """Load config from YAML, falling back to defaults, then apply env overrides."""
        cfg_path = Path(path) if path else CONFIG_PATH
        if cfg_path.exists():
            with open(cfg_path, "r") as f:
                try:
                    data = yaml.safe_load(f) or {}
                except yaml.YAMLError as e:
                    raise ConfigError(f"Cannot parse {cfg_path}: {e}") from e
            if not isinstance(data, dict):
                raise ConfigError(f"{cfg_path} must contain a mapping")
            cfg = cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})
        else:
            cfg = cls()
        cfg.apply_env(environ)
        try:
            cfg.request_timeout = float(cfg.request_timeout)
            cfg.fetch_limit = int(cfg.fetch_limit)
            cfg.port = int(cfg.port)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid numeric setting in {cfg_path}: {e}") from e
        cfg.resolve_paths()
        cfg.validate()
        return cfg


def setup_logging(cfg: BoardConfig, name: str = "orderboard") -> None:
    logging.basicConfig(
        level=getattr(logging, cfg.log_level.upper(), logging.INFO),
        format=f"%(asctime)s [{name}] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def make_client(cfg: BoardConfig):
    """HTTP client when api_url is set, otherwise the local SQLite client."""
    if cfg.api_url:
        return HttpOrdersClient(cfg.api_url, timeout=cfg.request_timeout)
    return LocalOrdersClient(WorkOrderRepository(cfg.db_path), limit=cfg.fetch_limit)
