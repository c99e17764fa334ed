from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path

CONFIG_ENV_VAR = "BOOKSTORE_CONFIG"
DEFAULT_CONFIG_PATH = "config.toml"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DbConfig:
    host: str
    port: int
    name: str
    user: str
    password: str
    sslmode: str = "disable"

    def conninfo(self) -> str:
        return (
            f"host={self.host} port={self.port} dbname={self.name} "
            f"user={self.user} password={self.password} sslmode={self.sslmode}"
        )


@dataclass(frozen=True)
class PoolConfig:
    min_size: int = 1
    max_size: int = 10
    timeout: float = 30.0


@dataclass(frozen=True)
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 3000
    debug: bool = False


@dataclass(frozen=True)
class AppConfig:
    name: str
    log_level: str
    db: DbConfig
    pool: PoolConfig
    server: ServerConfig


def resolve_config_path(path: str | Path | None = None) -> Path:
    if path is not None:
        return Path(path)
    return Path(os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH))


def load_config(path: str | Path | None = None) -> AppConfig:
    p = resolve_config_path(path)
    if not p.exists():
        raise ConfigError(f"Config file not found: {p.resolve()}")

    try:
        data = tomllib.loads(p.read_text(encoding="utf-8"))
    except Exception as e:
        raise ConfigError(f"Failed to read config TOML: {e}") from e

    try:
        app = data["app"]
        db = data["db"]
        pool = data.get("pool", {})
        server = data.get("server", {})
        cfg = AppConfig(
            name=str(app.get("name", "Bookstore")),
            log_level=str(app.get("log_level", "INFO")).upper(),
            db=DbConfig(
                host=str(db["host"]),
                port=int(db.get("port", 5432)),
                name=str(db["name"]),
                user=str(db["user"]),
                password=str(db["password"]),
                sslmode=str(db.get("sslmode", "disable")),
            ),
            pool=PoolConfig(
                min_size=int(pool.get("min_size", 1)),
                max_size=int(pool.get("max_size", 10)),
                timeout=float(pool.get("timeout", 30.0)),
            ),
            server=ServerConfig(
                host=str(server.get("host", "127.0.0.1")),
                port=int(server.get("port", 3000)),
                debug=bool(server.get("debug", False)),
            ),
        )
    except KeyError as e:
        raise ConfigError(f"Missing config key: {e}") from e
    except Exception as e:
        raise ConfigError(f"Invalid config values: {e}") from e

    if cfg.pool.min_size < 0 or cfg.pool.max_size < max(cfg.pool.min_size, 1):
        raise ConfigError("Invalid [pool] sizes: need 0 <= min_size <= max_size and max_size >= 1.")
    if logging.getLevelName(cfg.log_level) == f"Level {cfg.log_level}":
        raise ConfigError(f"Unknown log_level: {cfg.log_level}")
    return cfg


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
