"""Server configuration.

Configuration is a tree of dataclasses with documented defaults. Values are
layered: dataclass defaults, then an optional YAML file, then CLI flags.
Each backend config also advertises what it needs from the operator
(nothing, a local path, or connection parameters) so tooling can prompt for
the right settings.
"""
from __future__ import annotations
import argparse
import enum
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml
from sqlalchemy.engine import URL

logger = logging.getLogger(__name__)


class Requirement(str, enum.Enum):
    NONE = "none"
    PATH = "path"
    CONNECTION = "connection"


@dataclass
class MemoryConfig:
    requirement = Requirement.NONE


@dataclass
class FileConfig:
    requirement = Requirement.PATH

    root_dir: str = "./data"


@dataclass
class SqlConfig:
    """Relational backend settings.

    `url` wins when set. Otherwise a PostgreSQL URL is built when `host` is
    set, and a local SQLite file at `sqlite_path` is used when it is not.
    """
    requirement = Requirement.CONNECTION

    url: Optional[str] = None
    host: Optional[str] = None
    port: int = 5432
    user: Optional[str] = None
    password: Optional[str] = None
    database: str = "caffeine"
    driver: str = "postgresql+psycopg"
    sqlite_path: str = "./caffeine.db"

    def build_url(self) -> str:
        if self.url:
            return self.url
        if self.host:
            return URL.create(
                self.driver,
                username=self.user,
                password=self.password,
                host=self.host,
                port=self.port,
                database=self.database,
            ).render_as_string(hide_password=False)
        return f"sqlite:///{Path(self.sqlite_path).resolve().as_posix()}"


@dataclass
class MongoConfig:
    requirement = Requirement.CONNECTION

    url: Optional[str] = None
    host: str = "localhost"
    port: int = 27017
    user: Optional[str] = None
    password: Optional[str] = None
    database: str = "caffeine"
    timeout_ms: int = 5000

    def client_options(self) -> Dict[str, Any]:
        opts: Dict[str, Any] = {"serverSelectionTimeoutMS": self.timeout_ms}
        if self.url:
            opts["host"] = self.url
            return opts
        opts.update(host=self.host, port=self.port)
        if self.user:
            opts.update(username=self.user, password=self.password)
        return opts


BACKEND_CONFIGS = {
    "memory": MemoryConfig,
    "file": FileConfig,
    "sql": SqlConfig,
    "mongo": MongoConfig,
}


def requirement_for(backend: str) -> Requirement:
    """Return what the named backend needs in order to run."""
    try:
        return BACKEND_CONFIGS[backend].requirement
    except KeyError:
        raise ValueError(f"unknown storage backend '{backend}'") from None


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8000
    storage_backend: str = "file"
    log_level: str = "INFO"

    broker_enabled: bool = False
    broker_queue_size: int = 100
    broker_keepalive_seconds: float = 15.0

    auth_enabled: bool = False
    auth_public_key: str = "./certs/public-cert.pem"
    auth_algorithms: List[str] = field(default_factory=lambda: ["RS256"])

    enable_brotli: bool = False
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    max_body_bytes: int = 1048576

    memory: MemoryConfig = field(default_factory=MemoryConfig)
    file: FileConfig = field(default_factory=FileConfig)
    sql: SqlConfig = field(default_factory=SqlConfig)
    mongo: MongoConfig = field(default_factory=MongoConfig)

    def backend_config(self) -> Any:
        if self.storage_backend not in BACKEND_CONFIGS:
            raise ValueError(f"unknown storage backend '{self.storage_backend}'")
        return getattr(self, self.storage_backend)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _apply(target: Any, data: Dict[str, Any], prefix: str = "") -> None:
    known = {f.name: f for f in fields(target)}
    for name, value in data.items():
        if name not in known:
            logger.warning("Ignoring unknown config key '%s%s'", prefix, name)
            continue
        current = getattr(target, name)
        if name in BACKEND_CONFIGS and isinstance(value, dict):
            _apply(current, value, prefix=f"{prefix}{name}.")
        else:
            setattr(target, name, value)


def load_config(path: Optional[str | Path] = None, base: Optional[ServerConfig] = None) -> ServerConfig:
    """Load a `ServerConfig`, overlaying the YAML file at `path` if given.

    A missing file is not an error; defaults are used. A file that is not
    a YAML mapping raises `ValueError`.
    """
    cfg = base or ServerConfig()
    if path is None:
        return cfg
    p = Path(path)
    if not p.exists():
        logger.info("Config file %s not found; using defaults", p)
        return cfg
    with p.open("r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"invalid config file {p}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"invalid config file {p}: expected mapping")
    _apply(cfg, data)
    requirement_for(cfg.storage_backend)
    return cfg


def template_yaml() -> str:
    """Default configuration as YAML, for `--print-template`."""
    return yaml.safe_dump(ServerConfig().to_dict(), sort_keys=False)


def get_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="caffeine", description="Generic JSON document store")
    p.add_argument("--config", help="Path to a YAML server configuration file")
    p.add_argument("--backend", choices=sorted(BACKEND_CONFIGS), help="Storage backend to use")
    p.add_argument("--host", help="Address to bind")
    p.add_argument("--port", type=int, help="Port to listen on")
    p.add_argument("--data-dir", help="Root directory for the file backend")
    p.add_argument("--enable-broker", action="store_true", help="Serve change notifications on /broker")
    p.add_argument("--enable-auth", action="store_true", help="Require JWT bearer tokens")
    p.add_argument("--print-template", action="store_true", help="Print the default YAML configuration and exit")
    return p


def parse_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    return get_parser().parse_args(list(argv) if argv is not None else None)


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Build the effective configuration: defaults, then file, then flags."""
    cfg = load_config(args.config)
    if args.backend:
        cfg.storage_backend = args.backend
    if args.host:
        cfg.host = args.host
    if args.port:
        cfg.port = args.port
    if args.data_dir:
        cfg.file.root_dir = args.data_dir
    if args.enable_broker:
        cfg.broker_enabled = True
    if args.enable_auth:
        cfg.auth_enabled = True
    return cfg
