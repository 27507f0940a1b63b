from .config import (
    FileConfig,
    MemoryConfig,
    MongoConfig,
    Requirement,
    ServerConfig,
    SqlConfig,
    config_from_args,
    get_parser,
    load_config,
    parse_args,
    requirement_for,
    template_yaml,
)

__all__ = [
    "FileConfig",
    "MemoryConfig",
    "MongoConfig",
    "Requirement",
    "ServerConfig",
    "SqlConfig",
    "config_from_args",
    "get_parser",
    "load_config",
    "parse_args",
    "requirement_for",
    "template_yaml",
]
