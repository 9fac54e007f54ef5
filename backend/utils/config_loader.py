"""
Config Loader - Centralized configuration access for Lexiquery

Provides typed access to all configuration values from settings.yaml.

Usage:
    from utils.config_loader import get_config, Config

    config = get_config()
    print(config.query.row_limit)  # 50
    print(config.cache.domain_row_limit)  # 500

Environment overrides (read after .env is loaded):
    LEXIQUERY_SETTINGS  - alternative settings.yaml path
    LEXIQUERY_DB_PATH   - DuckDB file path (":memory:" allowed)
"""

import os
import yaml
import threading
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional, List

from dotenv import load_dotenv

load_dotenv()


@dataclass
class ProjectConfig:
    """Project metadata."""
    environment: str = "local"
    name: str = "lexiquery"


@dataclass
class DuckDBConfig:
    """DuckDB database configuration."""
    snapshot_path: str = "data_sources/snapshots/latest.duckdb"


@dataclass
class LexiconConfig:
    """Where the lexicon & relationship store is read from."""
    path: str = "config/lexicon.yaml"


@dataclass
class QueryConfig:
    """Query execution configuration."""
    row_limit: int = 50
    max_workers: int = 8
    table_timeout_seconds: float = 5.0
    request_timeout_seconds: float = 15.0


@dataclass
class CacheConfig:
    """Domain value cache configuration."""
    domain_row_limit: int = 500
    prefix_min_length: int = 3
    prefix_max_length: int = 5


@dataclass
class APIConfig:
    """HTTP adapter configuration."""
    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])


@dataclass
class Config:
    """Complete configuration for Lexiquery."""
    project: ProjectConfig
    duckdb: DuckDBConfig
    lexicon: LexiconConfig
    query: QueryConfig
    cache: CacheConfig
    api: APIConfig


# Singleton instance
_config: Optional[Config] = None
_config_lock = threading.Lock()

# Use path relative to this file's location (backend/utils/) -> backend/config/
_BACKEND_DIR = Path(__file__).parent.parent
_DEFAULT_CONFIG_PATH = _BACKEND_DIR / "config" / "settings.yaml"


def _config_path() -> Path:
    override = os.getenv("LEXIQUERY_SETTINGS")
    return Path(override) if override else _DEFAULT_CONFIG_PATH


def resolve_backend_path(path: str) -> Path:
    """Resolve a configured relative path against the backend directory."""
    candidate = Path(path)
    if candidate.is_absolute():
        return candidate
    return _BACKEND_DIR / candidate


def _load_raw_config() -> dict:
    """Load raw YAML config from file."""
    path = _config_path()
    if not path.exists():
        return {}

    with open(path) as f:
        return yaml.safe_load(f) or {}


def _parse_config(raw: dict) -> Config:
    """Parse raw dict into typed Config object."""
    config = Config(
        project=ProjectConfig(
            environment=raw.get("project", {}).get("environment", "local"),
            name=raw.get("project", {}).get("name", "lexiquery"),
        ),
        duckdb=DuckDBConfig(
            snapshot_path=raw.get("duckdb", {}).get("snapshot_path", "data_sources/snapshots/latest.duckdb"),
        ),
        lexicon=LexiconConfig(
            path=raw.get("lexicon", {}).get("path", "config/lexicon.yaml"),
        ),
        query=QueryConfig(
            row_limit=int(raw.get("query", {}).get("row_limit", 50)),
            max_workers=int(raw.get("query", {}).get("max_workers", 8)),
            table_timeout_seconds=float(raw.get("query", {}).get("table_timeout_seconds", 5.0)),
            request_timeout_seconds=float(raw.get("query", {}).get("request_timeout_seconds", 15.0)),
        ),
        cache=CacheConfig(
            domain_row_limit=int(raw.get("cache", {}).get("domain_row_limit", 500)),
            prefix_min_length=int(raw.get("cache", {}).get("prefix_min_length", 3)),
            prefix_max_length=int(raw.get("cache", {}).get("prefix_max_length", 5)),
        ),
        api=APIConfig(
            host=raw.get("api", {}).get("host", "0.0.0.0"),
            port=int(raw.get("api", {}).get("port", 8000)),
            allowed_origins=list(raw.get("api", {}).get("allowed_origins", ["http://localhost:3000"])),
        ),
    )

    db_override = os.getenv("LEXIQUERY_DB_PATH")
    if db_override:
        config.duckdb.snapshot_path = db_override

    return config


def get_config(force_reload: bool = False) -> Config:
    """
    Get the singleton Config instance.

    Args:
        force_reload: Force reload from file (ignores cache)

    Returns:
        Config: The configuration object
    """
    global _config

    if _config is not None and not force_reload:
        return _config

    with _config_lock:
        if _config is None or force_reload:
            raw = _load_raw_config()
            _config = _parse_config(raw)
        return _config


def reload_config() -> Config:
    """Force reload configuration from file."""
    return get_config(force_reload=True)


def validate_config() -> List[str]:
    """
    Validate configuration and return list of warnings.

    Returns:
        List of warning messages (empty if all OK)
    """
    warnings = []
    config = get_config()

    if not _config_path().exists():
        warnings.append("[WARN]  config/settings.yaml not found - using defaults")

    lexicon_path = resolve_backend_path(config.lexicon.path)
    if not lexicon_path.exists():
        warnings.append(f"[WARN]  Lexicon not found at {lexicon_path} - queries will fail")

    if config.query.row_limit <= 0:
        warnings.append("[WARN]  query.row_limit must be positive")

    if config.query.table_timeout_seconds > config.query.request_timeout_seconds:
        warnings.append("[WARN]  query.table_timeout_seconds exceeds request_timeout_seconds")

    if config.cache.prefix_min_length > config.cache.prefix_max_length:
        warnings.append("[WARN]  cache.prefix_min_length exceeds prefix_max_length")

    return warnings


def print_startup_validation() -> None:
    """Print configuration validation during startup."""
    warnings = validate_config()

    if warnings:
        print("\n  Configuration Warnings:")
        for warning in warnings:
            print(f"    {warning}")
    else:
        print("  Configuration: [OK] All validated")
