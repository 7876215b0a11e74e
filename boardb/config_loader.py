import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .metrics import DEFAULT_MAX_ENTRIES


DEFAULTS: Dict[str, Any] = {
    "host": "127.0.0.1",
    "port": 3333,
    "max_entries": DEFAULT_MAX_ENTRIES,
    "exclude_paths": ["/health", "/favicon.ico"],
    "include_body": False,
    "include_headers": False,
    "frontend_dir": None,
    "cors_origins": ["*"],
    "log_level": "info",
    "database": None,
}

# Names both the logging module and uvicorn accept
LOG_LEVELS = ("critical", "error", "warning", "info", "debug")


def _load_json_or_yaml(path: Path) -> Dict[str, Any]:
    text = path.read_text()
    # JSON first (most config files are JSON), YAML otherwise
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise RuntimeError(f"Failed to parse {path} as JSON or YAML: {e}")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise RuntimeError(f"Config file {path} must contain a mapping")
    return data


def load_config_file(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    raw = path or os.getenv("BOARDB_CONFIG")
    if not raw:
        return {}
    p = Path(raw)
    if not p.exists():
        raise FileNotFoundError(f"Config file not found: {p}")
    return _load_json_or_yaml(p)


def env_override(key: str, default: int) -> int:
    v = os.getenv(key)
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    v = os.getenv(key)
    if v is None:
        return default
    return v.lower() in ("1", "true", "on", "yes")


def _env_list(key: str, default: List[str]) -> List[str]:
    v = os.getenv(key)
    if v is None:
        return default
    return [p.strip() for p in v.split(",") if p.strip()]


def database_from_env(base: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
    """Overlay ``DB_*`` variables on ``base``.

    Returns None when neither a URL nor the host/user/password/name quartet
    is available.
    """
    db: Dict[str, Any] = dict(base or {})
    for env_key, key in [
        ("DB_HOST", "host"),
        ("DB_USER", "user"),
        ("DB_PASSWORD", "password"),
        ("DB_NAME", "database"),
        ("DB_URL", "url"),
    ]:
        v = os.getenv(env_key)
        if v is not None:
            db[key] = v
    db["port"] = env_override("DB_PORT", int(db.get("port") or 3306))
    if db.get("url"):
        return db
    if all(db.get(k) for k in ("host", "user", "password", "database")):
        return db
    return None


def build_effective_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Merge order: env overrides -> config file -> defaults."""
    cfg: Dict[str, Any] = dict(DEFAULTS)
    cfg["exclude_paths"] = list(DEFAULTS["exclude_paths"])
    cfg.update(load_config_file(path))

    cfg["host"] = os.getenv("BOARDB_HOST", cfg["host"])
    cfg["port"] = env_override("BOARDB_PORT", int(cfg["port"]))
    cfg["max_entries"] = env_override("BOARDB_MAX_ENTRIES", int(cfg["max_entries"]))
    cfg["exclude_paths"] = _env_list("BOARDB_EXCLUDE_PATHS", list(cfg["exclude_paths"]))
    cfg["include_body"] = _env_bool("BOARDB_INCLUDE_BODY", bool(cfg["include_body"]))
    cfg["include_headers"] = _env_bool("BOARDB_INCLUDE_HEADERS", bool(cfg["include_headers"]))
    cfg["frontend_dir"] = os.getenv("BOARDB_FRONTEND_DIR", cfg["frontend_dir"])
    cfg["log_level"] = str(os.getenv("LOG_LEVEL") or cfg["log_level"] or "info").lower()
    if cfg["log_level"] not in LOG_LEVELS:
        cfg["log_level"] = "info"
    cfg["database"] = database_from_env(cfg.get("database"))
    return cfg
