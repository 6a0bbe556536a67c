from __future__ import annotations
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
import yaml
from dotenv import load_dotenv

from querycharts.db.models import DataSourceConfig
from querycharts.exceptions.errors import ConfigError

load_dotenv()

def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)

def _env_float(key: str, default: Optional[float]) -> Optional[float]:
    val = os.environ.get(key)
    if val is None or not val.strip():
        return default
    try:
        return float(val)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {val!r}") from None

@dataclass(frozen=True)
class Settings:
    env: str
    log_level: str
    log_file: str

    # Per-query timeout in seconds handed to the executor; None disables it
    query_timeout_seconds: Optional[float]

    data_sources: Dict[str, DataSourceConfig] = field(default_factory=dict)

    def data_source(self, name: str) -> DataSourceConfig:
        try:
            return self.data_sources[name]
        except KeyError:
            known = ", ".join(sorted(self.data_sources)) or "none"
            raise ConfigError(f"Unknown data source {name!r} (configured: {known})") from None

def _load_data_sources(raw: Mapping[str, Any]) -> Dict[str, DataSourceConfig]:
    out: Dict[str, DataSourceConfig] = {}
    for name, ds in (raw or {}).items():
        ds = dict(ds or {})
        # Keep passwords out of the yaml: <NAME>_PASSWORD wins when set
        ds["password"] = _env(f"{name.upper()}_PASSWORD", ds.get("password") or "") or ""
        out[name] = DataSourceConfig.from_dict(ds)
    return out

def load_settings(config_dir: str = "config") -> Settings:
    app_env = _env("APP_ENV", "dev")
    cfg_path = Path(config_dir) / f"{app_env}.yaml"
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config not found: {cfg_path}")

    cfg = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
    app_cfg = cfg.get("app") or {}
    query_cfg = cfg.get("query") or {}

    timeout_default = query_cfg.get("timeout_seconds")
    query_timeout = _env_float(
        "QUERY_TIMEOUT_SECONDS", float(timeout_default) if timeout_default is not None else None
    )

    return Settings(
        env=app_env,
        log_level=_env("LOG_LEVEL", str(app_cfg.get("log_level", "INFO"))),
        log_file=_env("LOG_FILE", str(app_cfg.get("log_file", "logs/querycharts.log"))),
        query_timeout_seconds=query_timeout,
        data_sources=_load_data_sources(cfg.get("data_sources") or {}),
    )
