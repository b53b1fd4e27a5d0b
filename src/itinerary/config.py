from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import yaml

@dataclass
class RefreshConfig:
    debounce_ms: int = 5000
    poll_interval_seconds: float = 2.0

    @property
    def quiet_window(self) -> float:
        return self.debounce_ms / 1000.0

@dataclass
class AppConfig:
    vault: str = "."
    timezone: str = "UTC"
    refresh: RefreshConfig = field(default_factory=RefreshConfig)

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

def config_from_dict(data: Dict[str, Any]) -> AppConfig:
    refresh = data.get("refresh", {}) or {}
    if not isinstance(refresh, dict):
        raise ValueError("'refresh' must be a mapping")

    cfg = AppConfig(
        vault=str(data.get("vault", ".")),
        timezone=str(data.get("timezone", "UTC")),
        refresh=RefreshConfig(
            debounce_ms=int(refresh.get("debounce_ms", 5000)),
            poll_interval_seconds=float(refresh.get("poll_interval_seconds", 2.0)),
        ),
    )

    if cfg.refresh.debounce_ms < 0:
        raise ValueError("'refresh.debounce_ms' must not be negative")
    if cfg.refresh.poll_interval_seconds <= 0:
        raise ValueError("'refresh.poll_interval_seconds' must be positive")
    try:
        cfg.tz
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown 'timezone' {cfg.timezone!r}") from exc
    return cfg

def load_config(path: Optional[str] = None) -> AppConfig:
    if path is None:
        return AppConfig()
    p = Path(path)
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping")
    return config_from_dict(data)
