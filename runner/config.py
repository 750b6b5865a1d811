"""Configuration loader for the automation runner."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple


DEFAULT_FAILURE_KEYWORDS: Tuple[str, ...] = (
    "Invalid",
    "Incorrect",
    "Error",
    "Failed",
    "not found",
    "ไม่ถูกต้อง",
    "ผิดพลาด",
    "ไม่พบ",
    "ล้มเหลว",
)

DEFAULTS: Dict[str, Any] = {
    "action_timeout_ms": 500,
    "assertion_wait_ms": 500,
    "navigation_timeout_ms": 5000,
    "screenshot_timeout_ms": 3000,
    "run_timeout_s": 300.0,
    "headless": True,
    "slow_mo_ms": 150,
    "headed_close_delay_ms": 2000,
    "viewport_width": 1280,
    "viewport_height": 720,
    "failure_keywords": DEFAULT_FAILURE_KEYWORDS,
    "log_root": None,
    "store_path": None,
    "api_timeout_s": 30.0,
    "host": "0.0.0.0",
    "port": 3002,
    "cors_origins": "*",
    "log_level": "INFO",
}

_TRUE_VALUES = {"true", "1", "yes", "on"}


def as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def _as_keywords(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = list(value or [])
    return tuple(str(item).strip() for item in items if str(item).strip())


def _as_optional_path(value: Any) -> Optional[Path]:
    if value is None:
        return None
    text = str(value).strip()
    return Path(text) if text else None


@dataclass(slots=True)
class RunnerConfig:
    action_timeout_ms: int = DEFAULTS["action_timeout_ms"]
    assertion_wait_ms: int = DEFAULTS["assertion_wait_ms"]
    navigation_timeout_ms: int = DEFAULTS["navigation_timeout_ms"]
    screenshot_timeout_ms: int = DEFAULTS["screenshot_timeout_ms"]
    run_timeout_s: float = DEFAULTS["run_timeout_s"]
    headless: bool = DEFAULTS["headless"]
    slow_mo_ms: int = DEFAULTS["slow_mo_ms"]
    headed_close_delay_ms: int = DEFAULTS["headed_close_delay_ms"]
    viewport_width: int = DEFAULTS["viewport_width"]
    viewport_height: int = DEFAULTS["viewport_height"]
    failure_keywords: Tuple[str, ...] = field(default_factory=lambda: DEFAULT_FAILURE_KEYWORDS)
    log_root: Optional[Path] = None
    store_path: Optional[Path] = None
    api_timeout_s: float = DEFAULTS["api_timeout_s"]
    host: str = DEFAULTS["host"]
    port: int = DEFAULTS["port"]
    cors_origins: str = DEFAULTS["cors_origins"]
    log_level: str = DEFAULTS["log_level"]

    @classmethod
    def from_mapping(cls, mapping: Dict[str, Any]) -> "RunnerConfig":
        data = dict(DEFAULTS)
        data.update(mapping)
        config = cls(
            action_timeout_ms=int(data["action_timeout_ms"]),
            assertion_wait_ms=int(data["assertion_wait_ms"]),
            navigation_timeout_ms=int(data["navigation_timeout_ms"]),
            screenshot_timeout_ms=int(data["screenshot_timeout_ms"]),
            run_timeout_s=float(data["run_timeout_s"]),
            headless=as_bool(data["headless"]),
            slow_mo_ms=int(data["slow_mo_ms"]),
            headed_close_delay_ms=int(data["headed_close_delay_ms"]),
            viewport_width=int(data["viewport_width"]),
            viewport_height=int(data["viewport_height"]),
            failure_keywords=_as_keywords(data["failure_keywords"]),
            log_root=_as_optional_path(data["log_root"]),
            store_path=_as_optional_path(data["store_path"]),
            api_timeout_s=float(data["api_timeout_s"]),
            host=str(data["host"]),
            port=int(data["port"]),
            cors_origins=str(data["cors_origins"]),
            log_level=str(data["log_level"]).upper(),
        )
        config.validate()
        return config

    def validate(self) -> None:
        for name in (
            "action_timeout_ms",
            "assertion_wait_ms",
            "navigation_timeout_ms",
            "screenshot_timeout_ms",
            "run_timeout_s",
            "api_timeout_s",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        for name in ("slow_mo_ms", "headed_close_delay_ms"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if self.viewport_width <= 0 or self.viewport_height <= 0:
            raise ValueError("viewport dimensions must be positive")

    def slow_mo_for(self, headless: bool) -> int:
        return 0 if headless else self.slow_mo_ms


def _load_toml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("rb") as fh:
        return tomllib.load(fh)


def load_config(config_path: Path | None = None) -> RunnerConfig:
    """Load configuration from environment, optional TOML file, and defaults."""

    env_map: Dict[str, Any] = {}
    for key, value in os.environ.items():
        if key.startswith("RUNNER_"):
            name = key[7:].lower()
            if name in DEFAULTS:
                env_map[name] = value

    file_map: Dict[str, Any] = {}
    path = config_path or Path(os.getenv("RUNNER_CONFIG", "config.toml"))
    if path.exists():
        file_map = _load_toml(path).get("runner", {})

    merged = {**file_map, **env_map}
    return RunnerConfig.from_mapping(merged)
