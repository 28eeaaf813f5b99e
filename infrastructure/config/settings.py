# infrastructure/config/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import dotenv_values

from application.ports.logger import LEVELS
from domain.chase import DEFAULT_LIMIT, ChaseConfig, ProgressCallback
from domain.exceptions import ConfigError

# プロジェクトルートの .env
DEFAULT_ENV_PATH = Path(__file__).parent.parent.parent / ".env"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _load_env(env_path: Optional[Path]) -> Dict[str, str]:
    values: Dict[str, str] = {}
    if env_path is not None and env_path.exists():
        values.update({k: v for k, v in dotenv_values(env_path).items() if v is not None})
    # プロセス環境変数を優先
    values.update(os.environ)
    return values


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"{key} must be an integer: {raw!r}") from e
    if value < 0:
        raise ConfigError(f"{key} must be >= 0: {raw!r}")
    return value


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigError(f"{key} must be a number: {raw!r}") from e
    if value < 0:
        raise ConfigError(f"{key} must be >= 0: {raw!r}")
    return value


def _bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    v = raw.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ConfigError(f"{key} must be a boolean: {raw!r}")


@dataclass(frozen=True)
class ChaseSettings:
    limit: int = DEFAULT_LIMIT
    timeout_sec: float = 0
    user_agent: str = ""
    log_level: str = "WARNING"
    verify_tls: bool = True
    hop_timeout_sec: float = 30

    @classmethod
    def from_env(cls, env_path: Optional[Path] = DEFAULT_ENV_PATH) -> "ChaseSettings":
        env = _load_env(env_path)
        log_level = env.get("CHASELINK_LOG_LEVEL", "WARNING").strip().upper() or "WARNING"
        if log_level not in LEVELS:
            raise ConfigError(f"CHASELINK_LOG_LEVEL must be one of {sorted(LEVELS)}: {log_level!r}")
        return cls(
            limit=_int(env, "CHASELINK_LIMIT", DEFAULT_LIMIT),
            timeout_sec=_float(env, "CHASELINK_TIMEOUT", 0),
            user_agent=env.get("CHASELINK_USER_AGENT", ""),
            log_level=log_level,
            verify_tls=_bool(env, "CHASELINK_VERIFY_TLS", True),
            hop_timeout_sec=_float(env, "CHASELINK_HOP_TIMEOUT", 30),
        )

    def to_config(self, progress: Optional[ProgressCallback] = None) -> ChaseConfig:
        return ChaseConfig(
            limit=self.limit,
            timeout_sec=self.timeout_sec,
            user_agent=self.user_agent,
            progress=progress,
        )
