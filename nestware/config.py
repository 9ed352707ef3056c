from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean flag, got {raw!r}")


@dataclass
class NestingConfig:
    nest_shaping: bool = True
    schema_path: Optional[str] = None
    metrics_enabled: bool = True

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.schema_path is not None and not self.schema_path.strip():
            raise ValueError("schema_path must be a non-empty path or None")

    @classmethod
    def from_env(cls) -> "NestingConfig":
        """
        Build a config from NESTWARE_* environment variables.

        NESTWARE_SCHEMA_PATH points at a JSON DMMF document used when init()
        is called without a client.
        """
        return cls(
            nest_shaping=_env_flag("NESTWARE_NEST_SHAPING", True),
            schema_path=os.environ.get("NESTWARE_SCHEMA_PATH") or None,
            metrics_enabled=_env_flag("NESTWARE_METRICS", True),
        )
