from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from .utils import load_json

# Checked in order; the first non-empty value wins.
API_KEY_ENV_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY", "API_KEY")


@dataclass(frozen=True)
class EngineConfig:
    recognition: dict[str, Any]
    crop: dict[str, Any]
    batch: dict[str, Any]
    export: dict[str, Any]


def load_config(config_path: str | Path | None = None) -> EngineConfig:
    data = load_json(config_path) if config_path else {}
    return EngineConfig(
        recognition=data.get("recognition", {}),
        crop=data.get("crop", {}),
        batch=data.get("batch", {}),
        export=data.get("export", {}),
    )


@dataclass(frozen=True)
class ApiKeyResolution:
    value: str | None
    source: str | None  # env var name the key came from

    @property
    def present(self) -> bool:
        return bool(self.value)


def resolve_api_key(env: Mapping[str, str] | None = None) -> ApiKeyResolution:
    """Resolve the recognition API credential from the hosting environment.

    Absence is reported through ``present`` rather than raised, so callers
    decide whether it is fatal.
    """
    env = os.environ if env is None else env
    for name in API_KEY_ENV_VARS:
        value = (env.get(name) or "").strip()
        if value:
            return ApiKeyResolution(value=value, source=name)
    return ApiKeyResolution(value=None, source=None)
