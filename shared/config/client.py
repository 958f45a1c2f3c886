"""
Client runtime configuration loader.

Reads shared/config/client.json (optional), validates it against
schemas/client.schema.json and applies COURTKEEPER_* environment overrides.

Design rules:
- Import-safe (no side effects)
- Missing or invalid values fall back to defaults with a warning
- Environment overrides win over the JSON document
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from jsonschema import Draft7Validator

from shared.logging.logger import get_logger

log = get_logger("shared.config.client")

_CONFIG_PATH = Path(__file__).parent / "client.json"
_SCHEMA_PATH = Path(__file__).resolve().parents[2] / "schemas" / "client.schema.json"


@dataclass
class ClientConfig:
    api_base_url: str = "http://localhost:5000/api"
    request_timeout_seconds: float = 15.0
    score_cache_ttl_seconds: float = 30 * 60
    team_debounce_seconds: float = 0.1
    fallback_club_id: Optional[int] = None
    state_dir: str = "shared/state"

    @classmethod
    def from_env(cls, *, base: Optional["ClientConfig"] = None) -> "ClientConfig":
        cfg = base or cls()

        base_url = os.getenv("COURTKEEPER_API_BASE_URL")
        if base_url:
            cfg.api_base_url = base_url.rstrip("/")

        state_dir = os.getenv("COURTKEEPER_STATE_DIR")
        if state_dir:
            cfg.state_dir = state_dir

        timeout = os.getenv("COURTKEEPER_API_TIMEOUT")
        if timeout:
            try:
                cfg.request_timeout_seconds = float(timeout)
            except ValueError:
                log.warning(f"Invalid COURTKEEPER_API_TIMEOUT={timeout}; using {cfg.request_timeout_seconds}")

        ttl = os.getenv("COURTKEEPER_SCORE_CACHE_TTL")
        if ttl:
            try:
                cfg.score_cache_ttl_seconds = float(ttl)
            except ValueError:
                log.warning(f"Invalid COURTKEEPER_SCORE_CACHE_TTL={ttl}; using {cfg.score_cache_ttl_seconds}")

        debounce_ms = os.getenv("COURTKEEPER_TEAM_DEBOUNCE_MS")
        if debounce_ms:
            try:
                cfg.team_debounce_seconds = max(0.0, float(debounce_ms) / 1000.0)
            except ValueError:
                log.warning(f"Invalid COURTKEEPER_TEAM_DEBOUNCE_MS={debounce_ms}; using default")

        fallback = os.getenv("COURTKEEPER_FALLBACK_CLUB_ID")
        if fallback:
            try:
                cfg.fallback_club_id = int(fallback)
            except ValueError:
                log.warning(f"Invalid COURTKEEPER_FALLBACK_CLUB_ID={fallback}; ignoring")

        return cfg


def _load_json(path: Path) -> Dict[str, Any]:
    if not path.exists():
        log.debug(f"client.json not found at {path}; using defaults")
        return {}

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            log.warning("client.json root is not an object; ignoring")
    except Exception as e:
        log.warning(f"Failed to load client.json ({e}); using defaults")

    return {}


def _validate(payload: Dict[str, Any], schema_path: Path = _SCHEMA_PATH) -> bool:
    if not schema_path.exists():
        log.debug(f"Client config schema not found at {schema_path}; skipping")
        return True

    try:
        schema = json.loads(schema_path.read_text(encoding="utf-8"))
    except Exception as e:
        log.warning(f"Failed to load client config schema ({e}); skipping validation")
        return True

    validator = Draft7Validator(schema)
    errors = sorted(validator.iter_errors(payload), key=lambda e: list(e.path))
    for err in errors:
        loc = "/".join(str(p) for p in err.path)
        log.warning(f"client config validation warning at '{loc}': {err.message}")
    return not errors


def _coerce(raw: Dict[str, Any], key: str, cast, default):
    if key not in raw or raw[key] is None:
        return default
    try:
        return cast(raw[key])
    except (TypeError, ValueError):
        log.warning(f"client.json '{key}' has invalid value {raw[key]!r}; using {default!r}")
        return default


def load_client_config(
    raw: Optional[Dict[str, Any]] = None,
    *,
    apply_env: bool = True,
) -> ClientConfig:
    raw = raw if raw is not None else _load_json(_CONFIG_PATH)
    if raw and not _validate(raw):
        log.warning("client config failed validation; invalid keys fall back to defaults")

    defaults = ClientConfig()
    cfg = ClientConfig(
        api_base_url=str(raw.get("api_base_url") or defaults.api_base_url).rstrip("/"),
        request_timeout_seconds=_coerce(raw, "request_timeout_seconds", float, defaults.request_timeout_seconds),
        score_cache_ttl_seconds=_coerce(raw, "score_cache_ttl_seconds", float, defaults.score_cache_ttl_seconds),
        team_debounce_seconds=_coerce(raw, "team_debounce_seconds", float, defaults.team_debounce_seconds),
        fallback_club_id=_coerce(raw, "fallback_club_id", int, defaults.fallback_club_id),
        state_dir=str(raw.get("state_dir") or defaults.state_dir),
    )

    return ClientConfig.from_env(base=cfg) if apply_env else cfg


__all__ = [
    "ClientConfig",
    "load_client_config",
]
