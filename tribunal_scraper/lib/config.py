"""Configuration management for the tribunal case scraper.

This module loads configuration from TOML files if present:
- `config.private.toml` (local, not checked into VCS)
- `config.toml` (project-level)

Values are read from the loaded config first, then fall back to
environment variables (``TRIBUNAL_`` prefix), then to built-in defaults.
"""

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

# Default values
DEFAULT_NAVIGATION_TIMEOUT_SECONDS = 60
DEFAULT_SELECTOR_WAIT_SECONDS = 10

DEFAULT_CAPTCHA_MAX_ATTEMPTS = 3
DEFAULT_CAPTCHA_SOLVER_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_CAPTCHA_SOLVER_MODEL = "gpt-4o"
DEFAULT_CAPTCHA_SOLVER_TIMEOUT_SECONDS = 30

DEFAULT_ROW_DELAY_SECONDS = 2.0
DEFAULT_QUERY_DELAY_SECONDS = 2.5
DEFAULT_RUN_DEADLINE_SECONDS = 540
DEFAULT_MIN_DETAIL_BUDGET_SECONDS = 30
DEFAULT_MIN_FILLED_FIELDS = 3
DEFAULT_ACTIONABLE_STATUSES = ("pending",)

DEFAULT_HEADLESS = True
DEFAULT_MAX_DRIVER_RESTARTS = 1

DEFAULT_OUTPUT_DIR = "output"
DEFAULT_EXPORT_WRITE_RETRIES = 2

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FILE = "logs/scraper.log"

DEFAULT_CACHE_TTL_SECONDS = 1800
DEFAULT_CACHE_MAX_ENTRIES = 128

DEFAULT_BACKOFF_FACTOR = 1.0
DEFAULT_MAX_BACKOFF_SECONDS = 60.0

ENV_PREFIX = "TRIBUNAL_"


def _load_toml_config(base_dir: Optional[Path] = None) -> dict:
    """Load config from `config.private.toml` then `config.toml` if available.

    Returns a dict with merged values (private overrides project file).
    """
    cfg: dict = {}
    base = base_dir or Path.cwd()
    # project file first so the private file overrides it
    for fname in ("config.toml", "config.private.toml"):
        p = base / fname
        if not p.exists():
            continue
        try:
            with open(p, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError):
            continue
        for k, v in data.items():
            if isinstance(v, dict) and isinstance(cfg.get(k), dict):
                cfg[k].update(v)
            else:
                cfg[k] = v
    return cfg


_CONFIG = _load_toml_config()


def _get_from_config(section: str, key: str):
    value = _CONFIG.get(section, {})
    if isinstance(value, dict):
        return value.get(key)
    return None


def _lookup(section: str, key: str, default: Any) -> Any:
    """Resolve a value: TOML section, then ``TRIBUNAL_<KEY>`` env var, then default.

    Unlike a plain ``or`` chain, explicit zero/false values are honoured.
    """
    val = _get_from_config(section, key)
    if val is not None:
        return val
    env = os.getenv(ENV_PREFIX + key.upper())
    if env is not None and env != "":
        return env
    return default


def _as_bool(val: Any) -> bool:
    if isinstance(val, str):
        return val.strip().lower() in ("1", "true", "yes", "on")
    return bool(val)


def _as_list(val: Any) -> tuple:
    if isinstance(val, str):
        return tuple(v.strip().lower() for v in val.split(",") if v.strip())
    return tuple(str(v).strip().lower() for v in val if str(v).strip())


class Config:
    """Configuration accessors."""

    @classmethod
    def reload(cls, base_dir: Optional[Path] = None) -> None:
        """Re-read TOML files (used by the CLI when ``--config-dir`` is given)."""
        global _CONFIG
        _CONFIG = _load_toml_config(base_dir)

    @classmethod
    def get_navigation_timeout_seconds(cls) -> int:
        return int(_lookup("browser", "navigation_timeout_seconds", DEFAULT_NAVIGATION_TIMEOUT_SECONDS))

    @classmethod
    def get_selector_wait_seconds(cls) -> int:
        return int(_lookup("browser", "selector_wait_seconds", DEFAULT_SELECTOR_WAIT_SECONDS))

    @classmethod
    def get_headless(cls) -> bool:
        return _as_bool(_lookup("browser", "headless", DEFAULT_HEADLESS))

    @classmethod
    def get_max_driver_restarts(cls) -> int:
        return int(_lookup("browser", "max_driver_restarts", DEFAULT_MAX_DRIVER_RESTARTS))

    @classmethod
    def get_captcha_max_attempts(cls) -> int:
        return int(_lookup("captcha", "captcha_max_attempts", DEFAULT_CAPTCHA_MAX_ATTEMPTS))

    @classmethod
    def get_captcha_solver_url(cls) -> str:
        return str(_lookup("captcha", "captcha_solver_url", DEFAULT_CAPTCHA_SOLVER_URL))

    @classmethod
    def get_captcha_solver_model(cls) -> str:
        return str(_lookup("captcha", "captcha_solver_model", DEFAULT_CAPTCHA_SOLVER_MODEL))

    @classmethod
    def get_captcha_solver_api_key(cls) -> Optional[str]:
        val = _lookup("captcha", "captcha_solver_api_key", None)
        if val is None:
            val = os.getenv("OPENAI_API_KEY")
        return val or None

    @classmethod
    def get_captcha_solver_timeout_seconds(cls) -> int:
        return int(_lookup("captcha", "captcha_solver_timeout_seconds", DEFAULT_CAPTCHA_SOLVER_TIMEOUT_SECONDS))

    @classmethod
    def get_row_delay_seconds(cls) -> float:
        return float(_lookup("app", "row_delay_seconds", DEFAULT_ROW_DELAY_SECONDS))

    @classmethod
    def get_query_delay_seconds(cls) -> float:
        return float(_lookup("app", "query_delay_seconds", DEFAULT_QUERY_DELAY_SECONDS))

    @classmethod
    def get_run_deadline_seconds(cls) -> float:
        return float(_lookup("app", "run_deadline_seconds", DEFAULT_RUN_DEADLINE_SECONDS))

    @classmethod
    def get_min_detail_budget_seconds(cls) -> float:
        return float(_lookup("app", "min_detail_budget_seconds", DEFAULT_MIN_DETAIL_BUDGET_SECONDS))

    @classmethod
    def get_min_filled_fields(cls) -> int:
        return int(_lookup("app", "min_filled_fields", DEFAULT_MIN_FILLED_FIELDS))

    @classmethod
    def get_actionable_statuses(cls) -> tuple:
        return _as_list(_lookup("app", "actionable_statuses", DEFAULT_ACTIONABLE_STATUSES))

    @classmethod
    def get_backoff_factor(cls) -> float:
        return float(_lookup("app", "backoff_factor", DEFAULT_BACKOFF_FACTOR))

    @classmethod
    def get_max_backoff_seconds(cls) -> float:
        return float(_lookup("app", "max_backoff_seconds", DEFAULT_MAX_BACKOFF_SECONDS))

    @classmethod
    def get_output_dir(cls) -> str:
        return str(_lookup("app", "output_dir", DEFAULT_OUTPUT_DIR))

    @classmethod
    def get_export_write_retries(cls) -> int:
        return max(1, int(_lookup("app", "export_write_retries", DEFAULT_EXPORT_WRITE_RETRIES)))

    @classmethod
    def get_cache_ttl_seconds(cls) -> float:
        return float(_lookup("cache", "cache_ttl_seconds", DEFAULT_CACHE_TTL_SECONDS))

    @classmethod
    def get_cache_max_entries(cls) -> int:
        return int(_lookup("cache", "cache_max_entries", DEFAULT_CACHE_MAX_ENTRIES))

    @classmethod
    def get_log_level(cls) -> str:
        return str(_lookup("logging", "log_level", DEFAULT_LOG_LEVEL))

    @classmethod
    def get_log_file(cls) -> Optional[str]:
        return _lookup("logging", "log_file", DEFAULT_LOG_FILE) or None

    @classmethod
    def get_site_overrides(cls) -> dict:
        """Return the raw ``[site]`` table (empty when absent)."""
        site = _CONFIG.get("site")
        return dict(site) if isinstance(site, dict) else {}
