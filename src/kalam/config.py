"""Settings for kalam from .kalam.toml, the environment, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field

from kalam.integrations.supabase import SupabaseConfig
from kalam.store.base import DataStore
from kalam.store.json_store import STORE_FILENAME

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".kalam.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
]
GLOBAL_CONFIG = Path.home() / ".config" / "kalam" / "config.toml"


class SupabaseSectionConfig(BaseModel):
    """[supabase] section."""

    url: str = ""
    anon_key: str = ""
    access_token: str = ""
    timeout: float = 30.0


class AutosaveSectionConfig(BaseModel):
    """[autosave] section."""

    interval_seconds: float = 30.0


class StoreSectionConfig(BaseModel):
    """[store] section: local JSON store used when Supabase is not set up."""

    path: str = STORE_FILENAME


class KalamConfig(BaseModel):
    """Top-level configuration."""

    supabase: SupabaseSectionConfig = Field(default_factory=SupabaseSectionConfig)
    autosave: AutosaveSectionConfig = Field(default_factory=AutosaveSectionConfig)
    store: StoreSectionConfig = Field(default_factory=StoreSectionConfig)

    def to_supabase_config(self) -> SupabaseConfig:
        """Convert to SupabaseConfig for the PostgREST client."""
        return SupabaseConfig(
            url=self.supabase.url,
            anon_key=self.supabase.anon_key,
            access_token=self.supabase.access_token,
            timeout=self.supabase.timeout,
        )

    def create_store(self) -> DataStore:
        """Supabase when configured, otherwise the local JSON store."""
        supabase = self.to_supabase_config()
        if supabase.is_configured:
            from kalam.integrations.supabase import SupabaseStore

            return SupabaseStore(supabase)

        from kalam.store.json_store import JsonStore

        logger.info("Supabase not configured, using local store at %s", self.store.path)
        return JsonStore(Path(self.store.path))


def load_config(path: str | Path | None = None) -> KalamConfig:
    """Read settings from ``path``, else the project or user TOML file.

    A missing explicit file is logged and treated as empty. Environment
    variables win over anything read from disk.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        if not data and GLOBAL_CONFIG.exists():
            data = _load_toml(GLOBAL_CONFIG)
            logger.info("Loaded config from %s", GLOBAL_CONFIG)

    config = KalamConfig.model_validate(data) if data else KalamConfig()

    return _apply_env_vars(config)


def merge_cli_overrides(config: KalamConfig, **cli_kwargs: object) -> KalamConfig:
    """Return ``config`` with the flags the user actually passed applied.

    Keys without a mapping and None values are ignored.
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "supabase_url": ("supabase", "url"),
        "anon_key": ("supabase", "anon_key"),
        "access_token": ("supabase", "access_token"),
        "interval": ("autosave", "interval_seconds"),
        "store_path": ("store", "path"),
    }

    for key, value in cli_kwargs.items():
        if value is None or key not in mapping:
            continue
        section, field = mapping[key]
        data[section][field] = value

    return KalamConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Parsed TOML, or an empty dict when the file is unreadable."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: KalamConfig) -> KalamConfig:
    """Overlay SUPABASE_* and KALAM_* variables."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "SUPABASE_URL": ("supabase", "url"),
        "SUPABASE_ANON_KEY": ("supabase", "anon_key"),
        "KALAM_ACCESS_TOKEN": ("supabase", "access_token"),
        "KALAM_STORE_PATH": ("store", "path"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    interval_raw = os.environ.get("KALAM_AUTOSAVE_INTERVAL")
    if interval_raw is not None:
        try:
            data["autosave"]["interval_seconds"] = float(interval_raw)
        except ValueError:
            logger.warning("Invalid KALAM_AUTOSAVE_INTERVAL: %s", interval_raw)

    return KalamConfig.model_validate(data)
