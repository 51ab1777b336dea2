"""Configuration loading from environment variables and pimem.toml."""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_CONFIG_FILENAME = "pimem.toml"
_TRUE_VALUES = ("1", "true")


@dataclass(frozen=True)
class MemoryConfig:
    """Resolved locations of the memory files."""

    memory_dir: Path
    memory_file: Path
    scratchpad_file: Path
    daily_dir: Path
    notes_dir: Path
    context_files: tuple[str, ...] = ()
    autocommit: bool = False


@dataclass
class EngineConfig:
    """Configuration for the narrative summary engine."""

    name: str = "anthropic_api"
    model: str = "claude-haiku-4-5"
    max_tokens: int = 1024
    timeout: int = 60
    api_key: str | None = None


@dataclass
class DashboardConfig:
    """Configuration for the "last 24h" session dashboard."""

    sessions_dir: Path = Path("~") / ".pi" / "agent" / "sessions"
    cache_file: Path = Path("~") / ".pi" / "agent" / "memory" / "daily" / "cache.json"
    rebuild_interval: int = 15 * 60


@dataclass
class PimemConfig:
    """Top-level configuration."""

    memory: MemoryConfig
    engine: EngineConfig = field(default_factory=EngineConfig)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    log_level: str = "INFO"


def build_config(env: Mapping[str, str] | None = None) -> MemoryConfig:
    """Derive memory locations from named inputs. Pure, no filesystem access."""
    env = os.environ if env is None else env
    home = env.get("HOME", "~")
    memory_dir = Path(env.get("PI_MEMORY_DIR", Path(home) / ".pi" / "agent" / "memory"))
    daily_dir = Path(env.get("PI_DAILY_DIR", memory_dir / "daily"))
    context_files = tuple(
        name.strip() for name in env.get("PI_CONTEXT_FILES", "").split(",") if name.strip()
    )
    return MemoryConfig(
        memory_dir=memory_dir,
        memory_file=memory_dir / "MEMORY.md",
        scratchpad_file=memory_dir / "SCRATCHPAD.md",
        daily_dir=daily_dir,
        notes_dir=memory_dir / "notes",
        context_files=context_files,
        autocommit=env.get("PI_AUTOCOMMIT") in _TRUE_VALUES,
    )


def _toml_to_env(file_data: dict) -> dict[str, str]:
    """Translate pimem.toml values into the named inputs build_config reads."""
    memory_data = file_data.get("memory", {})
    engine_data = file_data.get("engine", {})
    dashboard_data = file_data.get("dashboard", {})

    values: dict[str, str] = {}
    if "memory_dir" in memory_data:
        values["PI_MEMORY_DIR"] = str(memory_data["memory_dir"])
    if "daily_dir" in memory_data:
        values["PI_DAILY_DIR"] = str(memory_data["daily_dir"])
    context_files = memory_data.get("context_files")
    if isinstance(context_files, list):
        values["PI_CONTEXT_FILES"] = ",".join(str(f) for f in context_files)
    elif context_files:
        values["PI_CONTEXT_FILES"] = str(context_files)
    if "autocommit" in memory_data:
        autocommit = memory_data["autocommit"]
        values["PI_AUTOCOMMIT"] = "true" if autocommit is True else str(autocommit)
    if "name" in engine_data:
        values["PI_SUMMARY_ENGINE"] = str(engine_data["name"])
    if "model" in engine_data:
        values["PI_SUMMARY_MODEL"] = str(engine_data["model"])
    if "timeout" in engine_data:
        values["PI_SUMMARY_TIMEOUT"] = str(engine_data["timeout"])
    if "sessions_dir" in dashboard_data:
        values["PI_SESSIONS_DIR"] = str(dashboard_data["sessions_dir"])
    if "log_level" in file_data:
        values["PI_LOG_LEVEL"] = str(file_data["log_level"])
    return values


def _read_config_file(config_path: Path | None, home: str) -> dict:
    if config_path and config_path.exists():
        return tomllib.loads(config_path.read_text())
    # Search current dir and ~/.pi/agent/
    for candidate in [
        Path.cwd() / _CONFIG_FILENAME,
        Path(home) / ".pi" / "agent" / _CONFIG_FILENAME,
    ]:
        if candidate.exists():
            return tomllib.loads(candidate.read_text())
    return {}


def load_config(
    config_path: Path | None = None, env: Mapping[str, str] | None = None
) -> PimemConfig:
    """Load configuration from environment variables and optional pimem.toml.

    Priority: environment variables > pimem.toml > defaults.
    """
    env = dict(os.environ if env is None else env)
    home = env.get("HOME", "~")
    merged = {**_toml_to_env(_read_config_file(config_path, home)), **env}

    memory = build_config(merged)
    engine = EngineConfig(
        name=merged.get("PI_SUMMARY_ENGINE", "anthropic_api"),
        model=merged.get("PI_SUMMARY_MODEL", EngineConfig.model),
        timeout=int(merged.get("PI_SUMMARY_TIMEOUT", EngineConfig.timeout)),
        api_key=merged.get("ANTHROPIC_API_KEY") or None,
    )
    dashboard = DashboardConfig(
        sessions_dir=Path(
            merged.get("PI_SESSIONS_DIR") or Path(home) / ".pi" / "agent" / "sessions"
        ),
        cache_file=memory.daily_dir / "cache.json",
    )
    return PimemConfig(
        memory=memory,
        engine=engine,
        dashboard=dashboard,
        log_level=merged.get("PI_LOG_LEVEL", "INFO"),
    )
