"""Settings loaded from the global and per-directory TOML config files."""

import os
import sys
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from .analysis import LONG_TEXT_THRESHOLD, PROMPTS_PER_PAGE
from .discovery import DEFAULT_SKIP_SUMMARIES

CONFIG_ENV_VAR = "SESSION_TRANSCRIPTS_CONFIG"
LOCAL_CONFIG_FILENAME = ".session-transcripts.toml"


def default_projects_folder() -> Path:
    return Path.home() / ".claude" / "projects"


@dataclass
class Settings:
    prompts_per_page: int = PROMPTS_PER_PAGE
    long_text_threshold: int = LONG_TEXT_THRESHOLD
    projects_folder: Path = field(default_factory=default_projects_folder)
    skip_summaries: tuple[str, ...] = DEFAULT_SKIP_SUMMARIES


def global_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()

    home = Path.home()
    if sys.platform == "darwin":
        return home / "Library" / "Application Support" / "session-transcripts" / "config.toml"
    if os.name == "nt":
        base = os.environ.get("APPDATA")
        if base:
            return Path(base) / "session-transcripts" / "config.toml"
        return home / "AppData" / "Roaming" / "session-transcripts" / "config.toml"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "session-transcripts" / "config.toml"
    return home / ".config" / "session-transcripts" / "config.toml"


def _read_toml_file(path: Path) -> dict:
    try:
        raw = path.read_bytes()
    except OSError:
        return {}
    try:
        obj = tomllib.loads(raw.decode("utf-8"))
    except (tomllib.TOMLDecodeError, UnicodeDecodeError):
        return {}
    return obj if isinstance(obj, dict) else {}


def _deep_merge_dicts(base: dict, override: dict) -> dict:
    out = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge_dicts(out[k], v)
        else:
            out[k] = v
    return out


def load_config_dict(*, cwd: Path | None = None) -> dict:
    cfg: dict = {}

    global_path = global_config_path()
    if global_path.exists():
        cfg = _deep_merge_dicts(cfg, _read_toml_file(global_path))

    if cwd is not None:
        local_path = Path(cwd) / LOCAL_CONFIG_FILENAME
        if local_path.exists():
            cfg = _deep_merge_dicts(cfg, _read_toml_file(local_path))

    return cfg


def config_get(cfg: dict, dotted_key: str, default=None):
    cur = cfg
    for part in dotted_key.split("."):
        if not isinstance(cur, dict) or part not in cur:
            return default
        cur = cur[part]
    return cur


def _positive_int(value, default: int) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    return default


def load_config(cwd: Path | None = None) -> Settings:
    """Resolve Settings from the global config, then ``cwd``'s local config."""
    cfg = load_config_dict(cwd=cwd)
    settings = Settings()

    settings.prompts_per_page = _positive_int(
        config_get(cfg, "render.prompts_per_page"), settings.prompts_per_page
    )
    settings.long_text_threshold = _positive_int(
        config_get(cfg, "render.long_text_threshold"), settings.long_text_threshold
    )

    folder = config_get(cfg, "discovery.projects_folder")
    if isinstance(folder, str) and folder.strip():
        settings.projects_folder = Path(folder.strip()).expanduser()

    skip = config_get(cfg, "discovery.skip_summaries")
    if isinstance(skip, list) and all(isinstance(s, str) for s in skip):
        settings.skip_summaries = tuple(skip)

    return settings
