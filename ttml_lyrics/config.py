from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "lrc", "srt")
DEFAULT_FORMAT = "json"


def _config_dir() -> Path:
    xdg = os.getenv("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "ttml-lyrics"
    return Path.home() / ".config" / "ttml-lyrics"


def _config_file() -> Path:
    return _config_dir() / "config.json"


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw not in ("0", "false", "False", "no")


@dataclass(frozen=True)
class AppConfig:
    config_dir: Path

    # Export
    default_format: str
    include_bg: bool  # background lines in LRC/SRT output

    # Preview
    use_color: bool


def load_config() -> AppConfig:
    config_dir = _config_dir()
    return AppConfig(
        config_dir=config_dir,
        default_format=_load_format(config_dir),
        include_bg=_env_flag("TTML_LYRICS_INCLUDE_BG", True),
        use_color=_env_flag("TTML_LYRICS_COLOR", True),
    )


def _load_format(config_dir: Path) -> str:
    # Priority: config.json → TTML_LYRICS_FORMAT → "json"
    cfg_path = config_dir / "config.json"
    if cfg_path.exists():
        try:
            data = json.loads(cfg_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable config %s: %s", cfg_path, e)
        else:
            raw = str(data.get("format") or "").lower()
            if raw in EXPORT_FORMATS:
                return raw
    env_fmt = (os.getenv("TTML_LYRICS_FORMAT") or "").lower()
    if env_fmt in EXPORT_FORMATS:
        return env_fmt
    return DEFAULT_FORMAT


def save_config_format(fmt: str) -> None:
    fmt_l = fmt.lower()
    if fmt_l not in EXPORT_FORMATS:
        raise ValueError(f"format must be one of: {', '.join(EXPORT_FORMATS)}")
    cfg_path = _config_file()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    data: dict[str, str] = {}
    if cfg_path.exists():
        try:
            data = json.loads(cfg_path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            data = {}
    data["format"] = fmt_l
    cfg_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
