"""
Conversion options.

Options are built once, from an optional rmconvert.toml file overlaid with
command-line flags, and passed explicitly to every stage of a run.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

import tomli

from .constants import DEFAULT_INK_COLOR
from .exceptions import ConfigError

DEFAULT_CONFIG_NAME = "rmconvert.toml"


@dataclass(frozen=True)
class StyleOptions:
    """Visual edits applied to every annotated page."""
    ink_color: Optional[str] = None
    stroke_width: Optional[float] = None
    margins: bool = False
    margin_color: Optional[str] = None
    pale: bool = False

    @property
    def effective_margin_color(self) -> str:
        """Margin color: explicit, else the ink override, else default ink."""
        return self.margin_color or self.ink_color or DEFAULT_INK_COLOR


@dataclass(frozen=True)
class ConvertOptions:
    """Everything a run needs besides the bundle itself."""
    width: Optional[float] = None
    height: Optional[float] = None
    output: Optional[Path] = None
    jobs: int = 1
    style: StyleOptions = field(default_factory=StyleOptions)

    def __post_init__(self):
        for name in ("width", "height"):
            _check_positive(name, getattr(self, name))
        _check_positive("stroke_width", self.style.stroke_width)
        if self.jobs < 1:
            raise ConfigError(f"jobs must be at least 1, got {self.jobs}")


def _check_positive(name: str, value: Optional[float]) -> None:
    if value is not None and value <= 0:
        raise ConfigError(f"{name} must be a positive number, got {value}")


# Accepted keys per table, with their expected types
_SCHEMA: dict[str, dict[str, tuple[type, ...]]] = {
    "style": {
        "color": (str,),
        "stroke_width": (int, float),
        "margins": (bool,),
        "margin_color": (str,),
        "pale": (bool,),
    },
    "page": {
        "width": (int, float),
        "height": (int, float),
    },
}


def _validate(data: dict[str, Any]) -> None:
    for key, value in data.items():
        if key == "jobs":
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"jobs must be an integer, got {value!r}")
            continue
        if key not in _SCHEMA or not isinstance(value, dict):
            raise ConfigError(f"Unknown configuration entry: {key}")
        for sub_key, sub_value in value.items():
            expected = _SCHEMA[key].get(sub_key)
            if expected is None:
                raise ConfigError(f"Unknown configuration entry: {key}.{sub_key}")
            if isinstance(sub_value, bool) and bool not in expected:
                raise ConfigError(f"{key}.{sub_key} has the wrong type")
            if not isinstance(sub_value, expected):
                raise ConfigError(f"{key}.{sub_key} has the wrong type")


def parse_config(config_path: Path) -> ConvertOptions:
    """Parse a TOML defaults file into options."""
    try:
        with open(config_path, "rb") as f:
            data = tomli.load(f)
    except OSError as exc:
        raise ConfigError(f"Cannot read config {config_path}: {exc}") from exc
    except tomli.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid config {config_path}: {exc}") from exc

    _validate(data)
    style = data.get("style", {})
    page = data.get("page", {})
    return ConvertOptions(
        width=page.get("width"),
        height=page.get("height"),
        jobs=data.get("jobs", 1),
        style=StyleOptions(
            ink_color=style.get("color") or None,
            stroke_width=style.get("stroke_width"),
            margins=style.get("margins", False),
            margin_color=style.get("margin_color") or None,
            pale=style.get("pale", False),
        ),
    )


def load_options(
    config_path: Optional[Path] = None,
    *,
    search_dir: Optional[Path] = None,
) -> ConvertOptions:
    """
    Load defaults from a config file.

    An explicit path must exist. Without one, rmconvert.toml in
    search_dir (default: the working directory) is used if present.
    """
    if config_path is not None:
        if not Path(config_path).is_file():
            raise ConfigError(f"Config not found: {config_path}")
        return parse_config(Path(config_path))

    candidate = Path(search_dir or Path.cwd()) / DEFAULT_CONFIG_NAME
    if candidate.is_file():
        return parse_config(candidate)
    return ConvertOptions()


def merge_options(base: ConvertOptions, **overrides: Any) -> ConvertOptions:
    """
    Overlay command-line values on file defaults.

    None means "not given"; style keys are ink_color, stroke_width,
    margins, margin_color and pale. Flags can only switch margins and
    paling on.
    """
    style_keys = {"ink_color", "stroke_width", "margins", "margin_color", "pale"}
    style_changes = {}
    page_changes = {}
    for key, value in overrides.items():
        if value is None or value is False:
            continue
        if key in style_keys:
            style_changes[key] = value
        else:
            page_changes[key] = value

    return replace(base, style=replace(base.style, **style_changes), **page_changes)
