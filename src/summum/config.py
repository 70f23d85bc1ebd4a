"""TOML config loading for summum.toml."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_NAME = "summum.toml"


@dataclass
class NamingConfig:
    """Reserved names recognized inside method templates."""

    self_type: str = "InnerT"
    variant_suffix: str = "inner_var"
    receiver: str = "_summum_self"
    restrict: str = "summum_restrict"
    exclude: str = "summum_exclude"
    variant_name: str = "summum_variant_name"


@dataclass
class EmitConfig:
    allow_dead_code: bool = True
    banner: bool = True
    macro_name: str = "summum"


@dataclass
class SummumConfig:
    naming: NamingConfig = field(default_factory=NamingConfig)
    emit: EmitConfig = field(default_factory=EmitConfig)


def find_config(start_path: Path | None = None) -> Path:
    """Walk up directories to find summum.toml. Raises FileNotFoundError."""
    path = (start_path or Path.cwd()).resolve()
    if path.is_file():
        path = path.parent
    while True:
        candidate = path / CONFIG_NAME
        if candidate.exists():
            return candidate
        parent = path.parent
        if parent == path:
            raise FileNotFoundError(f"No {CONFIG_NAME} found in any parent directory")
        path = parent


def load_config(path: Path) -> SummumConfig:
    """Parse a summum.toml file into a SummumConfig."""
    with open(path, "rb") as f:
        data = tomllib.load(f)

    config = SummumConfig()

    if "naming" in data:
        nm = data["naming"]
        defaults = NamingConfig()
        config.naming = NamingConfig(
            self_type=nm.get("self_type", defaults.self_type),
            variant_suffix=nm.get("variant_suffix", defaults.variant_suffix),
            receiver=nm.get("receiver", defaults.receiver),
            restrict=nm.get("restrict", defaults.restrict),
            exclude=nm.get("exclude", defaults.exclude),
            variant_name=nm.get("variant_name", defaults.variant_name),
        )

    if "emit" in data:
        em = data["emit"]
        config.emit = EmitConfig(
            allow_dead_code=em.get("allow_dead_code", True),
            banner=em.get("banner", True),
            macro_name=em.get("macro_name", "summum"),
        )

    return config


def resolve_config(start_path: Path | None = None) -> SummumConfig:
    """Load the nearest summum.toml, or the defaults when there is none."""
    try:
        return load_config(find_config(start_path))
    except FileNotFoundError:
        return SummumConfig()
