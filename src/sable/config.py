"""TOML config loading for sable.toml."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_NAME = "sable.toml"


@dataclass
class PackageConfig:
    name: str = "untitled"
    version: str = "0.0.0"
    authors: list[str] = field(default_factory=list)


@dataclass
class SourceConfig:
    dirs: list[str] = field(default_factory=lambda: ["src"])


@dataclass
class CheckConfig:
    color: bool = True
    warnings_as_errors: bool = False


@dataclass
class SableConfig:
    package: PackageConfig = field(default_factory=PackageConfig)
    source: SourceConfig = field(default_factory=SourceConfig)
    check: CheckConfig = field(default_factory=CheckConfig)


def find_config(start_path: Path | None = None) -> Path:
    """Walk up directories to find sable.toml. Raises FileNotFoundError."""
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


def load_config(path: Path) -> SableConfig:
    """Parse a sable.toml file into a SableConfig."""
    with open(path, "rb") as f:
        data = tomllib.load(f)

    config = SableConfig()

    if "package" in data:
        pkg = data["package"]
        config.package = PackageConfig(
            name=pkg.get("name", "untitled"),
            version=pkg.get("version", "0.0.0"),
            authors=pkg.get("authors", []),
        )

    if "source" in data:
        src = data["source"]
        config.source = SourceConfig(dirs=src.get("dirs", ["src"]))

    if "check" in data:
        chk = data["check"]
        config.check = CheckConfig(
            color=chk.get("color", True),
            warnings_as_errors=chk.get("warnings_as_errors", False),
        )

    return config
