"""Project scaffolding for `sable new`."""

from __future__ import annotations

from pathlib import Path

_SABLE_TOML_TEMPLATE = """\
[package]
name = "{name}"
version = "0.1.0"
authors = []

[source]
dirs = ["src"]

[check]
color = true
warnings_as_errors = false
"""

_MAIN_SBL_TEMPLATE = """\
module Main

@ String -> [IO] ()
greet name = print ("Hello, " ++ name ++ "!")

main = [
    who = "Sable"
    greet who
]
"""

_GITIGNORE = """\
__pycache__/
.sable/
"""


def scaffold(name: str, parent: Path | None = None) -> Path:
    """Create a new Sable project directory. Returns the project path."""
    base = parent or Path.cwd()
    project_dir = base / name

    if project_dir.exists():
        raise FileExistsError(f"Directory '{name}' already exists")

    src_dir = project_dir / "src"
    src_dir.mkdir(parents=True)

    (project_dir / "sable.toml").write_text(_SABLE_TOML_TEMPLATE.format(name=name))
    (src_dir / "main.sbl").write_text(_MAIN_SBL_TEMPLATE)
    (project_dir / ".gitignore").write_text(_GITIGNORE)

    return project_dir
