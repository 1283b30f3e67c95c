"""Sable front end CLI."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

import click

from sable import __version__
from sable.config import SableConfig, find_config, load_config
from sable.errors import CompileError, DiagnosticRenderer, Severity
from sable.lexer import Lexer
from sable.parser import parse_source
from sable.project import scaffold


def _source_files(project_dir: Path, config: SableConfig) -> list[Path]:
    files: list[Path] = []
    for name in config.source.dirs:
        src_dir = project_dir / name
        if src_dir.is_dir():
            files.extend(sorted(src_dir.rglob("*.sbl")))
    return files


def _check_files(files: list[Path], config: SableConfig) -> bool:
    """Parse every file and render its diagnostics. Returns True if OK."""
    renderer = DiagnosticRenderer(color=config.check.color)
    had_errors = False

    for path in files:
        source = path.read_text()
        filename = str(path)
        result = parse_source(source, filename)
        for diag in result.diagnostics:
            click.echo(renderer.render(diag), err=True)
            if diag.severity == Severity.ERROR:
                had_errors = True
            elif diag.severity == Severity.WARNING and config.check.warnings_as_errors:
                had_errors = True

    return not had_errors


def _config_for(path: Path) -> SableConfig:
    try:
        return load_config(find_config(path))
    except FileNotFoundError:
        return SableConfig()


@click.group()
@click.version_option(__version__, prog_name="sable")
def main() -> None:
    """The Sable language front end."""


@main.command()
@click.argument("path", default=".", type=click.Path(exists=True))
def check(path: str) -> None:
    """Parse a Sable file or project and report diagnostics."""
    target = Path(path)

    if target.is_file():
        ok = _check_files([target], _config_for(target))
        if not ok:
            raise SystemExit(1)
        click.echo(f"checked {target} - no errors")
        return

    try:
        config_path = find_config(target)
    except FileNotFoundError:
        click.echo("error: no sable.toml found", err=True)
        raise SystemExit(1)

    config = load_config(config_path)
    click.echo(f"checking {config.package.name}...")
    files = _source_files(config_path.parent, config)
    if not files:
        click.echo("warning: no .sbl files found", err=True)
        return
    if not _check_files(files, config):
        raise SystemExit(1)
    click.echo(f"checked {config.package.name} - no errors")


@main.command()
@click.argument("name")
def new(name: str) -> None:
    """Create a new Sable project."""
    try:
        project_dir = scaffold(name)
        click.echo(f"created project '{name}' at {project_dir}")
    except FileExistsError as e:
        click.echo(f"error: {e}", err=True)
        raise SystemExit(1)


@main.command()
def lsp() -> None:
    """Start the Sable language server."""
    from sable.lsp import main as lsp_main

    lsp_main()


@main.command()
@click.argument("file", type=click.Path(exists=True))
def tokens(file: str) -> None:
    """Print the token stream of a Sable source file."""
    source = Path(file).read_text()
    filename = str(file)

    try:
        toks = Lexer(source, filename).lex()
    except CompileError as e:
        renderer = DiagnosticRenderer(color=True)
        for diag in e.diagnostics:
            click.echo(renderer.render(diag), err=True)
        raise SystemExit(1)

    for tok in toks:
        click.echo(f"{tok.span.start_line}:{tok.span.start_col}\t{tok.kind.name}\t{tok.value!r}")


@main.command()
@click.argument("file", type=click.Path(exists=True))
def view(file: str) -> None:
    """View the AST of a Sable source file."""
    source = Path(file).read_text()
    filename = str(file)

    result = parse_source(source, filename)
    if not result.ok:
        renderer = DiagnosticRenderer(color=True, sources={filename: source})
        for diag in result.diagnostics:
            click.echo(renderer.render(diag), err=True)
        raise SystemExit(1)

    _dump_ast(result.module, 0)


def _dump_ast(node: object, depth: int) -> None:
    """Print a readable AST dump."""
    indent = "  " * depth
    name = type(node).__name__

    if hasattr(node, "__dataclass_fields__"):
        fields = node.__dataclass_fields__  # type: ignore[union-attr]
        click.echo(f"{indent}{name}")
        for field_name in fields:
            if field_name == "span":
                continue
            value = getattr(node, field_name)
            if isinstance(value, list):
                if value:
                    click.echo(f"{indent}  {field_name}:")
                    for item in value:
                        _dump_ast(item, depth + 2)
                else:
                    click.echo(f"{indent}  {field_name}: []")
            elif hasattr(value, "__dataclass_fields__"):
                click.echo(f"{indent}  {field_name}:")
                _dump_ast(value, depth + 2)
            elif isinstance(value, Enum):
                click.echo(f"{indent}  {field_name}: {value.value}")
            elif value is not None:
                click.echo(f"{indent}  {field_name}: {value!r}")
    else:
        click.echo(f"{indent}{name}: {node!r}")
