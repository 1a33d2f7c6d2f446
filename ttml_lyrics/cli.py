from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import NoReturn

import typer

from ttml_lyrics.config import EXPORT_FORMATS, load_config, save_config_format
from ttml_lyrics.logging_setup import setup_logging
from ttml_lyrics.render.ansi import Theme, render_document
from ttml_lyrics.ttml.errors import TTMLParseError
from ttml_lyrics.ttml.export import export_json, export_lrc, export_srt
from ttml_lyrics.ttml.model import TTMLLyric
from ttml_lyrics.ttml.parse import parse_ttml, parse_ttml_with_stats


app = typer.Typer(no_args_is_help=True, add_completion=False)


def _fail(path: Path, e: TTMLParseError) -> NoReturn:
    typer.secho(f"Failed to import {path}: {e}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _load(path: Path) -> TTMLLyric:
    try:
        return parse_ttml(path.read_text(encoding="utf-8"))
    except TTMLParseError as e:
        _fail(path, e)


@app.command()
def parse(
    ttml_path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """Parse TTML and print stats."""
    setup_logging(debug)
    try:
        doc, stats = parse_ttml_with_stats(ttml_path.read_text(encoding="utf-8"))
    except TTMLParseError as e:
        _fail(ttml_path, e)
    for f in fields(stats):
        typer.echo(f"{f.name}={getattr(stats, f.name)}")
    typer.echo(f"metadata={[m.key for m in doc.metadata]}")


@app.command()
def export(
    ttml_path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    fmt: str | None = typer.Option(None, "--format", case_sensitive=False, help="json|lrc|srt"),
    out: Path | None = typer.Option(None, "--out", help="Output file (default: stdout)"),
    no_bg: bool = typer.Option(False, "--no-bg", help="Leave background lines out of LRC/SRT"),
):
    """Export the parsed lyric to JSON/LRC/SRT."""
    cfg = load_config()
    fmt_l = (fmt or cfg.default_format).lower()
    if fmt_l not in EXPORT_FORMATS:
        raise typer.BadParameter("format must be one of: json, lrc, srt")
    include_bg = cfg.include_bg and not no_bg

    doc = _load(ttml_path)
    if fmt_l == "json":
        data = export_json(doc)
    elif fmt_l == "lrc":
        data = export_lrc(doc, include_bg=include_bg)
    else:
        data = export_srt(doc, include_bg=include_bg)

    if out:
        out.write_text(data, encoding="utf-8")
    else:
        typer.echo(data, nl=False)


@app.command()
def show(
    ttml_path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    no_color: bool = typer.Option(False, "--no-color", help="Plain text output"),
):
    """Preview the parsed lyric in the terminal."""
    cfg = load_config()
    doc = _load(ttml_path)
    theme = Theme.plain() if (no_color or not cfg.use_color) else Theme()
    for row in render_document(doc, theme):
        typer.echo(row)


@app.command()
def config(
    fmt: str = typer.Option(..., "--format", help="Default export format: json|lrc|srt"),
):
    """Persist the default export format."""
    try:
        save_config_format(fmt)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e
    typer.echo(f"Default format: {fmt.lower()}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
