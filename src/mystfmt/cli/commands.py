"""CLI command implementations"""

import logging
import sys
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import structlog
import typer
from pydantic import TypeAdapter

from mystfmt.config import Settings, load_config
from mystfmt.core.analyze import analyze_chapter, create_chapter_summary
from mystfmt.core.models import ExternalSuggestion
from mystfmt.core.pipeline import FormatResult, format_content
from mystfmt.core.utils.diff import diff_summary, unified_diff
from mystfmt.core.verify import generate_verification_report, verify_preservation


def _fail(msg: str, cause: Exception = None) -> NoReturn:
    """Report an error on stderr and exit 1; the cause, if any, goes on its own line."""
    lines = [f"Error: {msg}"] + ([f"  {cause}"] if cause else [])
    typer.echo("\n".join(lines), err=True)
    raise typer.Exit(1)


def _settings(**overrides) -> Settings:
    """Settings for one command; a bad config file or value ends the command."""
    try:
        return load_config(overrides=overrides)
    except ValueError as e:
        _fail("Invalid configuration", e)


def configure_logging(verbose: bool = False) -> None:
    """Send structlog events to stderr so stdout carries only command output."""
    structlog.configure(
        logger_factory=lambda *args: structlog.PrintLogger(sys.stderr),
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG if verbose else logging.WARNING),
    )


def main_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log pipeline events to stderr")] = False,
    ):
    """Rule-based MyST formatting with content verification"""
    configure_logging(verbose)


def _read(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        _fail(f"Cannot read {path}", e)


def _external(path: Optional[str]) -> list[ExternalSuggestion]:
    """Load a JSON array of {paragraphId, type, title?, reason?} suggestions."""
    if not path:
        return []
    try:
        return TypeAdapter(list[ExternalSuggestion]).validate_json(_read(path))
    except ValueError as e:
        _fail(f"Invalid suggestions file {path}", e)


def _echo_summary(result: FormatResult) -> None:
    """Print applied transformations, warnings, and the verdict to stderr."""
    for t in result.applied_transformations:
        typer.echo(f"  {t.block_id}: {t.description}", err=True)
    for w in result.warnings:
        typer.echo(f"  warning: {w}", err=True)
    v = result.verification
    typer.echo(
        f"Applied {len(result.applied_transformations)} transformation(s), "
        f"{len(result.suggestions)} suggestion(s) - "
        f"{v.preservation_percentage:.1f}% words preserved",
        err=True,
    )


def format_cmd(
    path: Annotated[str, typer.Argument(help="Markdown file to format")],
    out: Annotated[Optional[str], typer.Option("--out", help="Write formatted output here instead of stdout")] = None,
    features: Annotated[Optional[str], typer.Option("--features", help="Comma-separated feature ids")] = None,
    threshold: Annotated[Optional[float], typer.Option("--threshold", help="Admonition confidence threshold")] = None,
    suggestions: Annotated[Optional[str], typer.Option("--suggestions", help="JSON file of external admonition suggestions")] = None,
    strict: Annotated[bool, typer.Option("--strict", help="Exit 1 without writing when content may be lost")] = False,
    diff: Annotated[bool, typer.Option("--diff", help="Print a unified diff instead of the formatted text")] = False,
    ):
    """Apply MyST formatting to a markdown file and verify nothing was lost."""
    settings = _settings(features=features, admonition_threshold=threshold, strict=strict or None)
    content = _read(path)
    config = settings.transformation_config(external=_external(suggestions))

    result = format_content(content, config, settings.overlap_threshold)
    _echo_summary(result)
    if settings.strict and not result.verification.is_preserved:
        typer.echo(generate_verification_report(result.verification), err=True)
        _fail("Content preservation failed")

    if diff:
        counts = diff_summary(content, result.formatted_content)
        typer.echo(''.join(unified_diff(content, result.formatted_content, path, out or path)), nl=False)
        typer.echo(f"{counts['added']} added, {counts['deleted']} deleted, {counts['unchanged']} unchanged", err=True)
    elif out:
        Path(out).write_text(result.formatted_content, encoding="utf-8")
        typer.echo(f"  {path} -> {out}")
    else:
        typer.echo(result.formatted_content)


def verify_cmd(
    original: Annotated[str, typer.Argument(help="Unformatted source file")],
    formatted: Annotated[str, typer.Argument(help="Formatted file to check against the source")],
    ):
    """Check that a formatted file keeps every word and sentence of its source."""
    settings = _settings()
    result = verify_preservation(_read(original), _read(formatted), overlap_threshold=settings.overlap_threshold)
    typer.echo(generate_verification_report(result))
    if not result.is_preserved:
        raise typer.Exit(1)


def analyze_cmd(
    path: Annotated[str, typer.Argument(help="Markdown chapter to analyze")],
    title: Annotated[Optional[str], typer.Option("--title", help="Chapter title; defaults to the first heading")] = None,
    ):
    """Print a chapter outline with detected patterns and a suggested feature budget."""
    typer.echo(create_chapter_summary(analyze_chapter(_read(path), title)))
