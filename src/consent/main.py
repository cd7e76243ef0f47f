"""
Consent - CLI Entry Point.

Usage:
    consent inspect FILE                 Show the sections of a consent document
    consent check FILE --set id=value    Check whether responses complete a document
    consent export FILE OUTPUT           Export a filled-in document to PDF
    consent serve                        Start the HTTP API
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from onboarding.config import get_settings as get_onboarding_settings

from .config import get_settings
from .document import ConsentDocument, Incomplete
from .errors import ConsentError, ConsentLoadError
from .export import ExportConfiguration, PaperSize
from .sections import SelectSection, SignatureSection, ToggleSection, section_kind
from .signature import InkSignature, PersonName, SignatureStorage, TypedSignature

app = typer.Typer(
    name="consent",
    help="Consent documents - parse, check and export to PDF.",
    add_completion=False,
)
console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Log to stderr; --verbose switches to DEBUG."""
    level = logging.DEBUG if verbose else getattr(logging, get_settings().log_level)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    # Document change notification lives in the onboarding package
    logging.getLogger("onboarding").setLevel(
        logging.DEBUG if verbose else getattr(logging, get_onboarding_settings().log_level)
    )


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")) -> None:
    setup_logging(verbose)


def _load(path: Path, plain: bool = False, name: Optional[str] = None) -> ConsentDocument:
    initial_name = None
    if name:
        given, _, family = name.strip().rpartition(" ")
        initial_name = PersonName(given_name=given or family, family_name=family if given else "")
    try:
        return ConsentDocument.from_file(path, initial_name=initial_name, enable_custom_elements=not plain)
    except OSError as e:
        console.print(f"[red]Cannot read {path}: {e}[/red]")
        raise typer.Exit(1)
    except ConsentLoadError as e:
        console.print(f"[red]Invalid consent document: {e}[/red]")
        raise typer.Exit(1)


def _apply_responses(document: ConsentDocument, assignments: List[str]) -> None:
    """Apply `id=value` assignments; toggles accept true/false/yes/no."""
    for assignment in assignments:
        section_id, sep, raw = assignment.partition("=")
        if not sep:
            console.print(f"[red]Expected id=value, got '{assignment}'[/red]")
            raise typer.Exit(2)
        try:
            current = document.value(section_id)
            if isinstance(current, bool):
                value = raw.strip().lower() in ("true", "yes", "1", "on")
            else:
                value = raw
            document.set_value(section_id, value)
        except (LookupError, ValueError) as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(2)


def _sign(document: ConsentDocument, signature: Optional[str]) -> None:
    """Sign every signature section with the given text (or a short ink mark)."""
    if not signature:
        return
    for section in document.interactive_sections:
        if not isinstance(section, SignatureSection):
            continue
        current: SignatureStorage = document.value(section)
        if isinstance(current.signature, TypedSignature):
            signed = TypedSignature(text=signature)
        else:
            signed = InkSignature()
            signed.add_stroke([(0, 20), (20, 0), (40, 20), (60, 0)])
        document.set_value(section, SignatureStorage(name=current.name, signature=signed, drawing_size=(60, 20)))
    document.stamp_signature_date()


@app.command()
def inspect(
    path: Path = typer.Argument(..., help="Consent document (markdown)"),
    plain: bool = typer.Option(False, "--plain", help="Treat the file as plain markdown"),
) -> None:
    """Show the sections of a consent document."""
    document = _load(path, plain)

    console.print(f"\n[bold]{document.title or path.name}[/bold]")
    if document.version:
        console.print(f"[dim]Version {document.version}[/dim]")

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Kind", no_wrap=True)
    table.add_column("Id", no_wrap=True)
    table.add_column("Content")
    table.add_column("Initial")
    for index, section in enumerate(document.sections, 1):
        if isinstance(section, ToggleSection):
            row = (section.id, section.prompt, str(section.initial_value))
        elif isinstance(section, SelectSection):
            options = ", ".join(option.id for option in section.options)
            row = (section.id, f"{section.prompt} [{options}]", section.initial_value or "-")
        elif isinstance(section, SignatureSection):
            row = (section.id, "", "")
        else:
            text = section.text.replace("\n", " ")
            row = ("", text[:60] + ("..." if len(text) > 60 else ""), "")
        table.add_row(str(index), section_kind(section), *(escape(cell) for cell in row))
    console.print(table)


@app.command()
def check(
    path: Path = typer.Argument(..., help="Consent document (markdown)"),
    responses: List[str] = typer.Option([], "--set", "-s", help="Response as id=value (repeatable)"),
    name: Optional[str] = typer.Option(None, "--name", help="Signer name, 'Given Family'"),
    signature: Optional[str] = typer.Option(None, "--signature", help="Sign every signature section"),
    plain: bool = typer.Option(False, "--plain", help="Treat the file as plain markdown"),
) -> None:
    """Check whether the given responses complete the document."""
    document = _load(path, plain, name)
    _apply_responses(document, responses)
    _sign(document, signature)

    state = document.completion_state
    if isinstance(state, Incomplete):
        console.print(f"[yellow]Incomplete[/yellow]: first incomplete element is '{state.first_incomplete_id}'")
        raise typer.Exit(1)
    console.print("[green]Complete[/green]")


@app.command()
def export(
    path: Path = typer.Argument(..., help="Consent document (markdown)"),
    output: Path = typer.Argument(..., help="PDF file to write"),
    responses: List[str] = typer.Option([], "--set", "-s", help="Response as id=value (repeatable)"),
    name: Optional[str] = typer.Option(None, "--name", help="Signer name, 'Given Family'"),
    signature: Optional[str] = typer.Option(None, "--signature", help="Sign every signature section"),
    paper_size: Optional[PaperSize] = typer.Option(None, "--paper-size", help="us_letter or din_a4"),
    timestamp: Optional[bool] = typer.Option(None, "--timestamp/--no-timestamp", help="Include export timestamp"),
    title: Optional[str] = typer.Option(None, "--title", help="Override the document title"),
    plain: bool = typer.Option(False, "--plain", help="Treat the file as plain markdown"),
) -> None:
    """Export a consent document to PDF."""
    document = _load(path, plain, name)
    _apply_responses(document, responses)
    _sign(document, signature)

    config = ExportConfiguration.from_settings(
        document.settings,
        paper_size=paper_size,
        including_timestamp=timestamp,
        title_override=title,
    )
    try:
        pdf = document.export(config)
    except ConsentError as e:
        console.print(f"[red]Export failed: {e}[/red]")
        raise typer.Exit(1)

    output.write_bytes(pdf)
    console.print(f"[green]Wrote {output}[/green] ({len(pdf)} bytes)")
    if isinstance(document.completion_state, Incomplete):
        console.print("[yellow]Note: the document is not complete[/yellow]")


@app.command()
def serve(
    port: int = typer.Option(8000, "--port", "-p", help="Port to run on"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload for development"),
) -> None:
    """Start the consent HTTP API."""
    import uvicorn

    console.print("\n[bold green]Consent API[/bold green]")
    console.print(f"Starting server on http://localhost:{port}")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    uvicorn.run("consent.web:app", host="0.0.0.0", port=port, reload=reload)


if __name__ == "__main__":
    app()
