#!/usr/bin/env python3
"""
CLI interface for the statement extractor.
"""
import json
import logging
import typer
from pathlib import Path
from typing import Any, List, Optional
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .core.config import ConfigurationError, load_settings
from .core.detectors import FormatRegistry
from .core.loader import read_pdf_rows, read_text_rows
from .core.reconcile import validate_balance
from .core.runner import StatementRunner, collect_output, process_path
from .models.schema import Statement

app = typer.Typer(help="Bank and e-wallet statement extractor")
console = Console(stderr=True)

SUPPORTED_SUFFIXES = {".pdf", ".txt", ".csv"}


def _configure_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _emit(payload: Any, output: Optional[Path]):
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if output:
        output.write_text(text, encoding="utf-8")
        console.print(f"[green]✓ Output written to: {output}[/green]")
    else:
        typer.echo(text)


def _document_text(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return path.read_text(encoding="utf-8")
    rows = read_text_rows(path) if suffix == ".txt" else read_pdf_rows(path)
    return "\n".join(rows)


def _documents(path: Path) -> List[Path]:
    return sorted(p for p in path.iterdir() if p.is_file() and p.suffix.lower() in SUPPORTED_SUFFIXES)


@app.command()
def extract(
    path: Path = typer.Argument(..., help="Statement file or directory of statements"),
    statement_type: Optional[str] = typer.Option(None, "--type", "-t", help="Format ID to use"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Settings file with accounts"),
    transactions_only: bool = typer.Option(False, "--transactions-only", help="Output transactions only"),
    statement_only: bool = typer.Option(False, "--statement-only", help="Leave transactions out"),
    text_only: bool = typer.Option(False, "--text-only", help="Dump extracted text instead of parsing"),
    output: Optional[Path] = typer.Option(None, "--out", "-o", help="Output JSON file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output")
):
    """Extract statements from a document (or a directory of documents) into JSON."""
    _configure_logging(verbose)

    if not path.exists():
        console.print(f"[red]Error: path not found: {path}[/red]")
        raise typer.Exit(1)

    documents = _documents(path) if path.is_dir() else [path]

    try:
        if text_only:
            texts = [{"filename": doc.name, "text": _document_text(doc)} for doc in documents]
            _emit(texts if path.is_dir() else texts[0], output)
            return

        runner = StatementRunner.from_settings(load_settings(config))

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console
        ) as progress:
            task = progress.add_task("Extracting...", total=None)
            statements = []
            for doc in documents:
                progress.update(task, description=f"Extracting {doc.name}...")
                found = process_path(doc, statement_type, runner=runner)
                if not any(statement.has_useful_output for statement in found):
                    console.print(f"[yellow]No data found in {doc.name}[/yellow]")
                statements.extend(found)

        if path.is_dir():
            _emit(collect_output(statements, transactions_only, statement_only), output)
            return

        shaped = collect_output(statements, transactions_only, statement_only)
        if transactions_only:
            _emit(shaped, output)
        elif not shaped:
            _emit({}, output)
        else:
            _emit(shaped[0] if len(shaped) == 1 else shaped, output)

    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red]Error extracting {path}: {e}[/red]")
        if verbose:
            import traceback
            console.print(traceback.format_exc())
        raise typer.Exit(1)


@app.command()
def detect(
    path: Path = typer.Argument(..., help="Path to PDF or text file"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Settings file with format overrides")
):
    """Detect which format matches a document."""
    try:
        settings = load_settings(config)
        registry = FormatRegistry(overrides=settings.formats)
        rows = _document_text(path).split("\n")
        format_id = registry.detect_format(rows)
    except Exception as e:
        console.print(f"[red]Error detecting format: {e}[/red]")
        raise typer.Exit(1)

    if not format_id:
        console.print("[red]No matching format found[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Detected format: {format_id}[/green]")


@app.command()
def formats(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Settings file with format overrides")
):
    """List the registered statement formats."""
    try:
        registry = FormatRegistry(overrides=load_settings(config).formats)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Statement formats")
    table.add_column("Format")
    table.add_column("Strategy")
    table.add_column("Bank")
    table.add_column("Detection markers")
    for format_id in registry.list_formats():
        fmt = registry.get(format_id)
        table.add_row(format_id, fmt.strategy, fmt.bank, ", ".join(fmt.must_contain) or "-")
    Console().print(table)


@app.command()
def validate(
    json_path: Path = typer.Argument(..., help="Path to JSON file to validate")
):
    """Validate extracted JSON against the statement schema."""
    try:
        raw = json.loads(json_path.read_text(encoding="utf-8"))
        if isinstance(raw, list):
            statements = TypeAdapter(List[Statement]).validate_python(raw)
        else:
            statements = [Statement.model_validate(raw)]
    except (ValueError, ValidationError) as e:
        console.print(f"[red]Validation failed: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓ JSON is valid[/green] ({len(statements)} statement(s))")
    for statement in statements:
        console.print(f"{statement.source or '-'} [{statement.account.number or 'no account'}]: "
                      f"{len(statement.transactions)} transaction(s)")
        if statement.account.reconciliable:
            ok, message = validate_balance(statement)
            console.print(f"  [{'green' if ok else 'yellow'}]{message}[/]")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="Port")
):
    """Run the HTTP API."""
    import uvicorn
    uvicorn.run("ledgerscan.api:app", host=host, port=port)


if __name__ == "__main__":
    app()
