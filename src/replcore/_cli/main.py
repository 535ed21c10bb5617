import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from replcore._classify import classify
from replcore._config import ConfigError, ReplConfig, get_config
from replcore._errors import CompilationError
from replcore._evaluator import EvaluationOutcome, Evaluator
from replcore._split import split_fragments

app = typer.Typer()

logger = logging.getLogger(__name__)
# Console for stderr (info/errors)
err_console = Console(stderr=True)
# Console for stdout (results)
out_console = Console()


@app.callback()
def callback(
    *,
    verbose: bool = typer.Option(default=False, help="Enable verbose output"),
) -> None:
    """Replcore CLI."""
    log_level = logging.DEBUG if verbose else logging.INFO

    # Configure rich logging handler to output to stderr
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=err_console,
                show_time=False,
                show_path=verbose,
                rich_tracebacks=True,
            ),
        ],
    )


def _load_config(lookup_paths: list[Path]) -> ReplConfig:
    try:
        config = get_config()
    except ConfigError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=2) from e
    if lookup_paths:
        config = config.model_copy(update={"lookup_paths": (*config.lookup_paths, *lookup_paths)})
    return config


def _report(outcome: EvaluationOutcome) -> None:
    """Print the result of one evaluation, or its failure."""
    if outcome.error is not None:
        error = outcome.error
        if isinstance(error, CompilationError):
            err_console.print(f"[red]✗ CompilationError (status {error.status})[/red]")
            err_console.print(escape(error.diagnostics.rstrip()))
        else:
            err_console.print(f"[red]✗ {type(error).__name__}: {escape(str(error))}[/red]")
        return

    result = outcome.result
    if result is not None:
        suffix = " [dim](cached)[/dim]" if outcome.cached else ""
        out_console.print(f"[bold]{escape(result.key)}[/bold] = {escape(repr(result.value))}{suffix}")


def _print_results(evaluator: Evaluator) -> None:
    table = Table(show_header=True, header_style="bold cyan", box=None)
    table.add_column("Key", style="bold")
    table.add_column("Type", style="dim")
    table.add_column("Value")

    for result in evaluator.results():
        table.add_row(escape(result.key), type(result.value).__name__, escape(repr(result.value)))

    err_console.print(Panel(table, title="[bold]Session Results[/bold]", border_style="cyan"))


LookupPathOption = Annotated[
    list[Path] | None,
    typer.Option("-p", "--path", help="Extra directory to search for imports (repeatable)"),
]


@app.command()
def run(
    path: Annotated[
        Path,
        typer.Argument(help="Path to a Python file to replay fragment by fragment"),
    ],
    *,
    lookup_path: LookupPathOption = None,
    keep_going: Annotated[
        bool,
        typer.Option("--keep-going", help="Continue with the next fragment after a failure"),
    ] = False,
    show_results: Annotated[
        bool,
        typer.Option("--results", help="Print a table of all session results at the end"),
    ] = False,
) -> None:
    """Evaluate every top-level fragment of a file in one session."""
    if not path.is_file():
        err_console.print(f"[red]Error: File not found: {path}[/red]")
        raise typer.Exit(code=1)

    config = _load_config(lookup_path or [])
    fragments = split_fragments(path.read_text(encoding="utf-8"))
    logger.debug("Split %s into %d fragments", path, len(fragments))

    failed = False
    with Evaluator(config) as evaluator:
        evaluator.add_lookup_path(path.parent.resolve())
        for fragment in fragments:
            outcome = evaluator.evaluate(fragment)
            _report(outcome)
            if not outcome.success:
                failed = True
                if not keep_going:
                    break

        if show_results:
            _print_results(evaluator)

    if failed:
        raise typer.Exit(code=1)


@app.command("eval")
def eval_(
    fragments: Annotated[
        list[str],
        typer.Argument(help="Fragments to evaluate, in order"),
    ],
    *,
    lookup_path: LookupPathOption = None,
) -> None:
    """Evaluate fragments given on the command line in one session."""
    config = _load_config(lookup_path or [])

    failed = False
    with Evaluator(config) as evaluator:
        for fragment in fragments:
            outcome = evaluator.evaluate(fragment)
            _report(outcome)
            failed = failed or not outcome.success

    if failed:
        raise typer.Exit(code=1)


@app.command("classify")
def classify_(
    path: Annotated[
        Path,
        typer.Argument(help="Path to a Python file"),
    ],
) -> None:
    """Show how each top-level fragment of a file is classified, without running it."""
    if not path.is_file():
        err_console.print(f"[red]Error: File not found: {path}[/red]")
        raise typer.Exit(code=1)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Kind", style="yellow")
    table.add_column("Fragment")

    for index, text in enumerate(split_fragments(path.read_text(encoding="utf-8")), start=1):
        fragment = classify(text)
        first_line, *rest = text.strip().splitlines()
        shown = first_line + (" …" if rest else "")
        table.add_row(str(index), str(fragment.kind), escape(shown))

    out_console.print(table)


def main() -> None:
    app()
