# src/buildgraph/cli.py
"""buildgraph Command Line Interface.

Entry point for the buildgraph CLI tool.
"""

from __future__ import annotations

from pathlib import Path

import typer
import yaml
from pydantic import ValidationError

from buildgraph import __version__
from buildgraph.core.config import ExportSettings, load_settings, settings_from_env
from buildgraph.export import action_dependency_graph, export_graph, find_action_cycle
from buildgraph.graph import GraphModelError, LoadedGraph, Node, load_graph

__all__ = [
    "app",
]

app = typer.Typer(
    name="buildgraph",
    help="buildgraph: export build dependency graphs as JSON.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"buildgraph version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from .env file.

    Args:
        env_file: Explicit path to .env file. If None, searches for .env
                 in current directory and parent directories.

    Returns:
        True if .env was found and loaded, False otherwise.

    Raises:
        typer.Exit: If explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(
                f"Error: .env file not found: {env_file}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)  # Don't override existing env vars


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
        exists=False,  # We handle existence check ourselves for better error message
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """buildgraph: export build dependency graphs as JSON."""
    # Configure logging before any subcommand runs
    from buildgraph.core.logging import configure_logging

    log_level = "DEBUG" if verbose else "INFO"
    configure_logging(json_output=json_logs, level=log_level)

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho(
            "Warning: --env-file ignored because --no-dotenv is set.",
            fg=typer.colors.YELLOW,
            err=True,
        )


def _format_error(
    title: str,
    message: str,
    hint: str | None = None,
    details: list[str] | None = None,
) -> None:
    """Display a formatted error with optional hint and details."""
    from rich.console import Console
    from rich.panel import Panel
    from rich.text import Text

    console = Console(stderr=True)

    content = Text()
    content.append(message, style="white")

    if details:
        content.append("\n\n")
        for detail in details:
            content.append(f"  • {detail}\n", style="dim")

    if hint:
        content.append("\n")
        content.append("Hint: ", style="yellow bold")
        content.append(hint, style="yellow")

    panel = Panel(
        content,
        title=f"[red bold]❌ {title}[/]",
        border_style="red",
        padding=(0, 1),
    )
    console.print(panel)


def _load_settings_or_exit(settings: Path | None) -> ExportSettings:
    """Load export settings, exiting with a formatted error on failure."""
    try:
        if settings is None:
            return settings_from_env()
        return load_settings(settings.expanduser())
    except FileNotFoundError:
        _format_error(
            title="File Not Found",
            message=f"Settings file does not exist: {settings}",
            hint="Check the path and ensure the file exists.",
        )
        raise typer.Exit(1) from None
    except ValidationError as e:
        details = [f"{'.'.join(str(x) for x in error['loc'])}: {error['msg']}" for error in e.errors()]
        _format_error(
            title="Configuration Validation Failed",
            message="Invalid export settings",
            details=details,
            hint="Check field names, types, and BUILDGRAPH_* environment variables.",
        )
        raise typer.Exit(1) from None


def _load_graph_or_exit(graph_file: Path) -> LoadedGraph:
    """Load a graph snapshot, exiting with a formatted error on failure."""
    try:
        return load_graph(graph_file.expanduser())
    except FileNotFoundError:
        _format_error(
            title="File Not Found",
            message=f"Graph snapshot does not exist: {graph_file}",
            hint="Check the path and ensure the file exists.",
        )
        raise typer.Exit(1) from None
    except UnicodeDecodeError as e:
        _format_error(
            title="Snapshot Encoding Error",
            message=f"{graph_file.name} is not valid UTF-8",
            details=[str(e)],
            hint="Snapshots must be UTF-8 encoded YAML or JSON.",
        )
        raise typer.Exit(1) from None
    except yaml.YAMLError as e:
        _format_error(
            title="Snapshot Syntax Error",
            message=f"Failed to parse {graph_file.name}",
            details=[str(e)],
            hint="Snapshots must be valid YAML or JSON.",
        )
        raise typer.Exit(1) from None
    except ValidationError as e:
        details = [f"{'.'.join(str(x) for x in error['loc'])}: {error['msg']}" for error in e.errors()]
        _format_error(
            title="Snapshot Validation Failed",
            message=f"Invalid graph snapshot in {graph_file.name}",
            details=details,
            hint="Each action needs a rule and at least one output.",
        )
        raise typer.Exit(1) from None
    except GraphModelError as e:
        _format_error(
            title="Invalid Build Graph",
            message=str(e),
            hint="Every path may be produced by at most one action.",
        )
        raise typer.Exit(1) from None


def _select_roots(loaded: LoadedGraph, targets: list[str]) -> list[Node]:
    """Requested targets, else the snapshot defaults, else every unconsumed output."""
    if targets:
        unknown = [name for name in targets if not loaded.graph.has_node(name)]
        if unknown:
            _format_error(
                title="Unknown Target",
                message=f"No node named {', '.join(repr(name) for name in unknown)} in the graph",
                hint="Run 'buildgraph check' to list the graph's default roots.",
            )
            raise typer.Exit(1)
        return [loaded.graph.node(name) for name in targets]
    if loaded.defaults:
        return list(loaded.defaults)
    return loaded.graph.root_nodes()


def _write_document_or_exit(document: str, destination: Path | None) -> None:
    """Write the finished document to ``destination`` (stdout when None).

    The document is encoded before the destination is opened, so an
    encoding failure leaves an existing file untouched.
    """
    try:
        data = document.encode("utf-8")
    except UnicodeEncodeError as e:
        _format_error(
            title="Output Encoding Error",
            message="The exported document cannot be encoded as UTF-8",
            details=[str(e)],
        )
        raise typer.Exit(1) from None

    if destination is None:
        typer.echo(data, nl=False)
        return

    try:
        destination.expanduser().write_bytes(data)
    except OSError as e:
        _format_error(
            title="Cannot Write Output",
            message=f"Failed to write {destination}",
            details=[e.strerror or str(e)],
            hint="Check that the directory exists and is writable.",
        )
        raise typer.Exit(1) from None


@app.command()
def export(
    graph_file: Path = typer.Argument(
        ...,
        help="Resolved graph snapshot (YAML or JSON).",
    ),
    targets: list[str] | None = typer.Argument(
        None,
        help="Root targets to export (default: snapshot defaults, else all roots).",
    ),
    settings: Path | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to export settings YAML file.",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the document here instead of stdout.",
    ),
) -> None:
    """Export the dependency graph of TARGETS as JSON."""
    export_settings = _load_settings_or_exit(settings)
    loaded = _load_graph_or_exit(graph_file)
    roots = _select_roots(loaded, targets or [])

    result = export_graph(roots, export_settings)

    destination = output if output is not None else export_settings.output
    _write_document_or_exit(result.document, destination)

    if result.failure is not None:
        _format_error(
            title="Export Failed",
            message=result.failure.reason,
            hint="The document records the failure; no graph was written.",
        )
        raise typer.Exit(1)


@app.command()
def check(
    graph_file: Path = typer.Argument(
        ...,
        help="Resolved graph snapshot (YAML or JSON).",
    ),
) -> None:
    """Validate a snapshot and check that its actions form a DAG."""
    loaded = _load_graph_or_exit(graph_file)
    graph = loaded.graph
    dependency_graph = action_dependency_graph(graph.actions)

    cycle = find_action_cycle(dependency_graph)
    if cycle is not None:
        _format_error(
            title="Dependency Cycle",
            message="Actions depend on each other in a cycle",
            details=[" -> ".join([*cycle, cycle[0]])],
            hint="Break the cycle before exporting; phony aliases are collapsed first.",
        )
        raise typer.Exit(1)

    roots = list(loaded.defaults) if loaded.defaults else graph.root_nodes()
    typer.echo("✅ Graph is acyclic")
    typer.echo(f"  Nodes: {graph.node_count}")
    typer.echo(f"  Actions: {graph.action_count} ({dependency_graph.number_of_nodes()} non-phony)")
    typer.echo(f"  Dependencies: {dependency_graph.number_of_edges()}")
    typer.echo(f"  Roots: {', '.join(node.path for node in roots) or '(none)'}")
