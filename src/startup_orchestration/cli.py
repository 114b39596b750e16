"""CLI for startup orchestration."""

import importlib
import importlib.util
import inspect
import sys
import typing as t
from pathlib import Path

import rich.console
import typer
from rich.markup import escape
from rich.table import Table

import startup_orchestration.logger as logger
from startup_orchestration.errors import InvalidRegistrationError
from startup_orchestration.expressions import validate_service_registration
from startup_orchestration.injector import DependencyRegistry
from startup_orchestration.startup import StartupOrchestrator

app = typer.Typer(
    rich_markup_mode="rich",
    add_completion=False,
    no_args_is_help=True,
)

console = rich.console.Console()

TargetArgument = t.Annotated[
    str,
    typer.Argument(
        help="The startup class, as [b]module:Class[/b] or [b]path/to/file.py:Class[/b].",
        envvar="STARTUP_ORCHESTRATION_TARGET",
    ),
]


def _load_startup_class(target: str) -> t.Type[StartupOrchestrator]:
    """Import a startup class from a module path or a python file."""
    module_ref, sep, attr = target.rpartition(":")
    if not sep or not module_ref or not attr:
        raise typer.BadParameter(
            f"Expected module:Class or path/to/file.py:Class, got {target!r}"
        )
    if module_ref.endswith(".py"):
        path = Path(module_ref).resolve()
        if not path.exists():
            raise typer.BadParameter(f"File {path} does not exist")
        spec = importlib.util.spec_from_file_location(path.stem, path)
        if spec is None or spec.loader is None:
            raise typer.BadParameter(f"Cannot import {path}")
        module = importlib.util.module_from_spec(spec)
        sys.modules[spec.name] = module
        spec.loader.exec_module(module)
    else:
        module = importlib.import_module(module_ref)
    startup_class = getattr(module, attr, None)
    if not (
        inspect.isclass(startup_class) and issubclass(startup_class, StartupOrchestrator)
    ):
        raise typer.BadParameter(f"{target} is not a StartupOrchestrator subclass")
    return startup_class


@app.callback()
def main(
    log_level: t.Annotated[
        str,
        typer.Option(
            ...,
            "--log-level",
            "-l",
            help="The log level to use.",
            envvar="STARTUP_ORCHESTRATION_LOG_LEVEL",
        ),
    ] = "INFO",
) -> None:
    """:rocket: Inspect and run [b]startup orchestrators[/b]."""
    logger.set_level(log_level.upper())


@app.command()
def describe(target: TargetArgument) -> None:
    """:mag: List the service registrations of a startup class in the order they run."""
    startup = _load_startup_class(target)()
    orchestrator = startup.create_orchestrator()

    table = Table(title=f"{type(startup).__name__} registrations")
    table.add_column("#", justify="right")
    table.add_column("Registration")
    table.add_column("Status")

    invalid = 0
    for index, expression in enumerate(orchestrator.service_registrations, start=1):
        try:
            validate_service_registration(expression)
        except InvalidRegistrationError as e:
            invalid += 1
            table.add_row(
                str(index), escape(repr(expression)), f"[red]{escape(str(e))}[/red]"
            )
        else:
            table.add_row(
                str(index),
                escape(orchestrator.get_expression_as_string(expression)),
                "[green]ok[/green]",
            )

    console.print(table)
    if invalid:
        raise typer.Exit(1)


@app.command()
def check(target: TargetArgument) -> None:
    """:white_check_mark: Run the registrations of a startup class against an empty registry."""
    startup = _load_startup_class(target)()
    services = DependencyRegistry()
    try:
        startup.configure_services(services)
    except Exception as e:
        console.print(
            f"[red]Startup failed:[/red] {type(e).__name__}: {escape(str(e))}"
        )
        raise typer.Exit(1)

    console.print(f"[green]Registered {len(services)} dependencies[/green]")
    for key in services:
        console.print(f"  {escape(str(key))}")


if __name__ == "__main__":
    app()
