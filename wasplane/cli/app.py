"""
CLI de wasplane.

Solo compone comandos y formatea la salida; la lógica vive en core y providers.
"""

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from wasplane import __version__
from wasplane.core.errors import WasPlaneError
from wasplane.core.runtime import load_settings
from wasplane.core.runtime.reconciler import PassReport, PassState, Reconciler
from wasplane.declarative import ManifestLoader
from wasplane.providers import PROVIDERS, build_provider
from wasplane.providers.wsadmin import WsadminExecutor

app = typer.Typer(
    name="wasplane",
    help="wasplane - Control Plane declarativo para IBM WebSphere Application Server",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()

EXIT_FATAL = 1
EXIT_RECOVERABLE = 2


def _load(manifest: Path, timeout: Optional[float], verbose: bool):
    """Settings + declaraciones + providers; cualquier error de configuración termina con código 1."""
    try:
        settings = load_settings()
        declarations = ManifestLoader(settings, console=console if verbose else None).load(manifest)
    except WasPlaneError as e:
        console.print(f"[red]✘ {escape(str(e))}[/red]")
        raise typer.Exit(code=EXIT_FATAL)
    timeout = timeout if timeout is not None else settings.timeout
    detail = console if verbose else None
    return [build_provider(d, timeout=timeout, console=detail) for d in declarations], detail


def _print_report(report: PassReport, verbose: bool) -> None:
    if report.state == PassState.APPLIED:
        console.print(f"[green]✔[/green] {escape(report.resource)}: {escape(report.message)}")
    elif report.state == PassState.UNCHANGED:
        console.print(f"[dim]✔ {escape(report.resource)}: {escape(report.message)}[/dim]")
    elif report.recoverable:
        console.print(f"[yellow]⚠ {escape(report.resource)}: {escape(report.message)}[/yellow]")
    elif report.failed:
        console.print(f"[red]✘ {escape(report.resource)}: {escape(report.message)}[/red]")
        if report.result is not None and report.result.output:
            console.print(Panel(escape(report.result.output.rstrip()), title="Salida", border_style="red"))
    else:
        console.print(f"[cyan]•[/cyan] {escape(report.resource)}: {report.action.value}")
    if verbose and report.script:
        console.print(f"[dim]{escape(report.script)}[/dim]")


def _exit_code(reports: List[PassReport]) -> int:
    if any(r.fatal for r in reports):
        return EXIT_FATAL
    if any(r.recoverable for r in reports):
        return EXIT_RECOVERABLE
    return 0


@app.command()
def validate(
    manifest: Path = typer.Argument(..., help="Manifiesto YAML con los recursos declarados"),
):
    """Valida el manifiesto sin leer estado remoto"""
    providers, _ = _load(manifest, None, False)
    console.print(f"[green]✔[/green] {len(providers)} recurso(s) válidos en {manifest}")


@app.command()
def plan(
    manifest: Path = typer.Argument(..., help="Manifiesto YAML con los recursos declarados"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Muestra los scripts que se ejecutarían"),
):
    """Lee el estado y muestra qué cambios se aplicarían (sin ejecutar)"""
    providers, detail = _load(manifest, None, verbose)
    result = Reconciler(WsadminExecutor(console=detail), console=detail).plan(providers)

    if result.diffs:
        table = Table(title="Cambios pendientes", show_header=True, header_style="bold cyan")
        table.add_column("Recurso", style="cyan")
        table.add_column("Atributo", style="yellow")
        table.add_column("Actual", style="red")
        table.add_column("Deseado", style="green")
        for diff in result.diffs:
            table.add_row(escape(diff.resource_id), diff.field, escape(str(diff.actual)), escape(str(diff.desired)))
        console.print(table)

    for report in result.reports:
        _print_report(report, verbose)
    console.print(f"\n[bold]Plan:[/bold] {result.summary}")
    if any(r.failed for r in result.reports):
        raise typer.Exit(code=_exit_code(result.reports))


@app.command()
def apply(
    manifest: Path = typer.Argument(..., help="Manifiesto YAML con los recursos declarados"),
    timeout: Optional[float] = typer.Option(None, "--timeout", "-t", help="Timeout por invocación de wsadmin (segundos)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Muestra scripts y comandos ejecutados"),
):
    """Reconcilia cada recurso declarado (un pase, sin reintentos)"""
    providers, detail = _load(manifest, timeout, verbose)
    reconciler = Reconciler(WsadminExecutor(console=detail), console=detail)

    reports = []
    for provider in providers:
        report = reconciler.reconcile(provider)
        _print_report(report, verbose)
        reports.append(report)

    table = Table(title="Resumen", show_header=True, header_style="bold cyan")
    table.add_column("Estado", style="cyan")
    table.add_column("Recursos", justify="right")
    for state in (PassState.APPLIED, PassState.UNCHANGED, PassState.FAILED):
        table.add_row(state.value, str(sum(1 for r in reports if r.state == state)))
    console.print(table)

    code = _exit_code(reports)
    if code == EXIT_RECOVERABLE:
        console.print("[yellow]⚠ Hay dependencias pendientes: un pase posterior debería converger[/yellow]")
    if code:
        raise typer.Exit(code=code)


@app.command()
def types():
    """Lista los tipos de recurso soportados"""
    table = Table(title="Tipos de recurso", show_header=True, header_style="bold cyan")
    table.add_column("Tipo", style="cyan")
    table.add_column("Identidad", style="green")
    table.add_column("Atributos gestionados", style="yellow")
    table.add_column("ensure", justify="center")
    for kind, provider in sorted(PROVIDERS.items()):
        model = provider.declaration_class
        table.add_row(
            kind,
            ", ".join(model.identity_fields),
            ", ".join(model.properties) or "[dim](solo existencia)[/dim]",
            "sí" if model.ensurable else "no",
        )
    console.print(table)


@app.command()
def version():
    """Muestra la versión de wasplane"""
    console.print(Panel.fit(
        "[bold cyan]wasplane[/bold cyan]\n"
        "[dim]Control Plane declarativo para IBM WebSphere[/dim]\n\n"
        f"[bold]Versión:[/bold] {__version__}\n"
        f"[bold]Tipos:[/bold] {', '.join(sorted(PROVIDERS))}",
        border_style="cyan"
    ))


def main():
    app()
