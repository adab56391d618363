"""Typer CLI application for SEO Grader.

Commands to audit a single URL, serve the HTTP API and inspect the
effective configuration.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

console = Console()
app = typer.Typer(
    name="seo-grader",
    help="SEO Grader -- audit a web page and grade its SEO health.",
    add_completion=False,
    no_args_is_help=True,
)


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging level and format."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _run_async(coro):
    """Run an async coroutine from synchronous CLI context."""
    return asyncio.run(coro)


def _get_grader(config_path: Optional[str] = None):
    """Lazy-import and return an initialized SEOGrader."""
    from seo_grader.app import SEOGrader
    grader = SEOGrader(config_path=config_path)
    grader.initialize()
    return grader


def _letter_style(letter: str) -> str:
    if letter.startswith("A"):
        return "green"
    if letter in ("B", "C"):
        return "yellow"
    return "red"


def _print_grades(report) -> None:
    """Pretty-print the category grades using Rich."""
    labels = {
        "onpage": "On-Page SEO",
        "performance": "Performance",
        "social": "Social",
        "techlocal": "Technical & Local",
        "overall": "Overall",
    }
    table = Table(title="Grades: " + report.resolved_url, show_header=True, header_style="bold magenta")
    table.add_column("Category", style="cyan", min_width=20)
    table.add_column("Score", justify="right", min_width=6)
    table.add_column("Grade", min_width=6)

    for key, label in labels.items():
        grade = report.grades[key]
        style = _letter_style(grade.letter)
        table.add_row(label, str(grade.score), "[" + style + "]" + grade.letter + "[/" + style + "]")

    console.print(table)
    broken = report.sections.get("tech", {}).get("broken_links", {})
    if broken.get("broken_count"):
        console.print("[yellow]Broken links:[/yellow] " + str(broken["broken_count"]) + " of " + str(broken.get("total_checked", 0)))
    console.print("Elapsed: " + str(report.elapsed_seconds) + "s")


# ------------------------------------------------------------------
# audit
# ------------------------------------------------------------------
@app.command()
def audit(
    url: str = typer.Argument(..., help="Page to audit (e.g. example.com)."),
    as_json: bool = typer.Option(False, "--json", help="Print the full report as JSON."),
    html: Optional[Path] = typer.Option(None, "--html", help="Write an HTML report to this path."),
    pdf: Optional[Path] = typer.Option(None, "--pdf", help="Write a PDF report to this path."),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to settings.yaml."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Audit a single page and print its grades."""
    _setup_logging(verbose)
    from seo_grader.exceptions import AuditError

    grader = _get_grader(config)
    try:
        if as_json:
            report = _run_async(grader.run_audit(url))
        else:
            console.print(Panel("[bold cyan]SEO Audit: " + url + "[/bold cyan]"))
            with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"), console=console) as progress:
                progress.add_task(description="Fetching and analyzing...", total=None)
                report = _run_async(grader.run_audit(url))
    except AuditError as exc:
        console.print("[red]Audit failed: " + str(exc) + "[/red]")
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(grader.renderer.render_json(report))
    else:
        _print_grades(report)

    if html:
        html.write_text(grader.renderer.render_html(report), encoding="utf-8")
        console.print("[green]✔[/green] HTML report written to " + str(html))
    if pdf:
        try:
            pdf.write_bytes(grader.renderer.render_pdf(report))
        except AuditError as exc:
            console.print("[red]PDF export failed: " + str(exc) + "[/red]")
            raise typer.Exit(code=1)
        console.print("[green]✔[/green] PDF report written to " + str(pdf))


# ------------------------------------------------------------------
# serve
# ------------------------------------------------------------------
@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default from config)."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (default from config or $PORT)."),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to settings.yaml."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Serve the audit HTTP API with uvicorn."""
    _setup_logging(verbose)
    import uvicorn
    from seo_grader.api import create_app

    grader = _get_grader(config)
    server_cfg = grader.config.get("server", {})
    bind_host = host or server_cfg.get("host", "0.0.0.0")
    bind_port = port or server_cfg.get("port", 8080)
    console.print("[bold cyan]SEO Grader API on " + bind_host + ":" + str(bind_port) + "[/bold cyan]")
    uvicorn.run(
        create_app(grader),
        host=bind_host,
        port=bind_port,
        log_level="debug" if verbose else "info",
    )


# ------------------------------------------------------------------
# config
# ------------------------------------------------------------------
@app.command("config")
def show_config(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to settings.yaml."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Print the effective configuration and component status."""
    _setup_logging(verbose)
    grader = _get_grader(config)
    console.print(Panel("[bold cyan]Effective configuration[/bold cyan]"))
    console.print(yaml.safe_dump(grader.config, sort_keys=False))

    table = Table(title="Component Status", show_header=True, header_style="bold magenta")
    table.add_column("Component", style="cyan", min_width=15)
    table.add_column("Status", min_width=10)
    table.add_column("Details", max_width=50)
    for name, info in grader.get_status().items():
        if info["status"] == "ok":
            status_display = "[green]✔ OK[/green]"
        else:
            status_display = "[yellow]⚠ " + info["status"] + "[/yellow]"
        table.add_row(name, status_display, info["details"])
    console.print(table)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
