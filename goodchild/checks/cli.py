"""``goodchild-check`` console script: deploy and security checks."""

from pathlib import Path

import typer
from rich.console import Console

from ..config import get_config
from .deploy import print_deploy_report, run_deploy_check
from .security import print_security_report, run_security_check

app = typer.Typer(
    name="goodchild-check",
    help="Operational checks for a goodchild deployment",
    no_args_is_help=True,
)

console = Console()


@app.command()
def deploy(
    root: Path = typer.Option(Path("."), "--root", "-r", help="Project root to check"),
):
    """Verify the project is ready to deploy. Exits 1 if required files are missing."""
    report = run_deploy_check(
        root, required_files=get_config().deploy_required_files
    )
    print_deploy_report(report, console)
    if not report.ok:
        raise typer.Exit(1)


@app.command()
def security(
    root: Path = typer.Option(Path("."), "--root", "-r", help="Project root to scan"),
    audit: bool = typer.Option(True, "--audit/--no-audit", help="Run pip-audit"),
):
    """Scan the project for common security problems. Report only."""
    try:
        report = run_security_check(
            root,
            excluded_dirs=get_config().security_excluded_dirs,
            audit=audit,
        )
    except Exception as e:
        console.print(f"Error running security check: {e}", style="red", markup=False)
        raise typer.Exit(1)
    print_security_report(report, console)


if __name__ == "__main__":
    app()
