"""Deployment readiness check.

Verifies required project files exist, then reports for each supported
hosting platform which of its files and environment variables are
missing. Variables count as present if set in the process environment
or in config/.env.
"""

import os
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

import structlog
from dotenv import dotenv_values
from rich.console import Console

from .models import DeployReport, PlatformReport

logger = structlog.get_logger("goodchild.checks")

REQUIRED_FILES = (
    "pyproject.toml",
    "config/settings.yaml",
    "config/.env",
)

ENV_FILE = "config/.env"

PLATFORMS: Dict[str, Dict[str, List[str]]] = {
    "Heroku": {
        "files": ["Procfile", "app.json"],
        "vars": ["SESSION_ID"],
    },
    "Railway": {
        "files": ["pyproject.toml"],
        "vars": ["SESSION_ID"],
    },
    "Render": {
        "files": ["pyproject.toml"],
        "vars": ["SESSION_ID"],
    },
    "Koyeb": {
        "files": ["Dockerfile", "pyproject.toml"],
        "vars": ["SESSION_ID"],
    },
    "BotHosting.net": {
        "files": ["pyproject.toml"],
        "vars": ["SESSION_ID"],
    },
    "GitHub Actions": {
        "files": [".github/workflows/deploy.yml"],
        "vars": ["SESSION_ID"],
    },
}

INSTRUCTIONS = {
    "Heroku": [
        'Click the "Deploy to Heroku" button in the README',
        "Or run: heroku create && git push heroku main",
    ],
    "Railway": [
        "Connect your GitHub repository",
        "Set the start command to: goodchild",
    ],
    "Render": [
        "Create a new Web Service using your GitHub repository",
        "Set build command: pip install .",
        "Set start command: goodchild",
    ],
    "Koyeb": [
        "Create a new App from your GitHub repository",
        "Koyeb builds the Dockerfile; its CMD should run: goodchild",
    ],
    "BotHosting.net": [
        "Upload your files to BotHosting.net",
        "Set the start command to: goodchild",
    ],
    "GitHub Actions": [
        "Ensure .github/workflows/deploy.yml exists",
        "Push to your repository to trigger the workflow",
    ],
}


def find_missing_files(root: Path, files: Sequence[str]) -> List[str]:
    """Return the entries of files that do not exist under root."""
    missing = []
    for name in files:
        path = root / name
        # A nested path is missing outright if its directory is
        if len(Path(name).parts) > 1 and not path.parent.exists():
            missing.append(name)
        elif not path.exists():
            missing.append(name)
    return missing


def read_env_file(path: Path) -> Dict[str, str]:
    """Parse a .env file, dropping keys without a value."""
    values = dotenv_values(path)
    return {k: v for k, v in values.items() if v is not None}


def check_platform(
    root: Path,
    platform: str,
    requirements: Mapping[str, Sequence[str]],
    env_values: Mapping[str, str],
    environ: Mapping[str, str],
) -> PlatformReport:
    """Check one platform's files and variables."""
    missing_vars = [
        var for var in requirements.get("vars", [])
        if not environ.get(var) and not env_values.get(var)
    ]
    return PlatformReport(
        platform=platform,
        missing_files=find_missing_files(root, requirements.get("files", [])),
        missing_vars=missing_vars,
    )


def run_deploy_check(
    root: Path,
    *,
    required_files: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> DeployReport:
    """Run the deployment readiness check against a project root.

    Platform checks are skipped when required files are missing.
    """
    root = Path(root)
    environ = os.environ if environ is None else environ

    missing = find_missing_files(root, required_files or REQUIRED_FILES)
    if missing:
        logger.warning("deploy_check_missing_files", files=missing)
        return DeployReport(missing_required=missing)

    report = DeployReport()
    env_values: Dict[str, str] = {}
    env_path = root / ENV_FILE
    if env_path.exists():
        try:
            env_values = read_env_file(env_path)
        except (OSError, UnicodeDecodeError) as e:
            report.env_error = str(e)
            logger.warning("deploy_check_env_unreadable", path=str(env_path), error=str(e))

    for platform, requirements in PLATFORMS.items():
        report.platforms.append(
            check_platform(root, platform, requirements, env_values, environ)
        )
    return report


def print_deploy_report(report: DeployReport, console: Console) -> None:
    """Render a DeployReport to the console."""
    console.print("[blue]🔍 Checking for required files...[/blue]")
    if not report.ok:
        console.print(
            f"[red]❌ Missing required files: {', '.join(report.missing_required)}[/red]"
        )
        return
    console.print("[green]✅ All required files are present[/green]")

    console.print("\n[blue]🔍 Checking environment variables...[/blue]")
    if report.env_error:
        console.print(f"[red]❌ Error reading .env file: {report.env_error}[/red]")

    console.print("\n[blue]🔍 Checking deployment platform compatibility...[/blue]")
    for platform in report.platforms:
        console.print(f"\n[yellow]📦 {platform.platform}:[/yellow]")
        if platform.missing_files:
            console.print(f"[red]  ❌ Missing files: {', '.join(platform.missing_files)}[/red]")
        else:
            console.print("[green]  ✅ All required files are present[/green]")
        if platform.missing_vars:
            console.print(
                f"[red]  ❌ Missing environment variables: {', '.join(platform.missing_vars)}[/red]"
            )
        else:
            console.print("[green]  ✅ All required environment variables are present[/green]")

    console.print("\n[blue]📋 Deployment Instructions:[/blue]")
    for number, (platform, steps) in enumerate(INSTRUCTIONS.items(), start=1):
        console.print(f"\n[yellow]{number}. {platform}:[/yellow]")
        for step in steps:
            console.print(f"   - {step}", markup=False)

    console.print("\n[green]✅ Deployment check completed![/green]")
