"""Static security check for the project tree.

Best-effort heuristics, not a vulnerability scanner:

1. Regex scan of source and config files for hard-coded secrets,
   string-built SQL/shell commands and credentialed database URLs.
2. Required/optional variables in config/.env.
3. Known-vulnerable dependencies via ``pip-audit``.
4. Security headers in web-server modules.
5. Session expiry and cleanup handling in the bot's main module.
"""

import json
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import structlog
from dotenv import dotenv_values
from rich.console import Console

from .models import AuditResult, EnvVarCheck, Finding, Issue, SecurityReport

logger = structlog.get_logger("goodchild.checks")


@dataclass(frozen=True)
class ScanPattern:
    """A regex and the files it should not be applied to."""

    pattern: re.Pattern
    exclude: Tuple[str, ...] = ()


# This module's own path relative to a project root; it contains every
# pattern below as a literal.
_SELF = "goodchild/checks/security.py"
_DOC_FILES = (".env.example", "settings.example.yaml", "README.md", _SELF)

PATTERNS: Dict[str, ScanPattern] = {
    "API_KEYS": ScanPattern(
        re.compile(
            r"(api[_-]?key|apikey|key|token|password|secret).*?[\"']([a-zA-Z0-9_\-]{20,})[\"']",
            re.IGNORECASE,
        ),
        _DOC_FILES,
    ),
    "SQL_INJECTION": ScanPattern(
        re.compile(r"\.(?:execute|query)\(\s*f[\"'].*?\{.*?\}"),
        (_SELF,),
    ),
    "HARDCODED_CREDENTIALS": ScanPattern(
        re.compile(
            r"(username|password|user|pass|pwd).*?[\"']([a-zA-Z0-9_\-]{3,})[\"']",
            re.IGNORECASE,
        ),
        _DOC_FILES,
    ),
    "EXPOSED_DB_URL": ScanPattern(
        re.compile(
            r"(mongodb(?:\+srv)?|postgres(?:ql)?|mysql)://[a-zA-Z0-9_\-]+:[a-zA-Z0-9_\-]+@[a-zA-Z0-9_\-.]+"
        ),
        _DOC_FILES,
    ),
    "COMMAND_INJECTION": ScanPattern(
        re.compile(r"(?:os\.system|os\.popen|subprocess\.\w+)\(\s*f[\"'].*?\{.*?\}"),
        (_SELF,),
    ),
    "INSECURE_ENV_USAGE": ScanPattern(
        re.compile(
            r"os\.(?:environ\.get|getenv)\(\s*[\"'][A-Z_]+[\"']\s*(?:,|\)\s*or)\s*[\"'][a-zA-Z0-9_\-]{10,}[\"']"
        ),
        (_SELF,),
    ),
}

SCANNED_SUFFIXES = (".py", ".json", ".env", ".yaml", ".yml")

EXCLUDED_DIRS = (
    ".git",
    ".venv",
    "venv",
    "__pycache__",
    "node_modules",
    "temp",
    "auth",
    "logs",
)

ENV_FILE = "config/.env"

ENV_VARS: Tuple[Tuple[str, bool], ...] = (
    ("SESSION_ID", True),
    ("DATABASE_URL", True),
    ("OPENAI_API_KEY", False),
    ("TENOR_API_KEY", False),
    ("WEATHER_API_KEY", False),
    ("NEWS_API_KEY", False),
    ("OMDB_API_KEY", False),
    ("SERPAPI_KEY", False),
)

WEB_SERVER_FILES = ("goodchild/web.py", "web.py", "server.py")

SECURITY_HEADERS = (
    ("Content-Security-Policy", re.compile(r"Content-Security-Policy", re.IGNORECASE)),
    ("X-Content-Type-Options", re.compile(r"X-Content-Type-Options", re.IGNORECASE)),
    ("X-Frame-Options", re.compile(r"X-Frame-Options", re.IGNORECASE)),
    ("X-XSS-Protection", re.compile(r"X-XSS-Protection", re.IGNORECASE)),
)

MAIN_FILE = "goodchild/main.py"

_SESSION_EXPIRED = re.compile(r"session[_ ]?expired", re.IGNORECASE)
_CONNECTION_CLOSED = re.compile(r"connection[_ ]?closed", re.IGNORECASE)
_SESSION_CLEANUP = re.compile(r"shutil\.rmtree|os\.remove|\.unlink\(|os\.unlink")

MATCH_EXCERPT = 100
ISSUES_SHOWN_PER_TYPE = 5

AUDIT_COMMAND = ["pip-audit", "--format", "json", "--progress-spinner", "off"]
AUDIT_TIMEOUT = 300


# ---------------------------------------------------------------------------
# Source scan
# ---------------------------------------------------------------------------

def _excerpt(text: str) -> str:
    if len(text) > MATCH_EXCERPT:
        return text[:MATCH_EXCERPT] + "..."
    return text


def _is_excluded(relative: str, exclude: Iterable[str]) -> bool:
    name = relative.rsplit("/", 1)[-1]
    return any(relative == ex or relative.endswith("/" + ex) or name == ex for ex in exclude)


def scan_file(path: Path, relative: str) -> List[Issue]:
    """Apply every pattern to one file.

    Args:
        path: File to read.
        relative: POSIX path used in reports and for pattern exclusions.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("security_scan_file_failed", path=relative, error=str(e))
        return []

    issues = []
    for issue_type, spec in PATTERNS.items():
        if _is_excluded(relative, spec.exclude):
            continue
        for match in spec.pattern.finditer(content):
            issues.append(
                Issue(
                    type=issue_type,
                    file=relative,
                    line=content.count("\n", 0, match.start()) + 1,
                    match=_excerpt(match.group(0)),
                )
            )
    return issues


def scan_tree(root: Path, excluded_dirs: Sequence[str] = EXCLUDED_DIRS) -> List[Issue]:
    """Recursively scan root for pattern matches, skipping excluded dirs."""
    root = Path(root)
    issues: List[Issue] = []
    stack = [root]
    while stack:
        directory = stack.pop()
        try:
            entries = sorted(directory.iterdir(), reverse=True)
        except OSError as e:
            logger.warning("security_scan_dir_failed", path=str(directory), error=str(e))
            continue
        for entry in entries:
            if entry.is_dir():
                if entry.name not in excluded_dirs:
                    stack.append(entry)
            elif entry.name.endswith(SCANNED_SUFFIXES):
                issues.extend(scan_file(entry, entry.relative_to(root).as_posix()))
    return sorted(issues, key=lambda i: (i.file, i.line))


# ---------------------------------------------------------------------------
# Environment, dependencies, headers, sessions
# ---------------------------------------------------------------------------

def check_env_file(path: Path) -> Optional[List[EnvVarCheck]]:
    """Check config/.env variables. Returns None if the file is absent."""
    if not path.exists():
        return None
    env = dotenv_values(path)
    checks = []
    for name, required in ENV_VARS:
        value = env.get(name)
        checks.append(
            EnvVarCheck(
                name=name,
                required=required,
                configured=bool(value and value.strip()),
            )
        )
    return checks


def parse_audit_output(output: str) -> AuditResult:
    """Count vulnerabilities in ``pip-audit --format json`` output.

    Handles both the current object form ({"dependencies": [...]}) and
    the bare list older releases printed.
    """
    data = json.loads(output)
    dependencies = data.get("dependencies", []) if isinstance(data, dict) else data
    packages = {}
    for dep in dependencies:
        vulns = dep.get("vulns") or []
        if vulns:
            packages[dep.get("name", "?")] = len(vulns)
    return AuditResult(ran=True, vulnerabilities=sum(packages.values()), packages=packages)


def run_dependency_audit(root: Path) -> AuditResult:
    """Run pip-audit in root. Failure to run is reported, never raised."""
    try:
        result = subprocess.run(
            AUDIT_COMMAND,
            cwd=str(root),
            capture_output=True,
            text=True,
            timeout=AUDIT_TIMEOUT,
        )
    except FileNotFoundError:
        return AuditResult(error="pip-audit is not installed")
    except subprocess.TimeoutExpired:
        return AuditResult(error=f"pip-audit timed out after {AUDIT_TIMEOUT}s")

    # pip-audit exits 1 when it finds vulnerabilities; stdout is still JSON
    try:
        return parse_audit_output(result.stdout)
    except (ValueError, AttributeError) as e:
        logger.warning(
            "dependency_audit_unparsable",
            returncode=result.returncode,
            stderr=result.stderr[:200],
            error=str(e),
        )
        return AuditResult(error="could not parse pip-audit output")


def check_security_headers(root: Path) -> List[Finding]:
    """Report security headers absent from existing web-server modules."""
    findings = []
    for name in WEB_SERVER_FILES:
        path = root / name
        if not path.is_file():
            continue
        content = path.read_text(encoding="utf-8", errors="replace")
        for header, pattern in SECURITY_HEADERS:
            if not pattern.search(content):
                findings.append(
                    Finding(file=name, message=f'Security header "{header}" not found')
                )
    return findings


def check_session_security(root: Path) -> List[Finding]:
    """Look for session expiry and cleanup handling in the main bot module."""
    path = root / MAIN_FILE
    if not path.is_file():
        return []
    content = path.read_text(encoding="utf-8", errors="replace")
    findings = []
    if not _SESSION_EXPIRED.search(content) or not _CONNECTION_CLOSED.search(content):
        findings.append(
            Finding(
                file=MAIN_FILE,
                message="Session handling might not properly handle expired or closed sessions",
            )
        )
    if not _SESSION_CLEANUP.search(content):
        findings.append(
            Finding(file=MAIN_FILE, message="Session cleanup mechanism might be missing")
        )
    return findings


def run_security_check(
    root: Path,
    *,
    excluded_dirs: Optional[Sequence[str]] = None,
    audit: bool = True,
) -> SecurityReport:
    """Run every check against a project root."""
    root = Path(root)
    report = SecurityReport(issues=scan_tree(root, excluded_dirs or EXCLUDED_DIRS))

    env_checks = check_env_file(root / ENV_FILE)
    report.env_file_found = env_checks is not None
    report.env_checks = env_checks or []

    report.audit = run_dependency_audit(root) if audit else AuditResult(error="skipped")
    report.header_findings = check_security_headers(root)
    report.session_findings = check_session_security(root)

    logger.info(
        "security_check_complete",
        scan_issues=len(report.issues),
        total_issues=report.total_issues,
    )
    return report


# ---------------------------------------------------------------------------
# Report rendering
# ---------------------------------------------------------------------------

def recommendations(report: SecurityReport) -> List[str]:
    """Advice lines matching the issue types found."""
    by_type = report.issues_by_type()
    advice = []
    if "API_KEYS" in by_type:
        advice.append("Move all API keys to environment variables.")
        advice.append('Read them with os.environ["KEY_NAME"] instead of hardcoding keys.')
    if "SQL_INJECTION" in by_type:
        advice.append("Use parameterized queries for all database operations.")
        advice.append("Validate user input before using it in database queries.")
    if "EXPOSED_DB_URL" in by_type:
        advice.append("Move database connection strings to environment variables.")
    advice.append('Run "pip-audit --fix" to address package vulnerabilities.')
    advice.append("Implement proper error handling and logging throughout the application.")
    return advice


def print_security_report(report: SecurityReport, console: Console) -> None:
    """Render a SecurityReport to the console."""
    console.print("[blue]🔐 goodchild Security Check[/blue]")
    console.print("[blue]==============================[/blue]")

    console.print("\n[blue]🔍 Checking .env file...[/blue]")
    if not report.env_file_found:
        console.print("[yellow]⚠️ No .env file found. Make sure to create one before deployment.[/yellow]")
    for check in report.env_checks:
        if check.is_issue:
            console.print(f"[red]❌ Required environment variable {check.name} is missing or empty.[/red]")
        elif check.configured:
            console.print(f"[green]✅ {check.name} is configured.[/green]")
        else:
            console.print(f"[yellow]⚠️ Optional environment variable {check.name} is not configured.[/yellow]")

    console.print("\n[blue]🔍 Checking for package vulnerabilities...[/blue]")
    audit = report.audit
    if not audit.ran:
        console.print(f"[red]❌ Error checking package vulnerabilities: {audit.error}[/red]")
        console.print('[yellow]  Run "pip-audit" manually to check for vulnerabilities.[/yellow]')
    elif audit.vulnerabilities:
        console.print(f"[red]❌ Found {audit.vulnerabilities} vulnerabilities in installed packages.[/red]")
        console.print('[yellow]  Run "pip-audit --fix" to attempt to fix them automatically.[/yellow]')
    else:
        console.print("[green]✅ No package vulnerabilities found.[/green]")

    console.print("\n[blue]🔍 Checking for security headers in web server code...[/blue]")
    for finding in report.header_findings:
        console.print(f"[yellow]⚠️ {finding.message} in {finding.file}.[/yellow]")
    if report.header_findings:
        console.print(
            f"[yellow]⚠️ {len(report.header_findings)} security headers are missing in web server code.[/yellow]"
        )
    else:
        console.print("[green]✅ Security headers are properly configured.[/green]")

    console.print("\n[blue]🔍 Checking session storage security...[/blue]")
    for finding in report.session_findings:
        console.print(f"[yellow]⚠️ {finding.message}.[/yellow]")

    console.print("\n[blue]📊 Security Check Results[/blue]")
    console.print("[blue]======================[/blue]")
    if report.total_issues == 0:
        console.print("[green]✅ No security issues found.[/green]")
        return

    console.print(f"[red]❌ Found {report.total_issues} potential security issues.[/red]")
    for issue_type, issues in report.issues_by_type().items():
        console.print(f"\n[yellow]{issue_type} ({len(issues)} issues):[/yellow]")
        for issue in issues[:ISSUES_SHOWN_PER_TYPE]:
            console.print(f"  - {issue.file} (line {issue.line}): {issue.match}", markup=False, style="yellow")
        if len(issues) > ISSUES_SHOWN_PER_TYPE:
            console.print(
                f"[yellow]  ... and {len(issues) - ISSUES_SHOWN_PER_TYPE} more issues of this type.[/yellow]"
            )

    console.print("\n[blue]🛠️ Recommendations:[/blue]")
    for number, line in enumerate(recommendations(report), start=1):
        console.print(f"  {number}. {line}", markup=False, style="yellow")
