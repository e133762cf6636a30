"""Pydantic models for deploy and security check results."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class PlatformReport(BaseModel):
    """Readiness of one hosting platform."""

    platform: str
    missing_files: List[str] = Field(default_factory=list)
    missing_vars: List[str] = Field(default_factory=list)

    @property
    def ready(self) -> bool:
        return not self.missing_files and not self.missing_vars


class DeployReport(BaseModel):
    """Outcome of the deployment readiness check."""

    missing_required: List[str] = Field(default_factory=list)
    env_error: Optional[str] = None
    platforms: List[PlatformReport] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        """False when a required file is missing (exit code 1)."""
        return not self.missing_required


class Issue(BaseModel):
    """A pattern match found by the source scan."""

    type: str = Field(..., description="Pattern name, e.g. 'API_KEYS'")
    file: str
    line: int = Field(..., ge=1)
    match: str = Field(..., description="Matched text, truncated to 100 chars")


class EnvVarCheck(BaseModel):
    """Status of one variable in the .env file."""

    name: str
    required: bool = False
    configured: bool = False

    @property
    def is_issue(self) -> bool:
        return self.required and not self.configured


class AuditResult(BaseModel):
    """Outcome of the dependency vulnerability audit."""

    ran: bool = False
    vulnerabilities: int = 0
    packages: Dict[str, int] = Field(
        default_factory=dict, description="package name -> vulnerability count"
    )
    error: Optional[str] = None


class Finding(BaseModel):
    """A heuristic check on a specific file that did not pass."""

    file: str
    message: str


class SecurityReport(BaseModel):
    """Everything the security check found."""

    issues: List[Issue] = Field(default_factory=list)
    env_file_found: bool = False
    env_checks: List[EnvVarCheck] = Field(default_factory=list)
    audit: AuditResult = Field(default_factory=AuditResult)
    header_findings: List[Finding] = Field(default_factory=list)
    session_findings: List[Finding] = Field(default_factory=list)

    @property
    def total_issues(self) -> int:
        return (
            len(self.issues)
            + sum(1 for check in self.env_checks if check.is_issue)
            + self.audit.vulnerabilities
            + len(self.header_findings)
            + len(self.session_findings)
        )

    def issues_by_type(self) -> Dict[str, List[Issue]]:
        """Group scan issues by pattern name, in first-seen order."""
        grouped: Dict[str, List[Issue]] = {}
        for issue in self.issues:
            grouped.setdefault(issue.type, []).append(issue)
        return grouped
