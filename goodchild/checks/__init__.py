"""One-shot operational checks: deployment readiness and security scan."""

from .deploy import run_deploy_check
from .models import DeployReport, Issue, PlatformReport, SecurityReport
from .security import run_security_check

__all__ = [
    "DeployReport",
    "Issue",
    "PlatformReport",
    "SecurityReport",
    "run_deploy_check",
    "run_security_check",
]
