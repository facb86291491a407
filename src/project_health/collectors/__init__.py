"""Evidence collectors."""

from project_health.collectors.audit import SecurityAuditCollector
from project_health.collectors.base import Collector
from project_health.collectors.http_probe import HttpProbe
from project_health.collectors.lint import LintCollector
from project_health.collectors.outdated import OutdatedCollector
from project_health.collectors.pagespeed import PageSpeedClient
from project_health.collectors.typecheck import TypeCheckCollector

__all__ = [
    "Collector",
    "HttpProbe",
    "LintCollector",
    "OutdatedCollector",
    "PageSpeedClient",
    "SecurityAuditCollector",
    "TypeCheckCollector",
]
