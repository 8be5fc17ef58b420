"""Data-quality issues collected during a schedule run."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

import pandas as pd


logger = logging.getLogger(__name__)

SEVERITY_WARNING = "warning"
SEVERITY_ERROR = "error"

ISSUE_COLUMNS = ("severity", "code", "policy_id", "record_id", "message")


class ScheduleDataError(ValueError):
    """Structural input failure; the whole run is rejected."""


@dataclass(frozen=True)
class ScheduleIssue:
    severity: str
    code: str
    policy_id: str | None
    record_id: str | None
    message: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class IssueLog:
    """Append-only list of issues, attributable by (policy_id, record_id)."""

    issues: list[ScheduleIssue] = field(default_factory=list)

    def add(
        self,
        code: str,
        message: str,
        *,
        policy_id: object = None,
        record_id: object = None,
        severity: str = SEVERITY_WARNING,
    ) -> ScheduleIssue:
        issue = ScheduleIssue(
            severity=severity,
            code=code,
            policy_id=None if policy_id is None else str(policy_id),
            record_id=None if record_id is None else str(record_id),
            message=message,
        )
        self.issues.append(issue)
        logger.warning(
            "[%s] %s (policy_id=%s, record_id=%s): %s",
            severity, code, issue.policy_id, issue.record_id, message,
        )
        return issue

    def extend(self, issues: list[ScheduleIssue]) -> None:
        self.issues.extend(issues)

    def __len__(self) -> int:
        return len(self.issues)

    def __iter__(self):
        return iter(self.issues)


def issues_to_frame(issues: list[ScheduleIssue]) -> pd.DataFrame:
    if not issues:
        return pd.DataFrame(columns=list(ISSUE_COLUMNS))
    return pd.DataFrame([i.to_dict() for i in issues], columns=list(ISSUE_COLUMNS))
