"""Run report for fluxstage.

The report lands next to the rendered manifest as ``fluxstage-report.json``
and is rewritten after every change, so a crashed CI job still leaves the
last known step behind. Step and run errors are redacted before they are
stored.
"""

import json
from datetime import datetime, timezone
from typing import Callable, Optional

from fluxstage.errors import DeployError
from fluxstage.models import DeploymentContext, PullRequestRecord, RunReport, StepOutcome
from fluxstage.services.filesystem import FileSystemService


class RunReportService:
    """Tracks a single deployment run as a :class:`RunReport`."""

    def __init__(
        self,
        report_file: str,
        logger,
        filesystem_service: FileSystemService,
        redact: Callable[[str], str],
        enabled: bool = True,
    ):
        self.report_file = report_file
        self.logger = logger
        self.filesystem_service = filesystem_service
        self.redact = redact
        self.enabled = enabled
        self.report: Optional[RunReport] = None

    def start_run(self, context: DeploymentContext) -> RunReport:
        self.report = RunReport.for_context(context, started_at=self._now())
        self.save()
        return self.report

    def step_started(self, name: str) -> StepOutcome:
        outcome = StepOutcome(name=name, status="running", started_at=self._now())
        if self.report is not None:
            self.report.steps.append(outcome)
            self.save()
        return outcome

    def step_finished(self, outcome: StepOutcome, status: str, error: Optional[str] = None):
        outcome.status = status
        outcome.finished_at = self._now()
        outcome.error = self.redact(error) if error else None
        self.save()

    def record_policy_scan(self, ran: bool):
        if self.report is None:
            return
        self.report.policy_scan = "ran" if ran else "skipped"
        self.save()

    def record_pull_request(self, record: PullRequestRecord):
        if self.report is None:
            return
        self.report.pull_request_url = record.html_url
        self.save()

    def record_merge(self):
        if self.report is None:
            return
        self.report.merged = True
        self.save()

    def finalize(self, status: str, error: Optional[str] = None):
        if self.report is None:
            return
        self.report.status = status
        self.report.finished_at = self._now()
        self.report.error = self.redact(error) if error else None
        self.save()

    def save(self):
        if not self.enabled or self.report is None:
            return

        content = json.dumps(self.report.to_dict(), indent=2, sort_keys=True) + "\n"
        try:
            self.filesystem_service.write_text(self.report_file, content)
        except DeployError as exc:
            # A report failure must not mask the deployment outcome.
            self.logger.warning("Could not write run report: %s", exc)

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()
