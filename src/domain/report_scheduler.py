"""
Threat report publishing - core decision logic.

One invocation does, in order:
1. Poll the batch job that produced today's threat matches
2. If it is still running, ask the trigger to retry later (no side effects)
3. If it failed, alert
4. If it succeeded, send the monthly report on the 2nd of the month,
   otherwise diff today's matches against the latest baseline and send
   the daily report

Every outcome is returned as a PublishOutcome. Fetch failures are caught
and alerted; failures of the alert itself propagate.
"""

import logging
from datetime import date

from .baseline import BaselineResolver
from .errors import PollError, ReportDeliveryError, SnapshotError
from .job_status import JobStatusPoller
from .models import (
    ErrorKind,
    JobState,
    PublishOutcome,
    PublishSignal,
    ReportKind,
)
from .threat_diff import diff, non_empty

logger = logging.getLogger(__name__)

MONTHLY_REPORT_DAY = 2


class ReportScheduler:
    """
    Decides which threat report to publish once the batch job finishes.

    Collaborators:
        poller: JobStatusPoller
        baseline_resolver: BaselineResolver
        snapshot_store: object with ``get_snapshot(date) -> Snapshot``
        notifier: object with ``send_report(kind, subject, snapshot)`` and
            ``send_alert(subject, body)``
        registry_name: Name used in report subjects
    """

    def __init__(
        self,
        poller: JobStatusPoller,
        baseline_resolver: BaselineResolver,
        snapshot_store,
        notifier,
        registry_name: str
    ):
        self.poller = poller
        self.baseline_resolver = baseline_resolver
        self.snapshot_store = snapshot_store
        self.notifier = notifier
        self.registry_name = registry_name

    @staticmethod
    def is_monthly_report_day(day: date) -> bool:
        """Monthly reports go out on the 2nd; every other day is a daily diff."""
        return day.day == MONTHLY_REPORT_DAY

    def publish(self, job_id: str, day: date) -> PublishOutcome:
        """
        Run one publish invocation for a job and report date.

        Args:
            job_id: Batch job that produces the matches for ``day``
            day: Report date

        Returns:
            PublishOutcome describing what happened
        """
        logger.info(f"Starting publish for job {job_id}, date {day}")

        try:
            state = self.poller.poll(job_id)

            if not state.is_terminal:
                logger.info(f"Job {job_id} in non-terminal state, retrying later")
                return PublishOutcome(
                    signal=PublishSignal.RETRY_LATER,
                    job_id=job_id,
                    date=day,
                    error_kind=ErrorKind.TRANSIENT_STATE
                )

            if state is JobState.FAILED:
                logger.error(f"Job {job_id} finished unsuccessfully")
                self.notifier.send_alert(
                    f"Threat Detector Pipeline Failure {day}",
                    f"Threat Detector {day} job {job_id} ended in status failure."
                )
                return PublishOutcome(
                    signal=PublishSignal.HANDLED_FAILURE,
                    job_id=job_id,
                    date=day,
                    error_kind=ErrorKind.UPSTREAM_JOB_FAILURE
                )

            logger.info(f"Job {job_id} finished successfully, publishing results")
            if self.is_monthly_report_day(day):
                return self._publish_monthly(job_id, day)
            return self._publish_daily(job_id, day)

        except (PollError, SnapshotError) as e:
            logger.error(f"Failed to publish threat reports: {e}", exc_info=True)
            self.notifier.send_alert(
                f"Threat Detector Publish Failure {day}",
                f"Threat Detector {day} publish action failed due to {e}"
            )
            return PublishOutcome(
                signal=PublishSignal.UNHANDLED_ERROR,
                job_id=job_id,
                date=day,
                error_kind=ErrorKind.FETCH_FAILURE,
                error_message=str(e)
            )

        except ReportDeliveryError as e:
            # Notifier has already alerted about the failed recipients
            logger.error(f"Threat report delivery incomplete: {e}")
            return PublishOutcome(
                signal=PublishSignal.UNHANDLED_ERROR,
                job_id=job_id,
                date=day,
                error_kind=ErrorKind.DELIVERY_FAILURE,
                error_message=str(e)
            )

    def _publish_monthly(self, job_id: str, day: date) -> PublishOutcome:
        """Send every registrar with matches today."""
        monthly_matches = non_empty(self.snapshot_store.get_snapshot(day))
        subject = f"{self.registry_name} Monthly Threat Detector [{day}]"

        self.notifier.send_report(ReportKind.MONTHLY, subject, monthly_matches)
        logger.info(f"Sent monthly report for {day} to {len(monthly_matches)} registrar(s)")

        return PublishOutcome(
            signal=PublishSignal.SUCCESS,
            job_id=job_id,
            date=day,
            report_kind=ReportKind.MONTHLY,
            registrar_count=len(monthly_matches)
        )

    def _publish_daily(self, job_id: str, day: date) -> PublishOutcome:
        """Send only the matches that are new since the baseline date."""
        baseline_day = self.baseline_resolver.find_baseline(day)
        if baseline_day is None:
            self.notifier.send_alert(
                f"Threat Detector Diff Error {day}",
                f"Could not find a previous file within the past month of {day}"
            )
            return PublishOutcome(
                signal=PublishSignal.HANDLED_FAILURE,
                job_id=job_id,
                date=day,
                error_kind=ErrorKind.MISSING_BASELINE
            )

        previous_matches = self.snapshot_store.get_snapshot(baseline_day)
        current_matches = self.snapshot_store.get_snapshot(day)
        new_matches = diff(previous_matches, current_matches)
        logger.info(
            f"Daily diff {baseline_day} -> {day}: "
            f"{len(new_matches)} registrar(s) with new matches"
        )

        subject = f"{self.registry_name} Daily Threat Detector [{day}]"
        self.notifier.send_report(ReportKind.DAILY, subject, new_matches)

        return PublishOutcome(
            signal=PublishSignal.SUCCESS,
            job_id=job_id,
            date=day,
            report_kind=ReportKind.DAILY,
            registrar_count=len(new_matches)
        )
