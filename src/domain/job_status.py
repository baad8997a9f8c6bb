"""
Batch job status polling.

Raw provider status strings are classified into a JobState here, once, so
nothing downstream inspects them again.
"""

import logging

from .errors import PollError
from .models import JobState

logger = logging.getLogger(__name__)

# AWS Batch terminal states
DEFAULT_DONE_MARKER = 'SUCCEEDED'
DEFAULT_FAILED_MARKER = 'FAILED'


class JobStatusPoller:
    """
    Queries a job status provider and classifies the result.

    The provider is any object with a ``get_status(job_id) -> str`` method.
    Polling is read-only and safe to repeat.
    """

    def __init__(
        self,
        provider,
        done_marker: str = DEFAULT_DONE_MARKER,
        failed_marker: str = DEFAULT_FAILED_MARKER
    ):
        self.provider = provider
        self.done_marker = done_marker
        self.failed_marker = failed_marker

    def classify(self, raw_status: str) -> JobState:
        """
        Map a raw status string to a JobState.

        Only exact matches on the terminal markers are terminal; any other
        value (including None) means the job is still running.
        """
        if raw_status == self.done_marker:
            return JobState.DONE
        if raw_status == self.failed_marker:
            return JobState.FAILED
        return JobState.RUNNING

    def poll(self, job_id: str) -> JobState:
        """
        Fetch and classify the current state of a job.

        Args:
            job_id: Batch job identifier

        Returns:
            JobState: RUNNING, DONE or FAILED

        Raises:
            PollError: If the status query fails for any reason
        """
        try:
            raw_status = self.provider.get_status(job_id)
        except Exception as e:
            logger.error(f"Failed to query status of job {job_id}: {e}")
            raise PollError(f"Could not query status of job {job_id}: {e}") from e

        state = self.classify(raw_status)
        logger.info(f"Job {job_id} status: raw={raw_status}, state={state.value}")
        return state
