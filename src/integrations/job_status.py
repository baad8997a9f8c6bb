"""
AWS Batch Job Status Module

This module provides the raw status of the batch job that computes the
daily threat matches. It satisfies the job status provider interface used
by the domain layer.

Usage:
    from integrations import job_status

    status = job_status.get_status("3f8e1c9a-...")
    print(status)  # "RUNNING", "SUCCEEDED", "FAILED", ...
"""

import logging
import os

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)


# ============================================================================
# Custom Exception Classes
# ============================================================================

class JobStatusError(Exception):
    """Raised when the job status cannot be determined."""
    pass


class JobNotFoundException(JobStatusError):
    """Raised when the batch job does not exist."""
    pass


class ThrottlingException(JobStatusError):
    """Raised when Batch API requests are throttled."""
    pass


# ============================================================================
# Module-Level Configuration and Initialization
# ============================================================================

def _initialize_batch_client():
    """
    Initialize boto3 Batch client with timeout configuration.

    Returns:
        boto3.client: Configured Batch client
    """
    # No retries: the scheduler trigger re-invokes on its own schedule
    client_config = Config(
        retries={
            'max_attempts': 0,
            'mode': 'standard'
        },
        connect_timeout=10,
        read_timeout=30
    )

    region = os.environ.get('AWS_REGION', os.environ.get('AWS_DEFAULT_REGION', 'us-east-1'))

    client = boto3.client(
        'batch',
        region_name=region,
        config=client_config
    )

    logger.info(
        f"Batch client initialized: region={region}, "
        f"connect_timeout=10s, read_timeout=30s, max_attempts=0 (no retries)"
    )
    return client


# Initialize at module import time (reused across invocations)
batch_client = _initialize_batch_client()


# ============================================================================
# Status Query
# ============================================================================

def get_status(job_id: str) -> str:
    """
    Return the raw status string of a batch job.

    Args:
        job_id: Batch job identifier (non-empty)

    Returns:
        str: The job's current status, e.g. "RUNNING" or "SUCCEEDED"

    Raises:
        ValueError: If job_id is empty
        JobNotFoundException: If no job with that id exists
        ThrottlingException: If the request was throttled
        JobStatusError: If the response has no status
        ClientError: For other AWS service errors
    """
    if not job_id or not isinstance(job_id, str):
        raise ValueError(f"job_id must be a non-empty string. Got: {job_id!r}")

    try:
        response = batch_client.describe_jobs(jobs=[job_id])
    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', 'Unknown')
        error_message = e.response.get('Error', {}).get('Message', str(e))

        if error_code in ('ThrottlingException', 'TooManyRequestsException'):
            logger.error(f"Request throttled: {error_message}")
            raise ThrottlingException(f"Request throttled by Batch service: {error_message}")

        logger.error(
            f"Job status query failed: job_id={job_id}, "
            f"error_code={error_code}, error_message={error_message}"
        )
        raise
    except BotoCoreError as e:
        logger.error(f"Job status query failed: job_id={job_id}, error={e}")
        raise JobStatusError(f"Could not reach Batch service: {e}") from e

    jobs = response.get('jobs', [])
    if not jobs:
        logger.error(f"Batch job not found: {job_id}")
        raise JobNotFoundException(f"Batch job not found: {job_id}")

    status = jobs[0].get('status')
    if not status:
        raise JobStatusError(f"Batch job {job_id} has no status in response")

    logger.info(f"Batch job {job_id} status: {status}")
    return status
