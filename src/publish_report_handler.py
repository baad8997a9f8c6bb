"""
AWS Lambda handler for publishing threat reports after the batch job runs.

Thin orchestration layer that delegates to ReportScheduler.
Policy: never retry internally. A 304 response tells the trigger to invoke
again later; every other response is final for this (jobId, date).
"""

import json
import logging
import os
from datetime import date, datetime, timezone
from typing import Any, Dict

from domain.baseline import BaselineResolver
from domain.job_status import DEFAULT_DONE_MARKER, DEFAULT_FAILED_MARKER, JobStatusPoller
from domain.models import PublishOutcome, PublishSignal
from domain.report_scheduler import ReportScheduler
from integrations import job_status
from services import email as email_service
from services import snapshot_store

# Configure logging
logger = logging.getLogger()
logger.setLevel(logging.INFO)

# Add console handler for local testing (AWS Lambda provides handlers automatically)
if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    formatter = logging.Formatter('%(levelname)s - %(message)s')
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

# Environment variables
REGISTRY_NAME = os.environ.get('REGISTRY_NAME', 'Registry')
ENVIRONMENT = os.environ.get('ENVIRONMENT', 'dev')
BASELINE_LOOKBACK_MONTHS = int(os.environ.get('BASELINE_LOOKBACK_MONTHS', '1'))
JOB_DONE_STATE = os.environ.get('JOB_DONE_STATE', DEFAULT_DONE_MARKER)
JOB_FAILED_STATE = os.environ.get('JOB_FAILED_STATE', DEFAULT_FAILED_MARKER)

STATUS_CODES = {
    PublishSignal.SUCCESS: 200,
    PublishSignal.HANDLED_FAILURE: 204,
    PublishSignal.RETRY_LATER: 304,
    PublishSignal.UNHANDLED_ERROR: 500,
}

# Initialize scheduler once at module level (reused across invocations)
report_scheduler = ReportScheduler(
    poller=JobStatusPoller(
        job_status,
        done_marker=JOB_DONE_STATE,
        failed_marker=JOB_FAILED_STATE
    ),
    baseline_resolver=BaselineResolver(snapshot_store, lookback_months=BASELINE_LOOKBACK_MONTHS),
    snapshot_store=snapshot_store,
    notifier=email_service,
    registry_name=REGISTRY_NAME
)


def _parse_parameters(event: Dict[str, Any]):
    """
    Extract jobId and report date from a direct or API Gateway event.

    Returns:
        Tuple of (job_id, report_date)

    Raises:
        ValueError: If jobId is missing or date is not ISO yyyy-mm-dd
    """
    params = dict(event.get('queryStringParameters') or {})
    params.update({k: v for k, v in event.items() if k in ('jobId', 'date')})

    job_id = params.get('jobId')
    if not job_id:
        raise ValueError("jobId is required")

    raw_date = params.get('date')
    if raw_date:
        try:
            report_date = date.fromisoformat(raw_date)
        except (TypeError, ValueError):
            raise ValueError(f"date must be in yyyy-mm-dd format, got: {raw_date!r}")
    else:
        report_date = datetime.now(timezone.utc).date()

    return job_id, report_date


def to_response(outcome: PublishOutcome) -> Dict[str, Any]:
    """Map a publish outcome to the Lambda response returned to the trigger."""
    status_code = STATUS_CODES[outcome.signal]

    if outcome.signal is PublishSignal.UNHANDLED_ERROR:
        return {
            'statusCode': status_code,
            'headers': {'Content-Type': 'application/json'},
            'body': json.dumps({
                'error': 'Publish failed',
                'message': outcome.error_message
            })
        }

    result = {
        'jobId': outcome.job_id,
        'date': outcome.date.isoformat(),
        'signal': outcome.signal.value,
    }
    if outcome.error_kind:
        result['errorKind'] = outcome.error_kind.value
    if outcome.report_kind:
        result['reportKind'] = outcome.report_kind.value
        result['registrarCount'] = outcome.registrar_count

    return {
        'statusCode': status_code,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps(result)
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Publish the threat report for a finished batch job.

    Expected event format:
    {
        "jobId": "batch-job-id",
        "date": "2025-11-12"      (optional, defaults to today in UTC)
    }

    Args:
        event: Direct invocation or API Gateway event
        context: Lambda context

    Returns:
        Dict with statusCode (200, 204, 304, 400 or 500) and JSON body
    """
    logger.info("=" * 70)
    logger.info(f"Threat Report Publisher - Started ({ENVIRONMENT})")
    logger.info("=" * 70)

    try:
        job_id, report_date = _parse_parameters(event)
    except ValueError as ve:
        logger.error(f"Validation error: {ve}")
        return {
            'statusCode': 400,
            'body': json.dumps({'error': str(ve)})
        }

    outcome = report_scheduler.publish(job_id, report_date)

    if outcome.success:
        logger.info(f"✓ {outcome!r}")
    elif outcome.signal is PublishSignal.RETRY_LATER:
        logger.info(f"… {outcome!r}")
    else:
        logger.warning(f"⚠ {outcome!r}")
    logger.info("=" * 70)

    return to_response(outcome)


def health_check(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Simple health check endpoint for monitoring.
    """
    return {
        'statusCode': 200,
        'body': json.dumps({
            'status': 'healthy',
            'environment': ENVIRONMENT,
            'reportBucketConfigured': bool(snapshot_store.REPORT_BUCKET),
            'senderConfigured': bool(email_service.SENDER_ADDRESS),
            'alertRecipientConfigured': bool(email_service.ALERT_RECIPIENT_ADDRESS)
        })
    }
