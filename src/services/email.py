"""
Email notification utilities for Lambda handlers.

This module sends threat reports and operational alerts through Amazon SES
and satisfies the notifier interface used by the domain layer
(``send_report`` and ``send_alert``).
"""

import logging
import os
from typing import List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from domain.errors import ReportDeliveryError
from domain.models import RegistrarThreatMatches, ReportKind, Snapshot
from services import templates as template_service

logger = logging.getLogger(__name__)

ses_config = Config(
    retries={
        'max_attempts': 1,  # 1 attempt total (no retries)
        'mode': 'standard'
    },
    connect_timeout=10,
    read_timeout=30
)

# Initialize SES client at module level (thread-safe, reused across invocations)
ses_client = boto3.client(
    'ses',
    region_name=os.environ.get('AWS_REGION', os.environ.get('AWS_DEFAULT_REGION', 'us-east-1')),
    config=ses_config
)

# Configuration from environment variables
SENDER_ADDRESS = os.environ.get('SENDER_ADDRESS')
ALERT_RECIPIENT_ADDRESS = os.environ.get('ALERT_RECIPIENT_ADDRESS')
REPLY_TO_ADDRESS = os.environ.get('REPLY_TO_ADDRESS')
BCC_ADDRESSES = [a.strip() for a in os.environ.get('BCC_ADDRESSES', '').split(',') if a.strip()]
SEND_SUCCESS_SUMMARY = os.environ.get('SEND_SUCCESS_SUMMARY', 'true').lower() == 'true'
REGISTRY_NAME = os.environ.get('REGISTRY_NAME', 'Registry')

REPORT_TEMPLATES = {
    ReportKind.MONTHLY: 'monthly_report.txt',
    ReportKind.DAILY: 'daily_report.txt',
}


def _send_email(
    to_addresses: List[str],
    subject: str,
    body: str,
    bcc_addresses: Optional[List[str]] = None,
    reply_to: Optional[str] = None
) -> str:
    """
    Send a plain-text email through SES.

    Returns:
        str: SES message ID

    Raises:
        ValueError: If SENDER_ADDRESS is not configured
        ClientError: If SES rejects the message
    """
    if not SENDER_ADDRESS:
        raise ValueError("SENDER_ADDRESS environment variable not set")

    destination = {'ToAddresses': to_addresses}
    if bcc_addresses:
        destination['BccAddresses'] = bcc_addresses

    kwargs = {
        'Source': SENDER_ADDRESS,
        'Destination': destination,
        'Message': {
            'Subject': {'Data': subject, 'Charset': 'UTF-8'},
            'Body': {'Text': {'Data': body, 'Charset': 'UTF-8'}},
        },
    }
    if reply_to:
        kwargs['ReplyToAddresses'] = [reply_to]

    response = ses_client.send_email(**kwargs)
    return response['MessageId']


def format_threat_list(matches: RegistrarThreatMatches) -> str:
    """
    Render a registrar's matches as one line per threat.

    Example:
        >>> format_threat_list(RegistrarThreatMatches("a@x", (ThreatMatch("MALWARE", "bad.tld"),)))
        '- bad.tld (MALWARE)'
    """
    return "\n".join(
        f"- {m.fully_qualified_domain_name} ({m.threat_type})"
        for m in matches.threat_matches
    )


def render_report(kind: ReportKind, matches: RegistrarThreatMatches) -> str:
    """Render the email body for one registrar."""
    template = template_service.load_template(REPORT_TEMPLATES[kind])
    return template_service.format_template(
        template,
        registry_name=REGISTRY_NAME,
        registrar_email=matches.registrar_email_address,
        threat_list=format_threat_list(matches),
        reply_to=REPLY_TO_ADDRESS or SENDER_ADDRESS or ''
    )


def send_alert(subject: str, body: str) -> None:
    """
    Send an operational alert to the configured alert recipient.

    Raises:
        ValueError: If ALERT_RECIPIENT_ADDRESS is not configured
        ClientError: If SES rejects the message
    """
    if not ALERT_RECIPIENT_ADDRESS:
        raise ValueError("ALERT_RECIPIENT_ADDRESS environment variable not set")

    logger.info(f"Sending alert to {ALERT_RECIPIENT_ADDRESS}: {subject}")
    message_id = _send_email([ALERT_RECIPIENT_ADDRESS], subject, body)
    logger.info(f"Alert sent: message_id={message_id}")


def send_report(kind: ReportKind, subject: str, snapshot: Snapshot) -> None:
    """
    Email each registrar in the snapshot its own threat report.

    Every registrar is attempted even if an earlier one fails. An empty
    snapshot sends no registrar emails.

    Args:
        kind: MONTHLY or DAILY (selects the template)
        subject: Email subject line
        snapshot: Registrars and the matches to report to them

    Raises:
        ReportDeliveryError: If any registrar email could not be sent
            (an alert listing the failures is sent first)
    """
    logger.info(f"Sending {kind.value} report '{subject}' to {len(snapshot)} registrar(s)")

    failures = []
    sent_count = 0
    for matches in sorted(snapshot, key=lambda m: m.registrar_email_address):
        try:
            body = render_report(kind, matches)
            _send_email(
                [matches.registrar_email_address],
                subject,
                body,
                bcc_addresses=BCC_ADDRESSES,
                reply_to=REPLY_TO_ADDRESS
            )
            sent_count += 1
        except (ClientError, BotoCoreError, ValueError) as e:
            logger.error(f"Failed to send report to {matches.registrar_email_address}: {e}")
            failures.append((matches.registrar_email_address, str(e)))

    logger.info(f"Sent {sent_count}/{len(snapshot)} {kind.value} report email(s)")

    if failures:
        details = "\n".join(f"{address}: {error}" for address, error in failures)
        send_alert(
            f"Threat Detector Emailing Failure {subject}",
            f"Emailing threat reports failed for {len(failures)} registrar(s):\n{details}"
        )
        raise ReportDeliveryError(
            f"Failed to send {len(failures)} of {len(snapshot)} report email(s): "
            f"{', '.join(address for address, _ in failures)}"
        )

    if SEND_SUCCESS_SUMMARY:
        send_alert(
            "Threat Detector Pipeline Success",
            f"{subject}: threat reporting completed successfully, "
            f"{sent_count} registrar(s) notified."
        )
