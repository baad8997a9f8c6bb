"""
Tests for SES email notification service.
"""

import pytest
from unittest.mock import patch
from botocore.exceptions import ClientError
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

from domain.errors import ReportDeliveryError
from domain.models import RegistrarThreatMatches, ReportKind, ThreatMatch
from services import email


@pytest.fixture(autouse=True)
def email_config():
    """Pin email configuration regardless of the environment."""
    with patch.multiple(
        'services.email',
        SENDER_ADDRESS='reports@registry.example',
        ALERT_RECIPIENT_ADDRESS='alerts@registry.example',
        REPLY_TO_ADDRESS='abuse@registry.example',
        BCC_ADDRESSES=['audit@registry.example'],
        SEND_SUCCESS_SUMMARY=False,
        REGISTRY_NAME='Example Registry'
    ):
        yield


@pytest.fixture
def mock_ses():
    with patch('services.email.ses_client') as mock_client:
        mock_client.send_email.return_value = {'MessageId': 'ses-message-1'}
        yield mock_client


def ses_error(code='MessageRejected'):
    return ClientError({'Error': {'Code': code, 'Message': 'Email address is not verified.'}}, 'SendEmail')


def sent_to(mock_ses):
    return [c[1]['Destination']['ToAddresses'] for c in mock_ses.send_email.call_args_list]


class TestFormatThreatList:

    def test_one_line_per_match(self):
        matches = RegistrarThreatMatches('a@x', (
            ThreatMatch('MALWARE', 'one.tld'),
            ThreatMatch('SOCIAL_ENGINEERING', 'two.tld'),
        ))

        assert email.format_threat_list(matches) == \
            "- one.tld (MALWARE)\n- two.tld (SOCIAL_ENGINEERING)"


class TestRenderReport:

    def test_daily_template(self):
        matches = RegistrarThreatMatches('a@x', (ThreatMatch('MALWARE', 'bad.tld'),))

        body = email.render_report(ReportKind.DAILY, matches)

        assert "Example Registry conducts a daily analysis" in body
        assert "- bad.tld (MALWARE)" in body
        assert "abuse@registry.example" in body

    def test_monthly_template(self):
        matches = RegistrarThreatMatches('a@x', (ThreatMatch('MALWARE', 'bad.tld'),))

        body = email.render_report(ReportKind.MONTHLY, matches)

        assert "continue to be flagged" in body
        assert "- bad.tld (MALWARE)" in body


class TestSendAlert:

    def test_send_alert(self, mock_ses):
        email.send_alert("Threat Detector Diff Error 2025-11-12", "No baseline")

        mock_ses.send_email.assert_called_once_with(
            Source='reports@registry.example',
            Destination={'ToAddresses': ['alerts@registry.example']},
            Message={
                'Subject': {'Data': "Threat Detector Diff Error 2025-11-12", 'Charset': 'UTF-8'},
                'Body': {'Text': {'Data': "No baseline", 'Charset': 'UTF-8'}},
            }
        )

    def test_send_alert_no_recipient(self, mock_ses):
        with patch('services.email.ALERT_RECIPIENT_ADDRESS', None):
            with pytest.raises(ValueError, match="ALERT_RECIPIENT_ADDRESS"):
                email.send_alert("subject", "body")
        mock_ses.send_email.assert_not_called()

    def test_send_alert_ses_error_propagates(self, mock_ses):
        mock_ses.send_email.side_effect = ses_error()

        with pytest.raises(ClientError):
            email.send_alert("subject", "body")


class TestSendReport:

    def test_one_email_per_registrar(self, mock_ses):
        snapshot = frozenset({
            RegistrarThreatMatches('b@y', (ThreatMatch('MALWARE', 'two.tld'),)),
            RegistrarThreatMatches('a@x', (ThreatMatch('MALWARE', 'one.tld'),)),
        })

        email.send_report(ReportKind.DAILY, "Example Registry Daily Threat Detector [2025-11-12]", snapshot)

        assert sent_to(mock_ses) == [['a@x'], ['b@y']]
        first = mock_ses.send_email.call_args_list[0][1]
        assert first['Destination']['BccAddresses'] == ['audit@registry.example']
        assert first['ReplyToAddresses'] == ['abuse@registry.example']
        assert first['Message']['Subject']['Data'] == "Example Registry Daily Threat Detector [2025-11-12]"
        assert "- one.tld (MALWARE)" in first['Message']['Body']['Text']['Data']

    def test_empty_snapshot_sends_nothing(self, mock_ses):
        email.send_report(ReportKind.DAILY, "subject", frozenset())

        mock_ses.send_email.assert_not_called()

    def test_success_summary(self, mock_ses):
        snapshot = frozenset({RegistrarThreatMatches('a@x', (ThreatMatch('MALWARE', 'one.tld'),))})

        with patch('services.email.SEND_SUCCESS_SUMMARY', True):
            email.send_report(ReportKind.MONTHLY, "Monthly [2025-11-02]", snapshot)

        assert sent_to(mock_ses) == [['a@x'], ['alerts@registry.example']]
        summary = mock_ses.send_email.call_args_list[1][1]['Message']
        assert summary['Subject']['Data'] == "Threat Detector Pipeline Success"
        assert "1 registrar(s) notified" in summary['Body']['Text']['Data']

    def test_partial_failure_alerts_then_raises(self, mock_ses):
        snapshot = frozenset({
            RegistrarThreatMatches('a@x', (ThreatMatch('MALWARE', 'one.tld'),)),
            RegistrarThreatMatches('b@y', (ThreatMatch('MALWARE', 'two.tld'),)),
        })
        mock_ses.send_email.side_effect = [
            ses_error(),
            {'MessageId': 'ok'},
            {'MessageId': 'alert'},
        ]

        with pytest.raises(ReportDeliveryError, match="a@x"):
            email.send_report(ReportKind.DAILY, "Daily [2025-11-12]", snapshot)

        # Both registrars attempted, then one alert
        assert sent_to(mock_ses) == [['a@x'], ['b@y'], ['alerts@registry.example']]
        alert = mock_ses.send_email.call_args_list[2][1]['Message']
        assert alert['Subject']['Data'] == "Threat Detector Emailing Failure Daily [2025-11-12]"
        assert "a@x" in alert['Body']['Text']['Data']

    def test_no_sender_configured(self, mock_ses):
        snapshot = frozenset({RegistrarThreatMatches('a@x', (ThreatMatch('MALWARE', 'one.tld'),))})

        with patch('services.email.SENDER_ADDRESS', None):
            with pytest.raises(ValueError, match="SENDER_ADDRESS"):
                email.send_report(ReportKind.DAILY, "subject", snapshot)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
