"""
Pytest configuration and fixtures for all tests.
"""

import os
import sys
from datetime import date

import pytest

# Add src to Python path before any imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

# Set up test environment variables before importing any modules
os.environ.setdefault('AWS_DEFAULT_REGION', 'us-east-1')
os.environ.setdefault('AWS_ACCESS_KEY_ID', 'testing')
os.environ.setdefault('AWS_SECRET_ACCESS_KEY', 'testing')
os.environ.setdefault('ENVIRONMENT', 'test')
os.environ.setdefault('REGISTRY_NAME', 'Example Registry')
os.environ.setdefault('REPORT_BUCKET', 'test-report-bucket')
os.environ.setdefault('REPORT_KEY_PREFIX', 'threat-reports/')
os.environ.setdefault('SENDER_ADDRESS', 'reports@registry.example')
os.environ.setdefault('ALERT_RECIPIENT_ADDRESS', 'alerts@registry.example')
os.environ.setdefault('REPLY_TO_ADDRESS', 'abuse@registry.example')

from domain.models import RegistrarThreatMatches, ThreatMatch  # noqa: E402


@pytest.fixture
def m1():
    return ThreatMatch("MALWARE", "one.tld", "ANY_PLATFORM", "NONE")


@pytest.fixture
def m2():
    return ThreatMatch("SOCIAL_ENGINEERING", "two.tld", "ANY_PLATFORM", "NONE")


@pytest.fixture
def m3():
    return ThreatMatch("UNWANTED_SOFTWARE", "three.tld", "ANY_PLATFORM", "NONE")


@pytest.fixture
def m4():
    return ThreatMatch("MALWARE", "four.tld", "ANY_PLATFORM", "NONE")


@pytest.fixture
def registrar():
    """Shorthand factory for RegistrarThreatMatches."""
    def _make(email, *matches):
        return RegistrarThreatMatches(email, matches)
    return _make


@pytest.fixture
def daily_date():
    return date(2025, 11, 12)


@pytest.fixture
def monthly_date():
    return date(2025, 11, 2)
