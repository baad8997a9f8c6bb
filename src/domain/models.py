"""
Data models for threat report publishing domain.

These type-safe data structures define clear contracts between components.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple


@dataclass(frozen=True)
class ThreatMatch:
    """
    One detected threat against a registered domain.

    Two matches are equal iff every field is equal.

    Attributes:
        threat_type: Threat classification (e.g., "MALWARE", "SOCIAL_ENGINEERING")
        fully_qualified_domain_name: The domain the threat was found on
        platform_type: Platform the threat applies to (may be empty)
        metadata: Supporting metadata from the detector (may be empty)
    """
    threat_type: str
    fully_qualified_domain_name: str
    platform_type: str = ""
    metadata: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ThreatMatch':
        """
        Build a ThreatMatch from its stored JSON form.

        Raises:
            ValueError: If a required field is missing or not a string
        """
        if not isinstance(data, dict):
            raise ValueError(f"Threat match must be an object, got {type(data).__name__}")

        threat_type = data.get('threatType')
        domain_name = data.get('fullyQualifiedDomainName')
        if not isinstance(threat_type, str) or not threat_type:
            raise ValueError("Threat match missing 'threatType'")
        if not isinstance(domain_name, str) or not domain_name:
            raise ValueError("Threat match missing 'fullyQualifiedDomainName'")

        return cls(
            threat_type=threat_type,
            fully_qualified_domain_name=domain_name,
            platform_type=str(data.get('platformType', '')),
            metadata=str(data.get('metadata', ''))
        )


@dataclass(frozen=True)
class RegistrarThreatMatches:
    """
    All threat matches for a single registrar on one date.

    Attributes:
        registrar_email_address: Address the report is sent to (non-empty)
        threat_matches: Matches in detection order (duplicates allowed)
    """
    registrar_email_address: str
    threat_matches: Tuple[ThreatMatch, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.registrar_email_address:
            raise ValueError("Registrar email address cannot be empty")
        # Accept any sequence but always store an immutable tuple
        object.__setattr__(self, 'threat_matches', tuple(self.threat_matches))

    @property
    def has_matches(self) -> bool:
        """Check if registrar has at least one threat match."""
        return bool(self.threat_matches)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RegistrarThreatMatches':
        """
        Build a RegistrarThreatMatches from its stored JSON form.

        Raises:
            ValueError: If the email address or match list is invalid
        """
        if not isinstance(data, dict):
            raise ValueError(f"Registrar entry must be an object, got {type(data).__name__}")

        email_address = data.get('registrarEmailAddress')
        if not isinstance(email_address, str) or not email_address:
            raise ValueError("Registrar entry missing 'registrarEmailAddress'")

        matches = data.get('threatMatches', [])
        if not isinstance(matches, list):
            raise ValueError(f"'threatMatches' for {email_address} must be a list")

        return cls(
            registrar_email_address=email_address,
            threat_matches=tuple(ThreatMatch.from_dict(m) for m in matches)
        )


# The full per-registrar dataset for one calendar date
Snapshot = FrozenSet[RegistrarThreatMatches]


class JobState(Enum):
    """Closed classification of a batch job's raw status."""
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not JobState.RUNNING


class ReportKind(Enum):
    """Which report template and cadence a notification belongs to."""
    MONTHLY = "monthly"
    DAILY = "daily"


class PublishSignal(Enum):
    """Externally observable outcome of one publish invocation."""
    RETRY_LATER = "retry_later"
    SUCCESS = "success"
    HANDLED_FAILURE = "handled_failure"
    UNHANDLED_ERROR = "unhandled_error"


class ErrorKind(Enum):
    """Why an invocation did not end in a sent report."""
    TRANSIENT_STATE = "transient_state"
    UPSTREAM_JOB_FAILURE = "upstream_job_failure"
    MISSING_BASELINE = "missing_baseline"
    FETCH_FAILURE = "fetch_failure"
    DELIVERY_FAILURE = "delivery_failure"


@dataclass
class PublishOutcome:
    """
    Result of one publish invocation.

    This explicit result type carries the outcome back to the handler
    instead of letting exceptions drive control flow.

    Attributes:
        signal: Boundary signal the trigger layer maps to its transport
        job_id: Batch job that was polled
        date: Report date
        error_kind: Taxonomy kind when the signal is not SUCCESS
        report_kind: Report that was sent (SUCCESS only)
        registrar_count: Registrars included in the sent report
        error_message: Error detail (unhandled errors only)
    """
    signal: PublishSignal
    job_id: str
    date: date
    error_kind: Optional[ErrorKind] = None
    report_kind: Optional[ReportKind] = None
    registrar_count: int = 0
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.signal is PublishSignal.SUCCESS

    def __repr__(self) -> str:
        """Human-readable representation for logging."""
        if self.success:
            report = self.report_kind.value if self.report_kind else None
            return (
                f"PublishOutcome(signal=success, job_id={self.job_id}, date={self.date}, "
                f"report={report}, registrars={self.registrar_count})"
            )
        kind = self.error_kind.value if self.error_kind else None
        text = f"PublishOutcome(signal={self.signal.value}, job_id={self.job_id}, date={self.date}, kind={kind}"
        if self.error_message:
            text += f", error={self.error_message}"
        return text + ")"
