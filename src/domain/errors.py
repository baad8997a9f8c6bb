"""
Exceptions raised at the remote-call boundary of the publishing domain.

The scheduler converts these into an explicit PublishOutcome; they never
escape a publish invocation.
"""


class PollError(Exception):
    """Raised when the job status query cannot be completed."""
    pass


class SnapshotError(Exception):
    """Raised when a snapshot cannot be retrieved or parsed."""
    pass


class SnapshotNotFoundError(SnapshotError):
    """Raised when no stored snapshot exists for a date."""
    pass


class SnapshotFormatError(SnapshotError):
    """Raised when a stored snapshot is malformed."""
    pass


class ReportDeliveryError(Exception):
    """Raised by a notifier when some report emails could not be delivered."""
    pass
