"""
Incremental threat match computation.

Given yesterday's (baseline) snapshot and today's snapshot, produce the
snapshot of matches that are new today. Both inputs are left untouched.
"""

from collections import Counter
from typing import Dict, Iterable, Tuple

from .models import RegistrarThreatMatches, Snapshot, ThreatMatch


def _subtract_matches(
    current: Tuple[ThreatMatch, ...],
    previous: Iterable[ThreatMatch]
) -> Tuple[ThreatMatch, ...]:
    """
    Remove previous matches from current with multiset semantics.

    Each previous occurrence cancels at most one equal current occurrence,
    earliest first. The remaining matches keep their relative order.
    """
    remaining_cancellations = Counter(previous)
    kept = []
    for match in current:
        if remaining_cancellations[match] > 0:
            remaining_cancellations[match] -= 1
        else:
            kept.append(match)
    return tuple(kept)


def diff(previous: Snapshot, current: Snapshot) -> Snapshot:
    """
    Compute the matches in current that were not already in previous.

    Args:
        previous: Baseline snapshot
        current: Snapshot for the report date

    Returns:
        Snapshot: One entry per registrar that has new matches. Registrars
        only present in previous, or with nothing new, are omitted.

    Example:
        >>> m1, m2, m3 = (ThreatMatch("MALWARE", d) for d in ("a.tld", "b.tld", "c.tld"))
        >>> prev = frozenset({RegistrarThreatMatches("a@x", (m1, m2))})
        >>> cur = frozenset({RegistrarThreatMatches("a@x", (m1, m2, m3))})
        >>> [entry.threat_matches for entry in diff(prev, cur)] == [(m3,)]
        True
    """
    previous_by_email: Dict[str, Tuple[ThreatMatch, ...]] = {
        entry.registrar_email_address: entry.threat_matches for entry in previous
    }

    new_entries = []
    for entry in current:
        baseline = previous_by_email.get(entry.registrar_email_address, ())
        new_matches = _subtract_matches(entry.threat_matches, baseline)
        if new_matches:
            new_entries.append(
                RegistrarThreatMatches(entry.registrar_email_address, new_matches)
            )

    return frozenset(new_entries)


def non_empty(snapshot: Snapshot) -> Snapshot:
    """Drop registrars that have no threat matches."""
    return frozenset(entry for entry in snapshot if entry.has_matches)
