"""Cohort statistics for one fingerprint name across a workspace."""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Sequence

from orgscope.db.models import Fingerprint, FingerprintUsage


def shannon_entropy(counts: Sequence[int]) -> float:
    """Shannon entropy in bits of a frequency distribution. 0.0 when empty."""
    total = sum(counts)
    if total == 0:
        return 0.0
    entropy = 0.0
    for c in counts:
        if c:
            p = c / total
            entropy -= p * math.log2(p)
    return entropy


def analyze_cohort(type: str, name: str, fingerprints: Sequence[Fingerprint]) -> FingerprintUsage:
    """Summarise how many repos carry the fingerprint and how varied it is.

    *fingerprints* holds one entry per repo link (not deduplicated), so
    ``count`` is the number of repos and each sha's frequency is the number of
    repos on that value.
    """
    by_sha = Counter(fp.sha for fp in fingerprints)
    return FingerprintUsage(
        type=type,
        name=name,
        entropy=shannon_entropy(list(by_sha.values())),
        variants=len(by_sha),
        count=len(fingerprints),
    )
