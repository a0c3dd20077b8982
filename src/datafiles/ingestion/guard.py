"""
Size/Quota Guard.

Pure accounting for one ingestion call: decides whether a candidate file of a
given byte length may be admitted under the per-file size limit and the
remaining storage quota, and consumes quota for every admitted file.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Admission(str, Enum):
    ADMIT = "admit"
    REJECT_SIZE = "reject_size"
    REJECT_QUOTA = "reject_quota"


@dataclass
class QuotaState:
    """Remaining quota in bytes for one call; None means quotas are not tracked."""
    remaining: Optional[int] = None

    @property
    def tracked(self) -> bool:
        return self.remaining is not None


def admit(
    candidate_size: int,
    size_limit: Optional[int],
    quota: QuotaState,
) -> Admission:
    """
    Admit or reject one candidate file.

    On ADMIT the candidate size is subtracted from `quota.remaining`. Rejections
    leave the quota untouched. Zero-byte files are always admitted.
    """
    if candidate_size < 0:
        raise ValueError(f"File size cannot be negative: {candidate_size}")
    if candidate_size == 0:
        return Admission.ADMIT
    if size_limit is not None and candidate_size > size_limit:
        return Admission.REJECT_SIZE
    if quota.tracked and candidate_size > quota.remaining:
        return Admission.REJECT_QUOTA
    if quota.tracked:
        quota.remaining -= candidate_size
    return Admission.ADMIT


def streaming_ceiling(size_limit: Optional[int], quota: QuotaState) -> Optional[int]:
    """Largest byte count a stream may reach and still be admissible."""
    limits = [l for l in (size_limit, quota.remaining) if l is not None]
    return min(limits) if limits else None


def bytes_to_human_readable(size: Optional[int]) -> str:
    if size is None:
        return "unlimited"
    if size < 1024:
        return f"{size} bytes"
    exponent = (size.bit_length() - 1) // 10
    return f"{size / (1 << (exponent * 10)):.1f} {' KMGTPE'[exponent]}B"
