"""
Deterministic bucketing

A unit (user, device, session...) is mapped to a bucket in [0, bucket_count)
by hashing the unit key together with the layer id. Hashing per layer keeps
assignments in different layers independent of each other, while the same
unit always lands in the same bucket of a given layer.
"""

import hashlib
from typing import Sequence


def compute_bucket(unit_key: str, layer_id: str, bucket_count: int) -> int:
    if bucket_count <= 0:
        raise ValueError(f"bucket_count must be positive, got {bucket_count}")
    digest = hashlib.sha256(f"{unit_key}:{layer_id}".encode("utf-8")).hexdigest()
    return int(digest[:8], 16) % bucket_count


def bucket_in_range(bucket: int, bucket_range: Sequence[int]) -> bool:
    """Inclusive on both ends"""
    start, end = bucket_range
    return start <= bucket <= end
