"""
Flag evaluation over a resolved mapping.

The evaluator does no I/O and takes no locks. Each query checks the flag
variant and returns a safe default on a mismatch:

- ``is_enabled``: False unless the flag is a boolean set to True
- ``is_enabled_for_id``: False unless the flag is a fraction
- ``scaled_value``: ``min`` unless the flag is a fraction
"""

import zlib
from typing import Mapping, Optional

from .flag_value import BooleanFlag, Feature, FlagValue, FractionFlag


MAX_ID = 2 ** 64
BUCKETS = 100


def check_identifier(identifier: int) -> None:
    # bool is an int subclass but never a valid id
    if isinstance(identifier, bool) or not isinstance(identifier, int):
        raise ValueError(f"Identifier must be an integer, got {type(identifier).__name__}")
    if not 0 <= identifier < MAX_ID:
        raise ValueError(f"Identifier must be an unsigned 64-bit integer, got {identifier}")


def bucket_hash(feature: str, identifier: int) -> int:
    """CRC32 (IEEE) of the flag name followed by the decimal id."""
    check_identifier(identifier)
    return zlib.crc32(f"{feature}{identifier}".encode("utf-8")) & 0xFFFFFFFF


def within_percentile(feature: str, identifier: int, fraction: float) -> bool:
    # int() truncates toward zero, keeping existing bucket boundaries
    percentage = int(fraction * BUCKETS)
    return bucket_hash(feature, identifier) % BUCKETS < percentage


class FlagEvaluator:
    """Typed queries against one resolved flag mapping."""

    __slots__ = ("_features",)

    def __init__(self, features: Mapping[str, FlagValue]):
        self._features = features

    @property
    def features(self) -> Mapping[str, FlagValue]:
        return self._features

    def exists(self, feature: str) -> bool:
        return feature in self._features

    def is_enabled(self, feature: str) -> bool:
        """True only for a boolean flag set to True."""
        value = self._features.get(feature)
        return isinstance(value, BooleanFlag) and value.value

    def is_enabled_for_id(self, feature: str, identifier: int) -> bool:
        """
        Deterministic percentile check for an entity id.

        The same (feature, identifier) pair always lands in the same bucket,
        so raising the fraction only ever adds ids to the enabled set.

        Raises:
            ValueError: If ``identifier`` is not an unsigned 64-bit integer
        """
        check_identifier(identifier)
        value = self._features.get(feature)
        if not isinstance(value, FractionFlag):
            return False
        return within_percentile(feature, identifier, value.value)

    def scaled_value(self, feature: str, min_value: float, max_value: float) -> float:
        """Linear interpolation between bounds by the flag's fraction."""
        value = self._features.get(feature)
        if not isinstance(value, FractionFlag):
            return min_value
        return min_value + (max_value - min_value) * value.value

    def feature(self, feature: str) -> Optional[Feature]:
        value = self._features.get(feature)
        if value is None:
            return None
        return Feature.from_flag(feature, value)
