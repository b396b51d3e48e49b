"""
Flag value variants and display records.

Every leaf of a flag tree is stored as one of four variants:

- ``BooleanFlag``: an on/off toggle
- ``FractionFlag``: a rollout fraction in [0.0, 1.0]
- ``ScopeNode``: a nested scope holding more flags
- ``UnsupportedFlag``: anything else found in the payload

Evaluation code checks the variant and falls back to a safe default when
the variant does not match the query, so a mistyped flag never raises.
"""

import copy
import math
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, Field


class FeatureType(Enum):
    """Logical type of a flag."""
    PERCENTILE = "percentile"
    BOOLEAN = "boolean"
    SCOPE = "scope"
    INVALID = "invalid"

    @classmethod
    def from_name(cls, name: str) -> "FeatureType":
        """Look up a type by its wire name, returning INVALID for unknown names."""
        try:
            return cls(name)
        except ValueError:
            return cls.INVALID


@dataclass(frozen=True)
class BooleanFlag:
    value: bool
    feature_type: ClassVar[FeatureType] = FeatureType.BOOLEAN

    def to_raw(self) -> bool:
        return self.value


@dataclass(frozen=True)
class FractionFlag:
    value: float
    feature_type: ClassVar[FeatureType] = FeatureType.PERCENTILE

    def to_raw(self) -> float:
        return self.value


@dataclass(frozen=True)
class ScopeNode:
    """A nested scope. ``children`` is a read-only mapping."""
    children: Mapping[str, "FlagValue"]
    feature_type: ClassVar[FeatureType] = FeatureType.SCOPE

    def to_raw(self) -> Dict[str, Any]:
        return {name: child.to_raw() for name, child in self.children.items()}


@dataclass(frozen=True)
class UnsupportedFlag:
    raw: Any
    feature_type: ClassVar[FeatureType] = FeatureType.INVALID

    def to_raw(self) -> Any:
        return copy.deepcopy(self.raw)


FlagValue = Union[BooleanFlag, FractionFlag, ScopeNode, UnsupportedFlag]


def classify(raw: Any) -> FlagValue:
    """
    Convert a decoded JSON value into its flag variant.

    Booleans are checked before numbers since ``bool`` is a subclass of
    ``int``. Numbers outside [0, 1] (and NaN) are kept as unsupported.
    """
    if isinstance(raw, bool):
        return BooleanFlag(raw)
    if isinstance(raw, (int, float)):
        number = float(raw)
        if not math.isnan(number) and 0.0 <= number <= 1.0:
            return FractionFlag(number)
        return UnsupportedFlag(raw)
    if isinstance(raw, Mapping):
        return scope_node(raw)
    return UnsupportedFlag(raw)


def scope_node(raw: Mapping[str, Any]) -> ScopeNode:
    """Build a read-only ScopeNode from a decoded JSON object."""
    children = {str(name): classify(value) for name, value in raw.items()}
    return ScopeNode(MappingProxyType(children))


class Feature(BaseModel):
    """
    Display record for a single flag.

    Used by the CLI to list resolved flags. ``value`` holds the plain JSON
    value, not the variant.
    """

    name: str = Field(description="Flag name")
    feature_type: FeatureType = Field(description="Logical type of the flag")
    value: Any = Field(default=None, description="Plain flag value")

    @classmethod
    def from_flag(cls, name: str, flag: FlagValue) -> "Feature":
        return cls(name=name, feature_type=flag.feature_type, value=flag.to_raw())

    def float_value(self) -> Optional[float]:
        if self.feature_type is FeatureType.PERCENTILE:
            return float(self.value)
        return None

    def bool_value(self) -> Optional[bool]:
        if self.feature_type is FeatureType.BOOLEAN:
            return bool(self.value)
        return None


def sorted_features(features: Mapping[str, FlagValue]) -> List[Feature]:
    """Display records for a resolved mapping, ordered by flag name."""
    return [Feature.from_flag(name, features[name]) for name in sorted(features)]
