"""Tagged results shared by providers, the normalizer and the resolver."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")

ESTIMATED = "estimated"


class UnavailableReason(Enum):
    """Why a provider produced no usable value."""
    TIMEOUT = "timeout"
    HTTP_ERROR = "http_error"
    MALFORMED_RESPONSE = "malformed_response"
    MISSING_KEY = "missing_key"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Unavailable:
    """
    Explicit "no value" signal returned by a provider adapter.

    Attributes:
        provider: Name of the provider that failed
        reason: Reason code
        detail: Short human-readable explanation
        status: HTTP status code for http_error
    """
    provider: str
    reason: UnavailableReason
    detail: str = ""
    status: Optional[int] = None

    def describe(self) -> str:
        if self.reason is UnavailableReason.HTTP_ERROR and self.status is not None:
            return f"http_error({self.status})"
        return self.reason.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "reason": self.describe(),
            "detail": self.detail,
        }


@dataclass(frozen=True)
class Attempt:
    """One provider call made during a resolution."""
    provider: str
    outcome: str  # "success" | reason code
    detail: str = ""


@dataclass(frozen=True)
class Resolution(Generic[T]):
    """
    Outcome of one fallback resolution.

    Attributes:
        value: The winning (or synthetic) record, already stamped with
            provider and confidence
        provider: Provider name, or "estimated"
        confidence: Confidence attached to the value
        estimated: True when every provider was unavailable
        attempts: Provider calls made, in order
        timed_out: True when the deadline cut the resolution short
    """
    value: T
    provider: str
    confidence: float
    estimated: bool = False
    attempts: Tuple[Attempt, ...] = field(default_factory=tuple)
    timed_out: bool = False


class ConfidenceTier(Enum):
    """Qualitative confidence of a value pulled out of free text."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def weight(self) -> float:
        return _TIER_WEIGHTS[self]


_TIER_WEIGHTS = {
    ConfidenceTier.HIGH: 0.9,
    ConfidenceTier.MEDIUM: 0.7,
    ConfidenceTier.LOW: 0.5,
}


@dataclass(frozen=True)
class ExtractedValue(Generic[T]):
    """A value extracted from text together with how it was found."""
    value: T
    tier: ConfidenceTier

    def effective_confidence(self, provider_confidence: float) -> float:
        return min(self.tier.weight, provider_confidence)

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "tier": self.tier.value}
