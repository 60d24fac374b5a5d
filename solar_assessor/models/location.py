"""Geocoded location model."""

from dataclasses import dataclass, asdict
from typing import Any, Dict


@dataclass(frozen=True)
class Location:
    """
    A geocoded address.

    Attributes:
        formatted_address: Address as normalized by the provider
        latitude: Decimal degrees
        longitude: Decimal degrees
        verified: Whether the provider confirmed the address exists
        confidence: Trust score in [0, 1]
        source_provider: Provider name, or "estimated"
    """
    formatted_address: str
    latitude: float
    longitude: float
    verified: bool = False
    confidence: float = 0.0
    source_provider: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
