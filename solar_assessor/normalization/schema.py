"""Schema-driven coercion of loosely typed provider payloads."""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldSpec:
    """
    Declared type and default for one response field.

    Attributes:
        name: Canonical key looked up first
        type: One of float, int, str, bool
        default: Value used when the field is absent or unusable
        aliases: Alternative keys tried after ``name``
        minimum: Lower clamp for numeric fields
        maximum: Upper clamp for numeric fields
    """
    name: str
    type: type
    default: Any
    aliases: Tuple[str, ...] = ()
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    @property
    def keys(self) -> Tuple[str, ...]:
        return (self.name,) + tuple(self.aliases)


@dataclass(frozen=True)
class CoercionResult:
    """Coerced values keyed by canonical field name, plus the fields that fell back."""
    values: Dict[str, Any]
    defaulted: Tuple[str, ...] = field(default_factory=tuple)

    def __getitem__(self, name: str) -> Any:
        return self.values[name]


_MISSING = object()


class ResponseSchema:
    """
    Ordered collection of FieldSpecs with a single coercion routine.

    Coercion rules, applied per field:
    - an array yields its first element; an empty array yields the default
    - an absent value or a value of the wrong primitive type yields the default
    - bools never count as numbers, numeric strings are not parsed
    - an int is accepted for a float field, an integral float for an int field
    - numbers outside the declared bounds are clamped
    """

    def __init__(self, name: str, fields: Sequence[FieldSpec]):
        self.name = name
        self.fields = tuple(fields)

    def defaults(self) -> Dict[str, Any]:
        return {spec.name: spec.default for spec in self.fields}

    def coerce(self, payload: Any) -> CoercionResult:
        """
        Coerce a raw payload to the declared field types.

        Args:
            payload: Mapping as decoded from a provider answer; anything
                else is treated as an empty mapping

        Returns:
            CoercionResult with one value per declared field
        """
        if not isinstance(payload, Mapping):
            logger.debug(f"{self.name}: payload is {type(payload).__name__}, using defaults")
            payload = {}

        values: Dict[str, Any] = {}
        defaulted = []
        for spec in self.fields:
            raw = _lookup(payload, spec.keys)
            value = _coerce_value(spec, raw)
            if value is _MISSING:
                values[spec.name] = spec.default
                defaulted.append(spec.name)
            else:
                values[spec.name] = value

        if defaulted:
            logger.debug(f"{self.name}: defaulted fields {defaulted}")
        return CoercionResult(values=values, defaulted=tuple(defaulted))


def _lookup(payload: Mapping, keys: Tuple[str, ...]) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return _MISSING


def _coerce_value(spec: FieldSpec, raw: Any) -> Any:
    if raw is _MISSING:
        return _MISSING

    if isinstance(raw, (list, tuple)):
        if not raw:
            return _MISSING
        raw = raw[0]

    if spec.type is bool:
        return raw if isinstance(raw, bool) else _MISSING

    if spec.type is str:
        if not isinstance(raw, str) or not raw.strip():
            return _MISSING
        return raw.strip()

    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return _MISSING
    if isinstance(raw, float) and not math.isfinite(raw):
        return _MISSING

    if spec.type is int:
        if isinstance(raw, float):
            if not raw.is_integer():
                return _MISSING
            raw = int(raw)
    elif spec.type is float:
        raw = float(raw)
    else:
        return _MISSING

    if spec.minimum is not None and raw < spec.minimum:
        raw = spec.type(spec.minimum)
    if spec.maximum is not None and raw > spec.maximum:
        raw = spec.type(spec.maximum)
    return raw


ROOF_ANALYSIS_SCHEMA = ResponseSchema(
    "roof_analysis",
    [
        FieldSpec("usableAreaM2", float, 40.0,
                  aliases=("usable_area_m2", "usableArea", "roofAreaM2"), minimum=0.0),
        FieldSpec("shadingPct", float, 15.0,
                  aliases=("shading_pct", "shade_pct", "shadePct", "shadingPercentage"),
                  minimum=0.0, maximum=100.0),
        FieldSpec("roofType", str, "unknown", aliases=("roof_type", "roofMaterial")),
        FieldSpec("suitabilityScore", int, 70,
                  aliases=("suitability_score", "score"), minimum=0, maximum=100),
        FieldSpec("roofCondition", str, "unknown", aliases=("roof_condition", "condition")),
        FieldSpec("optimalDirection", str, "South",
                  aliases=("optimal_direction", "orientation")),
    ],
)
