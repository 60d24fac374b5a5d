"""Tests for schema-driven coercion of provider payloads."""

import math

import pytest

from solar_assessor.normalization.address import parse_address_components
from solar_assessor.normalization.schema import (
    ROOF_ANALYSIS_SCHEMA,
    FieldSpec,
    ResponseSchema,
)


SCHEMA = ResponseSchema("sample", [
    FieldSpec("count", int, 0, aliases=("n",), minimum=0, maximum=100),
    FieldSpec("ratio", float, 1.5),
    FieldSpec("label", str, "none"),
    FieldSpec("flag", bool, False),
])


def test_array_takes_first_element():
    result = SCHEMA.coerce({"count": [5, 7]})
    assert result["count"] == 5
    assert isinstance(result["count"], int)


def test_empty_array_yields_default():
    result = SCHEMA.coerce({"count": []})
    assert result["count"] == 0
    assert "count" in result.defaulted


def test_missing_field_yields_default():
    result = SCHEMA.coerce({})
    assert result.values == {"count": 0, "ratio": 1.5, "label": "none", "flag": False}
    assert set(result.defaulted) == {"count", "ratio", "label", "flag"}


def test_null_counts_as_absent():
    assert SCHEMA.coerce({"ratio": None})["ratio"] == 1.5


def test_alias_is_used_when_canonical_key_missing():
    assert SCHEMA.coerce({"n": 12})["count"] == 12


def test_wrong_primitive_type_yields_default():
    result = SCHEMA.coerce({"count": "12", "ratio": "0.5", "label": 3, "flag": "yes"})
    assert result.values == {"count": 0, "ratio": 1.5, "label": "none", "flag": False}


def test_bool_is_not_a_number():
    assert SCHEMA.coerce({"count": True})["count"] == 0
    assert SCHEMA.coerce({"ratio": False})["ratio"] == 1.5


def test_int_accepted_for_float_field():
    result = SCHEMA.coerce({"ratio": 2})
    assert result["ratio"] == 2.0
    assert isinstance(result["ratio"], float)


def test_integral_float_accepted_for_int_field():
    result = SCHEMA.coerce({"count": 40.0})
    assert result["count"] == 40
    assert isinstance(result["count"], int)


def test_fractional_float_rejected_for_int_field():
    assert SCHEMA.coerce({"count": 40.5})["count"] == 0


def test_non_finite_numbers_rejected():
    assert SCHEMA.coerce({"ratio": math.nan})["ratio"] == 1.5
    assert SCHEMA.coerce({"ratio": math.inf})["ratio"] == 1.5


def test_out_of_range_values_are_clamped():
    assert SCHEMA.coerce({"count": 250})["count"] == 100
    assert SCHEMA.coerce({"count": -3})["count"] == 0


def test_strings_are_trimmed_and_blank_rejected():
    assert SCHEMA.coerce({"label": "  metal  "})["label"] == "metal"
    assert SCHEMA.coerce({"label": "   "})["label"] == "none"


def test_non_mapping_payload_yields_defaults():
    assert SCHEMA.coerce(["count", 5]).values == SCHEMA.defaults()
    assert SCHEMA.coerce(None).values == SCHEMA.defaults()


def test_roof_schema_wrapped_suitability_score():
    result = ROOF_ANALYSIS_SCHEMA.coerce({"suitabilityScore": [85]})
    assert result["suitabilityScore"] == 85
    assert isinstance(result["suitabilityScore"], int)


def test_roof_schema_defaults():
    result = ROOF_ANALYSIS_SCHEMA.coerce({})
    assert result["usableAreaM2"] == 40.0
    assert result["shadingPct"] == 15.0
    assert result["suitabilityScore"] == 70
    assert result["optimalDirection"] == "South"


def test_roof_schema_shading_clamped_to_percent():
    result = ROOF_ANALYSIS_SCHEMA.coerce({"shading_pct": 140})
    assert result["shadingPct"] == 100.0


def test_address_components():
    components = parse_address_components("1600 Amphitheatre Pkwy, Mountain View, CA 94043")
    assert components.street == "1600 Amphitheatre Pkwy"
    assert components.city == "Mountain View"
    assert components.state == "CA"
    assert components.zip_code == "94043"


@pytest.mark.parametrize("address, state", [
    ("123 Peachtree St NE, Atlanta", None),
    ("123 Peachtree St NE, Atlanta, GA 30303", "GA"),
    ("400 Broad St SW, Lincoln NE 68508", "NE"),
    ("1 Main St, Springfield, IL, USA", "IL"),
    ("1 Main St, Springfield, ZZ 62704", None),
])
def test_state_comes_from_the_final_part_only(address, state):
    assert parse_address_components(address).state == state


def test_directional_stays_on_the_street():
    components = parse_address_components("123 Peachtree St NE, Atlanta, GA 30303")
    assert components.street == "123 Peachtree St NE"
    assert components.city == "Atlanta"
