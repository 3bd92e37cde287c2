"""Unit tests for crop command argument parsing."""

from __future__ import annotations

import pytest

from contract.crop_args import (
    parse_bool,
    parse_create_args,
    parse_float,
    parse_int,
    parse_update_args,
)
from core.errors import InvalidArgumentError
from tests.ledger_helpers import crop_create_args


def test_crop_create_layout_builds_structured_attributes() -> None:
    """The 20-position layout should map onto nested attributes."""
    parsed = parse_create_args(crop_create_args())

    assert parsed.name == "rice-lot-1"
    assert parsed.owner == "manil"
    assert parsed.attributes["quantity"] == 400
    assert parsed.attributes["farm_info"] == {
        "geo_location": {"latitude": 27.7172, "longitude": 85.324},
        "soil_type": "clay",
    }
    assert parsed.attributes["soil_condition"]["ph"] == 6
    assert parsed.attributes["weather"]["temperature"] == {"celcius": 24.5}
    assert parsed.flags == {
        "irrigation": False,
        "fertilizer_addition": False,
        "apply_pesticide": False,
        "harvesting": False,
    }


def test_crop_create_layout_rejects_non_integer_quantity() -> None:
    """Quantity must be an integer."""
    with pytest.raises(InvalidArgumentError):
        parse_create_args(crop_create_args(quantity="4.5"))


def test_generic_create_form_parses_json_arguments() -> None:
    """The JSON form should accept attributes and flags objects."""
    parsed = parse_create_args(["n1", "alice", '{"q": 1}', '{"harvesting": true}'])

    assert parsed.attributes == {"q": 1}
    assert parsed.flags == {"harvesting": True}


@pytest.mark.parametrize(
    "args",
    [
        ["n1", "alice"],
        ["n1", "alice", "[1, 2]"],
        ["n1", "alice", "{oops"],
        ["n1", "alice", "{}", '{"harvesting": "yes"}'],
    ],
)
def test_create_rejects_bad_arguments(args: list[str]) -> None:
    """Wrong counts and non-object JSON should be invalid arguments."""
    with pytest.raises(InvalidArgumentError):
        parse_create_args(args)


def test_crop_update_layout_merges_readings() -> None:
    """The 16-position layout should merge readings over stored attributes."""
    parsed = parse_update_args(crop_create_args()[:16])

    assert parsed.merge is True
    assert set(parsed.attributes) == {"weather", "soil_condition", "image", "cghc"}
    assert parsed.attributes["cghc"] == 3


def test_generic_update_form_replaces_attributes() -> None:
    """The JSON update form should not merge."""
    parsed = parse_update_args(["n1", '{"q": 2}'])

    assert parsed.merge is False
    assert parsed.attributes == {"q": 2}


@pytest.mark.parametrize("literal", ["1", "t", "T", "TRUE", "true", "True"])
def test_parse_bool_accepts_true_literals(literal: str) -> None:
    """Every accepted true literal should parse as True."""
    assert parse_bool(literal, "flag") is True


@pytest.mark.parametrize("literal", ["yes", "", "tRuE", "2"])
def test_parse_bool_rejects_other_text(literal: str) -> None:
    """Unrecognized literals should be rejected."""
    with pytest.raises(InvalidArgumentError):
        parse_bool(literal, "flag")


def test_parse_int_rejects_whitespace_and_decimals() -> None:
    """Integers must be plain base-10 digits with an optional sign."""
    assert parse_int("-12", "ph") == -12
    for raw_value in (" 1", "1.0", "0x1"):
        with pytest.raises(InvalidArgumentError):
            parse_int(raw_value, "ph")


def test_parse_float_rejects_non_finite_values() -> None:
    """NaN and infinity are not valid readings."""
    for raw_value in ("nan", "inf", "abc"):
        with pytest.raises(InvalidArgumentError):
            parse_float(raw_value, "temperature")
