"""Positional argument layouts for crop commands.

This module turns flat string argument lists into typed store inputs.
It accepts the fixed-position crop layouts and generic JSON forms.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import math
import re
from typing import Any, Mapping, Sequence

from core.errors import InvalidArgumentError

CROP_FLAG_NAMES = ("irrigation", "fertilizer_addition", "apply_pesticide", "harvesting")
CROP_CREATE_ARG_COUNT = 20
CROP_UPDATE_ARG_COUNT = 16
TRUE_LITERALS = ("1", "t", "T", "TRUE", "true", "True")
FALSE_LITERALS = ("0", "f", "F", "FALSE", "false", "False")
_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class CreateArguments:
    """Parsed create command input."""

    name: str
    owner: str
    attributes: Mapping[str, Any]
    flags: Mapping[str, bool] = field(default_factory=dict)


@dataclass(frozen=True)
class UpdateArguments:
    """Parsed update command input.

    Attributes:
        name: Record name.
        attributes: Replacement or partial attributes.
        flags: Flag values to change.
        merge: Whether attributes are merged over stored ones.
    """

    name: str
    attributes: Mapping[str, Any]
    flags: Mapping[str, bool] = field(default_factory=dict)
    merge: bool = False


def parse_create_args(args: Sequence[str]) -> CreateArguments:
    """Parse create arguments.

    Accepted forms: ``name owner attributesJSON [flagsJSON]`` or the
    20-position crop layout.

    Raises:
        InvalidArgumentError: If argument count or values are invalid.
    """
    if len(args) == CROP_CREATE_ARG_COUNT:
        return _parse_crop_create(args)
    if len(args) in (3, 4):
        flags = parse_flags_json(args[3]) if len(args) == 4 else {}
        return CreateArguments(
            name=args[0],
            owner=args[1],
            attributes=parse_json_object(args[2], "attributes"),
            flags=flags,
        )
    raise InvalidArgumentError(
        f"Incorrect number of arguments for create. Expecting 3, 4 or "
        f"{CROP_CREATE_ARG_COUNT}, got {len(args)}.",
        operation="create",
    )


def parse_update_args(args: Sequence[str]) -> UpdateArguments:
    """Parse update arguments.

    Accepted forms: ``name attributesJSON [flagsJSON]`` or the
    16-position crop layout, whose readings are merged over the stored
    quantity and farm information.

    Raises:
        InvalidArgumentError: If argument count or values are invalid.
    """
    if len(args) == CROP_UPDATE_ARG_COUNT:
        return UpdateArguments(name=args[0], attributes=_crop_readings(args), merge=True)
    if len(args) in (2, 3):
        flags = parse_flags_json(args[2]) if len(args) == 3 else {}
        return UpdateArguments(
            name=args[0],
            attributes=parse_json_object(args[1], "attributes"),
            flags=flags,
        )
    raise InvalidArgumentError(
        f"Incorrect number of arguments for update. Expecting 2, 3 or "
        f"{CROP_UPDATE_ARG_COUNT}, got {len(args)}.",
        operation="update",
    )


def parse_bool(raw_value: str, field_name: str) -> bool:
    """Parse a boolean literal such as ``true`` or ``0``.

    Raises:
        InvalidArgumentError: If the literal is not recognized.
    """
    if raw_value in TRUE_LITERALS:
        return True
    if raw_value in FALSE_LITERALS:
        return False
    raise InvalidArgumentError(
        f"Unable to parse boolean for {field_name}: '{raw_value}'. Use true or false."
    )


def parse_int(raw_value: str, field_name: str) -> int:
    """Parse a base-10 integer.

    Raises:
        InvalidArgumentError: If the text is not an integer.
    """
    if not _INTEGER_PATTERN.fullmatch(raw_value):
        raise InvalidArgumentError(
            f"Unable to parse integer for {field_name}: '{raw_value}'."
        )
    return int(raw_value)


def parse_float(raw_value: str, field_name: str) -> float:
    """Parse a finite floating-point number.

    Raises:
        InvalidArgumentError: If the text is not a finite number.
    """
    try:
        value = float(raw_value)
    except ValueError as error:
        raise InvalidArgumentError(
            f"Unable to parse number for {field_name}: '{raw_value}'."
        ) from error
    if not math.isfinite(value):
        raise InvalidArgumentError(
            f"Number for {field_name} must be finite, got '{raw_value}'."
        )
    return value


def parse_json_object(raw_value: str, field_name: str) -> dict[str, Any]:
    """Parse a JSON object argument.

    Raises:
        InvalidArgumentError: If the text is not a JSON object.
    """
    try:
        payload = json.loads(raw_value)
    except json.JSONDecodeError as error:
        raise InvalidArgumentError(
            f"Argument {field_name} is not valid JSON: {error.msg}."
        ) from error
    if not isinstance(payload, dict):
        raise InvalidArgumentError(f"Argument {field_name} must be a JSON object.")
    return payload


def parse_flags_json(raw_value: str) -> dict[str, bool]:
    """Parse a JSON object of boolean flags.

    Raises:
        InvalidArgumentError: If any flag value is not a boolean.
    """
    flags = parse_json_object(raw_value, "flags")
    for flag_name, value in flags.items():
        if not isinstance(value, bool):
            raise InvalidArgumentError(
                f"Flag '{flag_name}' must be true or false, got {value!r}."
            )
    return flags


def _parse_crop_create(args: Sequence[str]) -> CreateArguments:
    attributes: dict[str, Any] = {
        "quantity": parse_int(args[2], "quantity"),
        "farm_info": {
            "geo_location": {
                "latitude": parse_float(args[3], "latitude"),
                "longitude": parse_float(args[4], "longitude"),
            },
            "soil_type": args[5].lower(),
        },
    }
    attributes.update(_crop_readings(args))
    flags = {
        flag_name: parse_bool(raw_value, flag_name)
        for flag_name, raw_value in zip(CROP_FLAG_NAMES, args[16:20])
    }
    return CreateArguments(name=args[0], owner=args[1], attributes=attributes, flags=flags)


def _crop_readings(args: Sequence[str]) -> dict[str, Any]:
    """Parse the weather, soil, image, and cghc positions 6 to 15."""
    return {
        "weather": {
            "temperature": {"celcius": parse_float(args[6], "temperature")},
            "pressure": {"pascal": parse_float(args[7], "pressure")},
            "humidity": {"cubic_meter": parse_float(args[8], "humidity")},
            "radiation": {"rem": parse_float(args[9], "radiation")},
        },
        "soil_condition": {
            "moisture": {"cubic_meter": parse_float(args[10], "moisture")},
            "ph": parse_int(args[11], "ph"),
            "nitrogen": {"percentage": parse_float(args[12], "nitrogen")},
            "phosphorus": {"percentage": parse_float(args[13], "phosphorus")},
        },
        "image": args[14],
        "cghc": parse_int(args[15], "cghc"),
    }
