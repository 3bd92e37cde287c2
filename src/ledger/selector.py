"""Selector query parsing and document matching.

This module evaluates CouchDB-style selector documents against JSON
values held by the bundled ledgers. The record store never calls it;
query text stays opaque above the backend boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import re
from typing import Any, Mapping

COMBINATOR_OPERATORS = ("$and", "$or", "$nor")
FIELD_OPERATORS = (
    "$eq",
    "$ne",
    "$gt",
    "$gte",
    "$lt",
    "$lte",
    "$in",
    "$nin",
    "$all",
    "$exists",
    "$regex",
    "$size",
    "$type",
    "$not",
)
JSON_TYPE_NAMES = ("null", "boolean", "number", "string", "array", "object")
_QUERY_KEYS = ("selector", "limit", "skip", "use_index")


class SelectorError(ValueError):
    """Raised for malformed query documents."""


@dataclass(frozen=True)
class SelectorQuery:
    """Parsed selector query.

    Attributes:
        selector: Field conditions every matching document satisfies.
        limit: Optional maximum number of rows returned.
        skip: Number of leading matches to drop.
    """

    selector: Mapping[str, Any]
    limit: int | None = None
    skip: int = 0


def parse_query(query_text: str) -> SelectorQuery:
    """Parse and validate a selector query document.

    Args:
        query_text: JSON text such as ``{"selector": {"owner": "alice"}}``.

    Returns:
        Validated selector query.

    Raises:
        SelectorError: If the document is malformed.
    """
    try:
        payload = json.loads(query_text)
    except json.JSONDecodeError as error:
        raise SelectorError(f"Query is not valid JSON: {error.msg}") from error
    if not isinstance(payload, dict):
        raise SelectorError("Query must be a JSON object with a 'selector' member.")
    unknown_keys = sorted(set(payload) - set(_QUERY_KEYS))
    if unknown_keys:
        raise SelectorError(f"Unsupported query members: {', '.join(unknown_keys)}.")
    selector = payload.get("selector")
    if not isinstance(selector, dict):
        raise SelectorError("Query member 'selector' must be a JSON object.")
    _validate_selector(selector)
    limit = payload.get("limit")
    if limit is not None and not _is_count(limit, minimum=1):
        raise SelectorError("Query member 'limit' must be a positive integer.")
    skip = payload.get("skip", 0)
    if not _is_count(skip, minimum=0):
        raise SelectorError("Query member 'skip' must be a non-negative integer.")
    return SelectorQuery(selector=selector, limit=limit, skip=skip)


def matches(document: Any, selector: Mapping[str, Any]) -> bool:
    """Return whether a JSON document satisfies a validated selector.

    Args:
        document: Decoded JSON value.
        selector: Selector mapping from a parsed query.

    Returns:
        True when every condition holds.
    """
    if not isinstance(document, dict):
        return False
    return all(_match_member(document, name, condition) for name, condition in selector.items())


def _match_member(document: dict[str, Any], name: str, condition: Any) -> bool:
    if name == "$and":
        return all(matches(document, item) for item in condition)
    if name == "$or":
        return any(matches(document, item) for item in condition)
    if name == "$nor":
        return not any(matches(document, item) for item in condition)
    if name == "$not":
        return not matches(document, condition)
    present, value = _resolve_path(document, name)
    return _match_condition(present, value, condition)


def _match_condition(present: bool, value: Any, condition: Any) -> bool:
    if _is_operator_map(condition):
        return all(
            _apply_operator(present, value, operator, argument)
            for operator, argument in condition.items()
        )
    if isinstance(condition, dict):
        return present and matches(value, condition)
    return present and _json_equal(value, condition)


def _apply_operator(present: bool, value: Any, operator: str, argument: Any) -> bool:
    if operator == "$exists":
        return present == argument
    if operator == "$not":
        return not _match_condition(present, value, argument)
    if not present:
        return False
    if operator == "$eq":
        return _json_equal(value, argument)
    if operator == "$ne":
        return not _json_equal(value, argument)
    if operator in ("$gt", "$gte", "$lt", "$lte"):
        return _compare(value, operator, argument)
    if operator == "$in":
        return any(_json_equal(value, item) for item in argument)
    if operator == "$nin":
        return not any(_json_equal(value, item) for item in argument)
    if operator == "$all":
        return isinstance(value, list) and all(
            any(_json_equal(element, item) for element in value) for item in argument
        )
    if operator == "$regex":
        return isinstance(value, str) and re.search(argument, value) is not None
    if operator == "$size":
        return isinstance(value, list) and len(value) == argument
    return _json_type(value) == argument


def _compare(value: Any, operator: str, argument: Any) -> bool:
    both_numbers = _is_number(value) and _is_number(argument)
    both_strings = isinstance(value, str) and isinstance(argument, str)
    if not (both_numbers or both_strings):
        return False
    if operator == "$gt":
        return value > argument
    if operator == "$gte":
        return value >= argument
    if operator == "$lt":
        return value < argument
    return value <= argument


def _resolve_path(document: dict[str, Any], path: str) -> tuple[bool, Any]:
    current: Any = document
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return False, None
        current = current[part]
    return True, current


def _validate_selector(selector: Mapping[str, Any]) -> None:
    for name, condition in selector.items():
        if name in COMBINATOR_OPERATORS:
            if not isinstance(condition, list) or not all(
                isinstance(item, dict) for item in condition
            ):
                raise SelectorError(f"Operator '{name}' expects a list of selectors.")
            for item in condition:
                _validate_selector(item)
        elif name == "$not":
            if not isinstance(condition, dict):
                raise SelectorError("Operator '$not' expects a selector object.")
            _validate_selector(condition)
        elif name.startswith("$"):
            raise SelectorError(f"Unknown selector operator '{name}'.")
        else:
            _validate_condition(name, condition)


def _validate_condition(field_name: str, condition: Any) -> None:
    if _is_operator_map(condition):
        for operator, argument in condition.items():
            _validate_operator(field_name, operator, argument)
    elif isinstance(condition, dict):
        _validate_selector(condition)


def _validate_operator(field_name: str, operator: str, argument: Any) -> None:
    if operator not in FIELD_OPERATORS:
        raise SelectorError(f"Unknown operator '{operator}' on field '{field_name}'.")
    if operator in ("$in", "$nin", "$all") and not isinstance(argument, list):
        raise SelectorError(f"Operator '{operator}' on '{field_name}' expects a list.")
    if operator == "$exists" and not isinstance(argument, bool):
        raise SelectorError(f"Operator '$exists' on '{field_name}' expects a boolean.")
    if operator == "$size" and not _is_count(argument, minimum=0):
        raise SelectorError(f"Operator '$size' on '{field_name}' expects a non-negative integer.")
    if operator == "$type" and argument not in JSON_TYPE_NAMES:
        raise SelectorError(
            f"Operator '$type' on '{field_name}' expects one of: {', '.join(JSON_TYPE_NAMES)}."
        )
    if operator == "$regex":
        if not isinstance(argument, str):
            raise SelectorError(f"Operator '$regex' on '{field_name}' expects a string.")
        try:
            re.compile(argument)
        except re.error as error:
            raise SelectorError(f"Invalid regex on '{field_name}': {error}") from error
    if operator == "$not":
        _validate_condition(field_name, argument)


def _is_operator_map(condition: Any) -> bool:
    return (
        isinstance(condition, dict)
        and bool(condition)
        and all(isinstance(name, str) and name.startswith("$") for name in condition)
    )


def _json_equal(left: Any, right: Any) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    return left == right


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_count(value: Any, minimum: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= minimum
