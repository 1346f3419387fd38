"""
Request parameter parsing.

Turns a flat query string into the nested parameter map the query pipeline
consumes. Bracket keys nest (``price[gte]=100`` becomes
``{"price": {"gte": "100"}}``) and repeated keys collect into lists. Values
stay strings; casting them to field types is the persistence adapter's job.
"""

import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

_BRACKET_KEY = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])+)$")
_SEGMENT = re.compile(r"\[([^\[\]]*)\]")


def _split_key(key: str) -> List[str]:
    match = _BRACKET_KEY.match(key)
    if not match:
        return [key]
    return [match.group(1)] + [seg for seg in _SEGMENT.findall(match.group(2))]


def _assign(target: Dict[str, Any], path: List[str], value: str) -> None:
    node = target
    for segment in path[:-1]:
        child = node.get(segment)
        if not isinstance(child, dict):
            # A nested form wins over a scalar given for the same key
            child = {}
            node[segment] = child
        node = child

    leaf = path[-1]
    if leaf == "":
        # ``tags[]=a`` appends to the parent list
        leaf = "__list__"
    current = node.get(leaf)
    if isinstance(current, dict):
        return
    if current is None:
        node[leaf] = value
    elif isinstance(current, list):
        current.append(value)
    else:
        node[leaf] = [current, value]


def _collapse_lists(node: Any) -> Any:
    if not isinstance(node, dict):
        return node
    if set(node) == {"__list__"}:
        values = node["__list__"]
        return values if isinstance(values, list) else [values]
    return {key: _collapse_lists(value) for key, value in node.items()}


def parse_query_params(items: Iterable[Tuple[str, str]]) -> Dict[str, Any]:
    """
    Build a nested parameter map from query string pairs.

    Args:
        items: ``(key, value)`` pairs, e.g. ``request.query_params.multi_items()``

    Returns:
        Nested dict of string values, lists for repeated keys

    Examples:
        >>> parse_query_params([("price[gte]", "100"), ("sort", "-price")])
        {'price': {'gte': '100'}, 'sort': '-price'}
        >>> parse_query_params([("difficulty", "easy"), ("difficulty", "hard")])
        {'difficulty': ['easy', 'hard']}
    """
    params: Dict[str, Any] = {}
    for key, value in items:
        if not key:
            continue
        _assign(params, _split_key(key), value)
    return _collapse_lists(params)


def to_positive_int(value: Any, default: int) -> int:
    """
    Coerce a raw parameter to a positive integer.

    A list (repeated key) uses its last element. Anything that is not a
    positive whole number resolves to ``default``; this function never raises.
    """
    if isinstance(value, list):
        value = value[-1] if value else None
    if value is None or isinstance(value, (bool, dict)):
        return default

    try:
        number = float(str(value).strip())
    except ValueError:
        return default

    if number != number or number in (float("inf"), float("-inf")):
        return default
    if not number.is_integer() or number < 1:
        return default
    return int(number)


def as_csv(value: Any) -> Optional[str]:
    """
    Normalize a ``sort`` or ``fields`` parameter to a comma separated string.

    Repeated keys are joined with commas. Values of any other shape
    (nested maps) are ignored and yield None.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return ",".join(value)
    return None
