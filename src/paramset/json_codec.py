"""
JSON boundary for parameter trees.

The standard library json module does the text work; this module maps
between its plain values and ParameterTree nodes.

Encoding: leaves render as their JSON-ready form (enum aliases when defined
and enabled in config, single-precision floats in their shortest readable
form), sub-trees as nested objects.

Decoding: bool -> BOOL, int -> INT, float -> DOUBLE, str -> STRING,
object -> sub-tree, array -> ARRAY. null members are dropped, as are null
and object elements inside arrays, so a tree never holds a null.
"""

from typing import Any, Dict, List, Optional
import json
import logging

from paramset.castable import ARRAY, Castable
from paramset.config import get_config
from paramset.parameter_tree import ParameterTree

logger = logging.getLogger(__name__)


class JSONParseError(ValueError):
    """Raised when text is not a JSON object that can become a ParameterTree."""


def tree_to_json_object(tree: ParameterTree, enum_as_alias: Optional[bool] = None) -> Dict[str, Any]:
    """Convert a tree to nested dicts of JSON-ready values."""
    if enum_as_alias is None:
        enum_as_alias = get_config().enum_as_alias
    result: Dict[str, Any] = {}
    for key, node in tree.items():
        if isinstance(node, ParameterTree):
            result[key] = tree_to_json_object(node, enum_as_alias)
        else:
            result[key] = node.kind.to_json(node.value, enum_as_alias)
    return result


def dumps_tree(tree: ParameterTree) -> str:
    """Encode a tree as JSON text.

    Raises:
        ValueError: for values JSON cannot represent (NaN, infinities)
    """
    config = get_config()
    return json.dumps(
        tree_to_json_object(tree),
        indent=config.json_indent,
        sort_keys=config.json_sort_keys,
        allow_nan=False,
    )


def _array_elements(values: List[Any], path: str) -> List[Castable]:
    elements: List[Castable] = []
    for index, value in enumerate(values):
        if value is None or isinstance(value, dict):
            logger.debug(f"Dropping {type(value).__name__} element {path}[{index}]")
            continue
        if isinstance(value, list):
            elements.append(Castable(ARRAY, tuple(_array_elements(value, f"{path}[{index}]"))))
        else:
            elements.append(Castable.of(value))
    return elements


def json_object_to_tree(data: Dict[str, Any], path: str = '') -> ParameterTree:
    """Convert a decoded JSON object into a ParameterTree."""
    tree = ParameterTree()
    separator = get_config().path_separator
    for key, value in data.items():
        member_path = f"{path}{separator}{key}" if path else key
        if value is None:
            logger.debug(f"Dropping null member {member_path!r}")
            continue
        if not key or separator in key:
            logger.debug(f"Dropping member with unaddressable key {member_path!r}")
            continue
        if isinstance(value, dict):
            tree[key] = json_object_to_tree(value, member_path)
        elif isinstance(value, list):
            tree[key] = Castable(ARRAY, tuple(_array_elements(value, member_path)))
        else:
            tree[key] = value
    return tree


def loads_tree(text: str) -> ParameterTree:
    """Decode JSON text into a ParameterTree.

    Raises:
        JSONParseError: if text is not valid JSON, its top level is not an
            object, or it is nested too deeply to decode
    """
    try:
        data = json.loads(text)
    except RecursionError as exc:
        raise JSONParseError("JSON document is nested too deeply") from exc
    except (TypeError, ValueError) as exc:
        raise JSONParseError(f"Invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise JSONParseError(f"Expected a JSON object at top level, got {type(data).__name__}")
    try:
        return json_object_to_tree(data)
    except RecursionError as exc:
        raise JSONParseError("JSON document is nested too deeply") from exc
