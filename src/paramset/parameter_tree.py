"""
Dynamic value tree with dotted-path addressing.

A ParameterTree maps string keys to nodes. A node is either a Castable leaf or
a nested ParameterTree. There is no null node: a missing value is a missing
key, and deleting removes the key.

Paths are separator-joined segments ("camera.exposure.auto"). A path with an
empty segment (leading, trailing or doubled separator, or the empty string)
is malformed: reads return None and writes are no-ops.

Writes autocreate intermediate trees. A write whose path runs through an
existing leaf is rejected, so a scalar is never replaced by a sub-tree
through path assignment.
"""

from collections.abc import Mapping, MutableMapping
from typing import Any, Dict, Iterator, List, Optional, Union
import logging

from paramset.castable import Castable
from paramset.config import get_config

logger = logging.getLogger(__name__)

Node = Union[Castable, 'ParameterTree']


def split_path(path: Any) -> Optional[List[str]]:
    """Split a path into segments, None if the path is malformed."""
    if not isinstance(path, str) or not path:
        return None
    segments = path.split(get_config().path_separator)
    if any(segment == "" for segment in segments):
        return None
    return segments


def join_path(*segments: str) -> str:
    """Join non-empty segments with the configured separator."""
    return get_config().path_separator.join(segment for segment in segments if segment)


def to_node(value: Any) -> Optional[Node]:
    """Convert a native value, mapping or node into a tree node.

    Returns None for values that cannot live in a tree (None, arbitrary objects).
    """
    if isinstance(value, (Castable, ParameterTree)):
        return value
    if isinstance(value, Mapping):
        return ParameterTree.from_mapping(value)
    return Castable.of(value)


class ParameterTree(MutableMapping):
    """Recursive mapping from string keys to Castable leaves or sub-trees.

    Direct children are reached with the mapping protocol (tree["key"]);
    nested values with the path methods (tree.get_path("a.b.c")).
    """

    def __init__(self, items: Optional[Mapping] = None):
        self._items: Dict[str, Node] = {}
        if items:
            for key, value in items.items():
                self[key] = value

    @classmethod
    def from_mapping(cls, mapping: Mapping) -> 'ParameterTree':
        """Build a tree from a nested mapping of native values.

        None values and entries with invalid keys or uncastable values are
        skipped. Nested ParameterTrees are copied, never shared.
        """
        tree = cls()
        separator = get_config().path_separator
        for key, value in mapping.items():
            if not isinstance(key, str) or not key or separator in key:
                logger.debug(f"Skipping invalid key {key!r}")
                continue
            if value is None:
                continue
            node = value.copy() if isinstance(value, ParameterTree) else to_node(value)
            if node is None:
                logger.debug(f"Skipping key {key!r}: {type(value).__name__} is not castable")
                continue
            tree._items[key] = node
        return tree

    # ==================== MAPPING PROTOCOL ====================

    def __getitem__(self, key: str) -> Node:
        return self._items[key]

    def __setitem__(self, key: str, value: Any) -> None:
        separator = get_config().path_separator
        if not isinstance(key, str) or not key or separator in key:
            raise KeyError(f"Invalid tree key {key!r}; use set_path() for nested values")
        node = to_node(value)
        if node is None:
            raise TypeError(f"{type(value).__name__} value for {key!r} is not castable")
        self._items[key] = node

    def __delitem__(self, key: str) -> None:
        del self._items[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: Any) -> bool:
        """Exact structural equality; leaves compare without casting."""
        if not isinstance(other, ParameterTree):
            return NotImplemented
        return self._items == other._items

    __hash__ = None

    def __repr__(self) -> str:
        return f"ParameterTree({self._items!r})"

    # ==================== PATH OPERATIONS ====================

    def path_exists(self, path: str) -> bool:
        """Check if path addresses an existing node of any kind."""
        return self.get_path(path) is not None

    def get_path(self, path: str) -> Optional[Node]:
        """Get the node at path, None if absent or the path is malformed."""
        segments = split_path(path)
        if segments is None:
            return None
        node: Node = self
        for segment in segments:
            if not isinstance(node, ParameterTree):
                return None
            node = node._items.get(segment)
            if node is None:
                return None
        return node

    def set_path(self, path: str, value: Any) -> bool:
        """Store value at path, creating intermediate trees as needed.

        The node is stored as given (ownership passes to the tree). An
        existing node at the final segment is replaced whatever its kind.

        Returns:
            False if the path is malformed, the value is not castable, or an
            intermediate segment holds a leaf.
        """
        segments = split_path(path)
        node = to_node(value)
        if segments is None or node is None:
            logger.debug(f"Rejected write to {path!r}")
            return False
        return self._set_segments(segments, node)

    def _set_segments(self, segments: List[str], node: Node) -> bool:
        head = segments[0]
        if len(segments) == 1:
            self._items[head] = node
            return True

        child = self._items.get(head)
        if child is None:
            subtree = ParameterTree()
            subtree._set_segments(segments[1:], node)
            self._items[head] = subtree
            return True
        if isinstance(child, ParameterTree):
            return child._set_segments(segments[1:], node)

        logger.debug(f"Type collision at {head!r}: {child.kind.name} leaf is not a tree")
        return False

    def delete_path(self, path: str) -> bool:
        """Remove the node at path. Returns False if nothing was removed."""
        segments = split_path(path)
        if segments is None:
            return False
        parent = self.get_path(join_path(*segments[:-1])) if len(segments) > 1 else self
        if not isinstance(parent, ParameterTree) or segments[-1] not in parent._items:
            return False
        del parent._items[segments[-1]]
        return True

    # ==================== COPY / CONVERSION ====================

    def copy(self) -> 'ParameterTree':
        """Deep copy. Leaves are immutable and shared; trees are duplicated."""
        duplicate = ParameterTree()
        for key, node in self._items.items():
            duplicate._items[key] = node.copy() if isinstance(node, ParameterTree) else node
        return duplicate

    def __copy__(self) -> 'ParameterTree':
        return self.copy()

    def __deepcopy__(self, memo: dict) -> 'ParameterTree':
        return self.copy()

    def merge(self, other: 'ParameterTree') -> None:
        """Overwrite top-level keys with copies of other's nodes."""
        for key, node in other._items.items():
            self._items[key] = node.copy() if isinstance(node, ParameterTree) else node

    def to_native(self) -> Dict[str, Any]:
        """Nested dict of plain Python values."""
        return {
            key: node.to_native() if isinstance(node, ParameterTree) else node.native()
            for key, node in self._items.items()
        }

    def leaf_paths(self, prefix: str = '') -> Iterator[str]:
        """Yield the dotted path of every leaf, depth first."""
        for key, node in self._items.items():
            path = join_path(prefix, key)
            if isinstance(node, ParameterTree):
                yield from node.leaf_paths(path)
            else:
                yield path

    def flatten(self) -> Dict[str, Castable]:
        """Map every leaf's dotted path to its Castable."""
        return {path: self.get_path(path) for path in self.leaf_paths()}
