"""
Typed path access over a ParameterTree.

Reads resolve a path and coerce the stored leaf into a requested kind.
Writes follow the cast-to-existing-type policy:

- element exists: the new value is cast into the existing element's kind,
  or the write is rejected if that kind does not accept it
- element absent: the value is stored as given (intermediate trees are
  created) and its kind is fixed for later writes
- an intermediate segment holds a leaf: the write is rejected

Nothing here raises for bad data. Rejections are reported as False and
logged at DEBUG.
"""

from typing import Any, Optional, Set
import logging

from paramset.castable import Castable, CastableKind, KindSpec, resolve_kind
from paramset.parameter_tree import Node, ParameterTree, join_path, to_node

logger = logging.getLogger(__name__)


def _fallback(destination: CastableKind, default: Any) -> Castable:
    if default is None:
        return destination.default
    return destination.cast_from(default)


def read_value(tree: ParameterTree, path: str, kind: KindSpec, default: Any = None) -> Castable:
    """Read path from tree as kind.

    Args:
        tree: Tree to read from
        path: Dotted path
        kind: Destination kind (CastableKind, Python type or registered Enum class)
        default: Returned (cast into kind) when the path is absent or its value
                 is not castable. None means the kind's own default.

    Returns:
        A Castable of the destination kind.

    Raises:
        TypeError: if kind is not a castable kind
    """
    destination = resolve_kind(kind)
    node = tree.get_path(path)
    if node is None or isinstance(node, ParameterTree):
        return _fallback(destination, default)

    # Same kind, no coercion needed
    if node.kind is destination:
        return node

    if destination.is_castable_from(node):
        return destination.cast_from(node)

    logger.debug(f"{path!r}: {node.kind.name} value {node.value!r} is not castable to {destination.name}")
    return _fallback(destination, default)


def cast_into(existing: Node, value: Any) -> Optional[Node]:
    """Node that results from writing value over existing, None if rejected.

    existing is left untouched; sub-trees are merged into a copy.
    """
    node = to_node(value)
    if node is None:
        return None
    if isinstance(existing, ParameterTree):
        if not isinstance(node, ParameterTree):
            return None
        merged = existing.copy()
        reconcile(merged, node)
        return merged
    if isinstance(node, ParameterTree) or not existing.kind.is_castable_from(node):
        return None
    return existing.kind.cast_from(node)


def write_value(tree: ParameterTree, path: str, value: Any) -> bool:
    """Write value at path using the cast-to-existing-type policy.

    Mappings written over an existing sub-tree are reconciled into it key by
    key; keys missing from the sub-tree are created. The stored node is
    replaced, never mutated, so earlier references to it stay valid.

    Returns:
        True if the tree was written, False if the write was rejected.
    """
    node = to_node(value)
    if node is None:
        logger.debug(f"Rejected write to {path!r}: {type(value).__name__} is not castable")
        return False

    existing = tree.get_path(path)
    if existing is None:
        return tree.set_path(path, node.copy() if isinstance(node, ParameterTree) else node)

    updated = cast_into(existing, node)
    if updated is None:
        existing_name = "sub-tree" if isinstance(existing, ParameterTree) else existing.kind.name
        logger.debug(f"Rejected write to {path!r}: not castable to existing {existing_name}")
        return False
    return tree.set_path(path, updated)


def reconcile(destination: ParameterTree, source: ParameterTree,
              allowed: Optional[ParameterTree] = None, prefix: str = '') -> Set[str]:
    """Cast the values of source into destination, key by key.

    Existing leaves keep their kind; values they do not accept are skipped.
    Sub-trees are reconciled recursively.

    Args:
        destination: Tree updated in place
        source: Tree providing new values
        allowed: When given, only keys present here are touched, and keys
                 missing from destination are recreated with the kind they
                 have in allowed. When None, missing keys are copied as given.
        prefix: Path of destination, used for the returned paths

    Returns:
        Dotted paths of the leaves that were written.
    """
    written: Set[str] = set()
    for key, value in source.items():
        path = join_path(prefix, key)
        if allowed is not None and key not in allowed:
            logger.debug(f"Skipping {path!r}: not part of the allowed parameters")
            continue

        reference: Optional[Node] = allowed.get(key) if allowed is not None else None
        existing = destination.get(key)
        recreated = False

        if existing is None:
            created = _recreate_from_reference(reference, value, allowed is None)
            if created is None:
                logger.debug(f"Skipping {path!r}: no matching element to cast into")
                continue
            if not isinstance(created, ParameterTree):
                destination[key] = created
                written.add(path)
                continue
            if allowed is None:
                destination[key] = created
                written.update(join_path(path, leaf) for leaf in created.leaf_paths())
                continue
            # Empty tree recreated from the allowed shape, attached only if filled below
            existing = created
            recreated = True

        if isinstance(existing, ParameterTree):
            if isinstance(value, ParameterTree):
                child_allowed = reference if isinstance(reference, ParameterTree) else None
                if allowed is not None and child_allowed is None:
                    logger.debug(f"Skipping {path!r}: shape differs from allowed parameters")
                    continue
                child_written = reconcile(existing, value, child_allowed, path)
                if recreated and child_written:
                    destination[key] = existing
                written |= child_written
            else:
                logger.debug(f"Skipping {path!r}: cannot cast a {value.kind.name} into a sub-tree")
            continue

        if isinstance(value, ParameterTree):
            logger.debug(f"Skipping {path!r}: cannot cast a sub-tree into a {existing.kind.name}")
            continue
        if not existing.kind.is_castable_from(value):
            logger.debug(f"Skipping {path!r}: {value.kind.name} not castable to {existing.kind.name}")
            continue
        destination[key] = existing.kind.cast_from(value)
        written.add(path)
    return written


def _recreate_from_reference(reference: Optional[Node], value: Node, create_freely: bool) -> Optional[Node]:
    """Node to create for a key missing from the destination, or None to skip."""
    if create_freely:
        return value.copy() if isinstance(value, ParameterTree) else value
    if isinstance(reference, ParameterTree):
        return ParameterTree() if isinstance(value, ParameterTree) else None
    if isinstance(reference, Castable) and isinstance(value, Castable):
        if reference.kind.is_castable_from(value):
            return reference.kind.cast_from(value)
    return None
