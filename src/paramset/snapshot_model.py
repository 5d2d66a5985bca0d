"""
Generations, per-path states and whole-store snapshots.

A ParameterSet keeps three generations of its tree:

- CURRENT: live values
- PREVIOUS: one generation back, per path (the value before the last set)
- INITIAL: values at construction / add_setting time

StoreSnapshot captures all three at a point in time so a caller can roll a
store back as a whole, or export the state as JSON-friendly data.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional
import time
import uuid

from paramset.accessor import reconcile
from paramset.json_codec import json_object_to_tree, tree_to_json_object
from paramset.parameter_tree import ParameterTree


class Generation(Enum):
    """Selects one of the trees held by a ParameterSet."""
    CURRENT = 0
    PREVIOUS = 1
    INITIAL = 2


class ParameterState(Enum):
    """History state of a single path."""
    UNSET = "unset"        # absent from current and initial
    DELETED = "deleted"    # absent from current, still in initial
    CLEAN = "clean"        # current == previous == initial
    PENDING = "pending"    # current != previous
    APPLIED = "applied"    # current == previous, differs from initial


@dataclass(frozen=True)
class StoreSnapshot:
    """Immutable copy of the three generations of a ParameterSet.

    Trees are private copies; restore() copies them again so a snapshot can
    be restored any number of times.
    """
    id: str
    timestamp: float
    label: str
    current: ParameterTree
    previous: ParameterTree
    initial: ParameterTree

    @classmethod
    def create(cls, current: ParameterTree, previous: ParameterTree,
               initial: ParameterTree, label: str = "") -> 'StoreSnapshot':
        """Create a snapshot with auto-generated ID and timestamp."""
        return cls(
            id=str(uuid.uuid4()),
            timestamp=time.time(),
            label=label,
            current=current.copy(),
            previous=previous.copy(),
            initial=initial.copy(),
        )

    def tree(self, generation: Generation) -> ParameterTree:
        return {
            Generation.CURRENT: self.current,
            Generation.PREVIOUS: self.previous,
            Generation.INITIAL: self.initial,
        }[generation]

    def to_dict(self) -> Dict[str, Any]:
        """Export to JSON-serializable dict."""
        return {
            'id': self.id,
            'timestamp': self.timestamp,
            'label': self.label,
            'current': tree_to_json_object(self.current),
            'previous': tree_to_json_object(self.previous),
            'initial': tree_to_json_object(self.initial),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], schema: Optional[ParameterTree] = None) -> 'StoreSnapshot':
        """Import from dict (e.g., loaded from JSON).

        JSON loses the difference between kinds such as INT and UINT, or an
        enum and its alias string. Pass schema (typically a store's initial
        tree) to cast every generation back into the schema's kinds; keys the
        schema does not have are dropped and keys the data lacks keep the
        schema's values.
        """
        trees = {}
        for name in ('current', 'previous', 'initial'):
            decoded = json_object_to_tree(data.get(name, {}))
            if schema is not None:
                typed = schema.copy()
                reconcile(typed, decoded, allowed=schema)
                decoded = typed
            trees[name] = decoded
        return cls(
            id=data.get('id', str(uuid.uuid4())),
            timestamp=data.get('timestamp', time.time()),
            label=data.get('label', ''),
            **trees,
        )
