"""
Typed, history-tracked parameter store.

This framework provides lenient configuration storage where every value keeps
the kind it was created with, and every assignment is cast into that kind.

Key Features:
- Castable value kinds (bool, int, uint, float, double, string, array, enums)
  with total, table-driven casting
- Nested parameter trees addressed by dotted paths, with autocreation
- Cast-to-existing-type writes: a stored INT stays an INT
- Three generations per store (current, previous, initial) with
  reset / undo / apply
- JSON import and export with enum aliases

Quick Start:
    >>> from enum import IntEnum
    >>> from paramset import ParameterSet, castable_enum
    >>>
    >>> @castable_enum(aliases=["none", "solid", "dashed"])
    ... class DrawMode(IntEnum):
    ...     NONE = 0
    ...     SOLID = 1
    ...     DASHED = 2
    >>>
    >>> store = ParameterSet({"exposure": 100, "gain": 2.5, "mode": DrawMode.SOLID})
    >>> store.set("exposure", "250.7")
    True
    >>> store.get("exposure", int)
    250
    >>> store.load_json('{"mode": "dashed"}')
    True
    >>> store.get("mode", DrawMode)
    <DrawMode.DASHED: 2>
    >>> store.reset()

Modules:
    - castable: value kinds, Castable tagged values and enum registration
    - parameter_tree: nested ParameterTree with path operations
    - accessor: typed reads and cast-to-existing-type writes
    - parameter_set: ParameterSet with current / previous / initial history
    - snapshot_model: generations, per-path states and store snapshots
    - json_codec: JSON text boundary
    - config: framework configuration
"""

# Kinds
from paramset.castable import (
    CastableKind,
    PrimitiveKind,
    EnumKind,
    BOOL,
    INT,
    UINT,
    FLOAT,
    DOUBLE,
    STRING,
    ARRAY,
    PRIMITIVE_KINDS,
    Castable,
    castable_enum,
    register_enum_kind,
    get_enum_kind,
    unregister_enum_kind,
    resolve_kind,
    compare,
)

# Tree
from paramset.parameter_tree import (
    ParameterTree,
    split_path,
    join_path,
)

# Accessor
from paramset.accessor import (
    read_value,
    write_value,
    reconcile,
)

# Store
from paramset.parameter_set import ParameterSet

# History
from paramset.snapshot_model import (
    Generation,
    ParameterState,
    StoreSnapshot,
)

# JSON
from paramset.json_codec import (
    JSONParseError,
    dumps_tree,
    loads_tree,
)

# Configuration
from paramset.config import (
    ParamSetConfig,
    get_config,
    set_config,
    config_override,
)

__all__ = [
    # Kinds
    'CastableKind',
    'PrimitiveKind',
    'EnumKind',
    'BOOL',
    'INT',
    'UINT',
    'FLOAT',
    'DOUBLE',
    'STRING',
    'ARRAY',
    'PRIMITIVE_KINDS',
    'Castable',
    'castable_enum',
    'register_enum_kind',
    'get_enum_kind',
    'unregister_enum_kind',
    'resolve_kind',
    'compare',
    # Tree
    'ParameterTree',
    'split_path',
    'join_path',
    # Accessor
    'read_value',
    'write_value',
    'reconcile',
    # Store
    'ParameterSet',
    # History
    'Generation',
    'ParameterState',
    'StoreSnapshot',
    # JSON
    'JSONParseError',
    'dumps_tree',
    'loads_tree',
    # Configuration
    'ParamSetConfig',
    'get_config',
    'set_config',
    'config_override',
]

__version__ = '1.0.0'
__author__ = 'paramset contributors'
__description__ = 'Typed, history-tracked parameter store with cast-to-existing-type writes'
