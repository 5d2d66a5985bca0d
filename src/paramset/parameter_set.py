"""
ParameterSet: history-tracked parameter store.

Holds three generations of a ParameterTree (current, previous, initial) and
routes every read and write through the typed accessor, so values keep the
kind they were created with:

    >>> store = ParameterSet({"a": 100, "b": 2.5, "s": "222", "sx": "Test"})
    >>> store.get("b", int, default=10)
    2
    >>> store.get("sx", int, default=10)
    10
    >>> store.set("a", 7.9)      # a stays an INT
    True
    >>> store.get("a", int)
    7
    >>> store.undo("a")
    >>> store.get("a", int)
    100

Assignment never creates parameters: use add_setting() (one path) or
merge_settings() (bulk). Malformed paths, uncastable values and type
collisions degrade to no-ops or defaults; only JSON parsing reports failure.

Thread safety: Not thread-safe. Guard a shared store with one external lock.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Union
import logging

from paramset.accessor import cast_into, read_value, reconcile, write_value
from paramset.castable import Castable, KindSpec, resolve_kind
from paramset.config import get_config
from paramset.json_codec import JSONParseError, dumps_tree, loads_tree
from paramset.parameter_tree import Node, ParameterTree, join_path, split_path, to_node
from paramset.snapshot_model import Generation, ParameterState, StoreSnapshot

logger = logging.getLogger(__name__)

ChangedCallback = Callable[[Set[str]], None]


def diff_leaf_paths(before: Optional[Node], after: Optional[Node], prefix: str = '') -> Set[str]:
    """Dotted leaf paths whose values differ between two nodes.

    Leaves present on one side only are included. Comparison is exact.
    """
    if isinstance(before, ParameterTree) and isinstance(after, ParameterTree):
        changed: Set[str] = set()
        for key in set(before) | set(after):
            changed |= diff_leaf_paths(before.get(key), after.get(key), join_path(prefix, key))
        return changed

    changed = set()
    for side in (before, after):
        if isinstance(side, ParameterTree):
            changed.update(side.leaf_paths(prefix))
        elif side is not None and prefix and before != after:
            changed.add(prefix)
    return changed


class ParameterSet:
    """Parameter store with current / previous / initial generations.

    Lifecycle:
    - Construction: all three generations are equal copies of the initial tree
    - set(): previous[path] <- current[path], then current[path] <- value
    - reset() / undo(): current <- initial / previous
    - apply(): previous <- current (commit pending changes as new baseline)
    - add_setting() / merge_settings() / delete_setting(): change all three

    Generations never share sub-trees; every copy between them is deep.
    """

    def __init__(self, initial: Optional[Union[ParameterTree, Mapping[str, Any]]] = None):
        """
        Initialize the store.

        Args:
            initial: ParameterTree or nested mapping of native values /
                     Castables. Copied; the caller keeps ownership.
        """
        if isinstance(initial, ParameterTree):
            tree = initial.copy()
        else:
            tree = ParameterTree.from_mapping(initial or {})

        self._trees: Dict[Generation, ParameterTree] = {
            Generation.CURRENT: tree,
            Generation.PREVIOUS: tree.copy(),
            Generation.INITIAL: tree.copy(),
        }

        # Callbacks receive the set of leaf paths whose current value changed
        self._on_changed_callbacks: List[ChangedCallback] = []

    @classmethod
    def from_json(cls, text: str) -> 'ParameterSet':
        """Create a store whose initial values come from JSON text.

        Raises:
            JSONParseError: if text is not a JSON object
        """
        return cls(loads_tree(text))

    # ==================== GENERATIONS ====================

    @property
    def current(self) -> ParameterTree:
        return self._trees[Generation.CURRENT]

    @property
    def previous(self) -> ParameterTree:
        return self._trees[Generation.PREVIOUS]

    @property
    def initial(self) -> ParameterTree:
        return self._trees[Generation.INITIAL]

    def tree(self, generation: Generation) -> ParameterTree:
        """Get the live tree of a generation."""
        return self._trees[generation]

    def get_node(self, path: str, generation: Generation = Generation.CURRENT) -> Optional[Node]:
        """Get the raw node at path. Sub-trees are returned as copies."""
        node = self._trees[generation].get_path(path)
        return node.copy() if isinstance(node, ParameterTree) else node

    def path_exists(self, path: str) -> bool:
        """Check if path exists in the current generation."""
        return self.current.path_exists(path)

    def __contains__(self, path: str) -> bool:
        return self.path_exists(path)

    # ==================== CALLBACKS ====================

    def on_changed(self, callback: ChangedCallback) -> None:
        """Subscribe to changes of current values."""
        if callback not in self._on_changed_callbacks:
            self._on_changed_callbacks.append(callback)

    def off_changed(self, callback: ChangedCallback) -> None:
        """Unsubscribe from changes of current values."""
        if callback in self._on_changed_callbacks:
            self._on_changed_callbacks.remove(callback)

    def _notify_changed(self, changed_paths: Set[str]) -> None:
        if not changed_paths:
            return
        logger.debug(f"Current values changed: {sorted(changed_paths)}")
        for callback in list(self._on_changed_callbacks):
            try:
                callback(set(changed_paths))
            except Exception as e:
                logger.warning(f"Error in changed callback: {e}")

    # ==================== READ / WRITE ====================

    def get(self, path: str, kind: KindSpec, default: Any = None) -> Any:
        """Return the value at path converted to kind.

        Falls back to the initial generation when current lacks the path
        (e.g. after delete_setting), and to default when neither has a
        castable value. Never fails for bad paths or data.

        Args:
            path: Dotted parameter path
            kind: Destination kind: CastableKind, bool/int/float/str/list or
                  a registered Enum class
            default: Value returned (cast into kind) when nothing castable is
                     stored. None means the kind's own default (0, "", ...).

        Raises:
            TypeError: if kind is not a castable kind
        """
        destination = resolve_kind(kind)
        source = self.current if self.current.path_exists(path) else self.initial
        return read_value(source, path, destination, default).native()

    def set(self, path: str, value: Any) -> bool:
        """Update a parameter, keeping the value it replaces in previous.

        The value is cast into the kind of the existing element. A path that
        was deleted but still exists in initial is reinstated in current and
        previous with the initial element's kind. Paths unknown to both
        current and initial are rejected; create them with add_setting().

        Returns:
            True if current was written.
        """
        before = self.current.get_path(path)
        if before is not None:
            # write_value replaces the node at path, so before keeps the old value
            if not write_value(self.current, path, value):
                return False
            self.previous.set_path(path, before)
            self._notify_changed(diff_leaf_paths(before, self.current.get_path(path), path))
            return True

        reference = self.initial.get_path(path)
        if reference is None:
            logger.debug(f"Rejected set({path!r}): unknown parameter, use add_setting()")
            return False

        reinstated = cast_into(reference, value)
        if reinstated is None or not self.current.set_path(path, reinstated):
            logger.debug(f"Rejected set({path!r}): value does not fit the initial parameter")
            return False
        self.previous.set_path(path, reinstated.copy() if isinstance(reinstated, ParameterTree) else reinstated)
        logger.debug(f"Reinstated deleted parameter {path!r}")
        self._notify_changed(diff_leaf_paths(None, reinstated, path))
        return True

    def __getitem__(self, path: str) -> Any:
        """Value at path in its stored kind (current, else initial).

        Raises:
            KeyError: if neither generation has path
        """
        node = self.current.get_path(path)
        if node is None:
            node = self.initial.get_path(path)
        if node is None:
            raise KeyError(path)
        return node.to_native() if isinstance(node, ParameterTree) else node.native()

    def __setitem__(self, path: str, value: Any) -> None:
        self.set(path, value)

    # ==================== STRUCTURE ====================

    def add_setting(self, path: str, value: Any) -> bool:
        """Create a new parameter with the same value in all generations.

        Args:
            path: Dotted path not present in initial. Missing intermediate
                  trees are created.
            value: Castable, native value, or nested mapping for a sub-tree

        Returns:
            False (nothing changed) if path already exists, is malformed,
            runs through an existing leaf, or value is not castable.
        """
        segments = split_path(path)
        node = to_node(value)
        if segments is None or node is None:
            logger.debug(f"Rejected add_setting({path!r})")
            return False
        if self.initial.path_exists(path):
            logger.debug(f"Rejected add_setting({path!r}): parameter exists")
            return False
        if not all(_can_create(tree, segments) for tree in self._trees.values()):
            logger.debug(f"Rejected add_setting({path!r}): path runs through a leaf")
            return False

        before = self.current.get_path(path)
        for tree in self._trees.values():
            tree.set_path(path, node.copy() if isinstance(node, ParameterTree) else node)
        self._notify_changed(diff_leaf_paths(before, node, path))
        return True

    def delete_setting(self, path: str) -> None:
        """Remove path from all generations. Missing paths are ignored."""
        before = self.current.get_path(path)
        for tree in self._trees.values():
            tree.delete_path(path)
        self._notify_changed(diff_leaf_paths(before, None, path))

    def merge_settings(self, settings: Union[ParameterTree, Mapping[str, Any]]) -> None:
        """Overwrite top-level keys in all generations, without casting.

        Bulk bootstrap counterpart of add_setting(): existing keys are
        replaced with the given values and their kinds.
        """
        incoming = settings if isinstance(settings, ParameterTree) else ParameterTree.from_mapping(settings)
        before = self.current.copy()
        for tree in self._trees.values():
            tree.merge(incoming)
        self._notify_changed(diff_leaf_paths(before, self.current))

    # ==================== HISTORY ====================

    def _copy_generation(self, source: Generation, destination: Generation, path: Optional[str]) -> None:
        source_tree = self._trees[source]
        if path is None:
            self._trees[destination] = source_tree.copy()
            return
        if split_path(path) is None:
            return
        node = source_tree.get_path(path)
        if node is None:
            self._trees[destination].delete_path(path)
        else:
            self._trees[destination].set_path(path, node.copy() if isinstance(node, ParameterTree) else node)

    def _copy_into_current(self, source: Generation, path: Optional[str]) -> None:
        before = self.current.get_path(path) if path is not None else self.current
        self._copy_generation(source, Generation.CURRENT, path)
        after = self.current.get_path(path) if path is not None else self.current
        self._notify_changed(diff_leaf_paths(before, after, path or ''))

    def reset(self, path: Optional[str] = None) -> None:
        """Set a parameter (or everything when path is None) to its initial value."""
        self._copy_into_current(Generation.INITIAL, path)

    def undo(self, path: Optional[str] = None) -> None:
        """Set a parameter (or everything when path is None) to its previous value."""
        self._copy_into_current(Generation.PREVIOUS, path)

    def apply(self, path: Optional[str] = None) -> None:
        """Commit current value(s) as the new previous baseline."""
        self._copy_generation(Generation.CURRENT, Generation.PREVIOUS, path)

    # ==================== STATE ====================

    def state_of(self, path: str) -> ParameterState:
        """History state of path."""
        current = self.current.get_path(path)
        initial = self.initial.get_path(path)
        if current is None:
            return ParameterState.DELETED if initial is not None else ParameterState.UNSET
        if current != self.previous.get_path(path):
            return ParameterState.PENDING
        if current != initial:
            return ParameterState.APPLIED
        return ParameterState.CLEAN

    def pending_paths(self) -> Set[str]:
        """Leaf paths where current differs from previous."""
        return diff_leaf_paths(self.previous, self.current)

    def modified_paths(self) -> Set[str]:
        """Leaf paths where current differs from initial."""
        return diff_leaf_paths(self.initial, self.current)

    @property
    def is_dirty(self) -> bool:
        """True while current holds changes not yet applied."""
        return self.current != self.previous

    # ==================== SNAPSHOTS ====================

    def snapshot(self, label: str = "") -> StoreSnapshot:
        """Capture all three generations."""
        return StoreSnapshot.create(self.current, self.previous, self.initial, label=label)

    def restore(self, snapshot: StoreSnapshot) -> None:
        """Replace all three generations with copies from snapshot."""
        before = self.current
        for generation in Generation:
            self._trees[generation] = snapshot.tree(generation).copy()
        logger.debug(f"Restored snapshot {snapshot.label or snapshot.id}")
        self._notify_changed(diff_leaf_paths(before, self.current))

    def flatten(self, generation: Generation = Generation.CURRENT) -> Dict[str, Any]:
        """Map every leaf path of a generation to its native value."""
        return {path: value.native() for path, value in self._trees[generation].flatten().items()}

    # ==================== JSON ====================

    def to_json(self) -> str:
        """Encode the current generation as JSON, "" if it cannot be encoded."""
        try:
            return dumps_tree(self.current)
        except (TypeError, ValueError) as e:
            logger.warning(f"Failed to encode parameters as JSON: {e}")
            return ""

    def load_json(self, text: str) -> bool:
        """Cast values from JSON text into the current generation.

        Current is first copied to previous, so undo() rolls the import back.
        Each value is cast into the kind of the existing element. Keys that
        are not part of initial are ignored unless the config disables
        ignore_unknown_json_keys.

        Returns:
            False, leaving the store unchanged, if text is not a JSON object.
        """
        try:
            incoming = loads_tree(text)
        except JSONParseError as e:
            logger.warning(f"Ignoring JSON parameters: {e}")
            return False

        before = self.current.copy()
        self._trees[Generation.PREVIOUS] = before.copy()
        allowed = self.initial if get_config().ignore_unknown_json_keys else None
        written = reconcile(self.current, incoming, allowed)
        logger.debug(f"Loaded {len(written)} parameter(s) from JSON")
        self._notify_changed(diff_leaf_paths(before, self.current))
        return True

    # ==================== COMPARISON ====================

    def __eq__(self, other: Any) -> bool:
        """Stores are equal when their current generations are equal."""
        if not isinstance(other, ParameterSet):
            return NotImplemented
        return self.current == other.current

    __hash__ = None

    def __repr__(self) -> str:
        return f"ParameterSet(current={self.current!r})"


def _can_create(tree: ParameterTree, segments: List[str]) -> bool:
    """True if no intermediate segment of the path is a leaf in tree."""
    node: Optional[Node] = tree
    for segment in segments[:-1]:
        node = node.get(segment)
        if node is None:
            return True
        if isinstance(node, Castable):
            return False
    return True
