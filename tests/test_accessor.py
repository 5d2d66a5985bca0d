"""Tests for typed reads and cast-to-existing-type writes."""
import pytest

from paramset import (
    BOOL,
    DOUBLE,
    INT,
    STRING,
    Castable,
    ParameterTree,
    read_value,
    reconcile,
    write_value,
)


@pytest.fixture
def tree():
    """Provide the sample scalar tree."""
    return ParameterTree.from_mapping({"a": 100, "b": 2.5, "s": "222", "sx": "Test"})


class TestReadValue:
    """read_value."""

    @pytest.mark.parametrize("path,expected", [
        ("a", 100),
        ("b", 2),
        ("s", 222),
        ("sx", 10),
    ])
    def test_int_reads_with_default(self, tree, path, expected):
        """Test reading mixed values as ints with a caller default."""
        assert read_value(tree, path, INT, default=10).value == expected

    def test_missing_path_uses_default(self, tree):
        """Test the caller default and the kind default for missing paths."""
        assert read_value(tree, "missing", INT, default=7) == INT(7)
        assert read_value(tree, "missing", INT) == INT.default
        assert read_value(tree, "a..b", STRING) == STRING.default

    def test_same_kind_is_returned_unchanged(self, tree):
        """Test that a stored value of the requested kind is returned as is."""
        assert read_value(tree, "a", INT) is tree["a"]

    def test_python_types_as_kinds(self, tree):
        """Test that Python types select the destination kind."""
        assert read_value(tree, "a", float) == DOUBLE(100.0)
        assert read_value(tree, "a", str) == STRING("100")

    def test_subtree_reads_as_default(self):
        """Test that a sub-tree is not a value of any scalar kind."""
        tree = ParameterTree.from_mapping({"sub": {"x": 1}})
        assert read_value(tree, "sub", INT, default=3) == INT(3)


class TestWriteValue:
    """write_value."""

    def test_new_path_adopts_kind_of_first_value(self, tree):
        """Test that a new element keeps the kind it was created with."""
        assert write_value(tree, "c", 300.0)
        assert tree["c"].kind is DOUBLE
        assert write_value(tree, "c", 10)
        assert tree["c"] == Castable(DOUBLE, 10.0)
        assert read_value(tree, "c", DOUBLE, default=0.0).value == 10.0

    def test_existing_kind_wins(self, tree):
        """Test that writes are cast into the existing element's kind."""
        assert write_value(tree, "a", 2.5)
        assert tree["a"] == INT(2)
        assert write_value(tree, "s", 5)
        assert tree["s"] == STRING("5")

    def test_uncastable_write_is_rejected(self, tree):
        """Test that values the existing kind refuses leave it untouched."""
        assert not write_value(tree, "a", "abc")
        assert tree["a"] == INT(100)
        tree["flag"] = True
        assert not write_value(tree, "flag", 2.5)
        assert tree["flag"] == BOOL(True)

    def test_write_through_leaf_is_rejected(self, tree):
        """Test that a path through a leaf is a type collision."""
        assert not write_value(tree, "a.b", 1)
        assert tree["a"] == INT(100)

    def test_write_autocreates(self):
        """Test that missing intermediate trees are created."""
        tree = ParameterTree()
        assert write_value(tree, "x.y", "deep")
        assert tree.get_path("x.y") == STRING("deep")

    def test_uncastable_value_is_rejected(self, tree):
        """Test that values without a kind are rejected."""
        assert not write_value(tree, "new", object())
        assert "new" not in tree

    def test_mapping_over_subtree_is_reconciled(self):
        """Test that a mapping written over a sub-tree casts key by key."""
        tree = ParameterTree.from_mapping({"cam": {"exp": 100, "gain": 1.5}})
        old = tree["cam"]
        assert write_value(tree, "cam", {"exp": "250", "new": 1})
        assert tree.get_path("cam.exp") == INT(250)
        assert tree.get_path("cam.gain") == DOUBLE(1.5)
        assert tree.get_path("cam.new") == INT(1)
        # the replaced sub-tree is not mutated
        assert old.get_path("exp") == INT(100)

    def test_shape_mismatch_is_rejected(self):
        """Test that scalars and sub-trees do not overwrite each other."""
        tree = ParameterTree.from_mapping({"cam": {"exp": 100}, "a": 1})
        assert not write_value(tree, "cam", 5)
        assert not write_value(tree, "a", {"x": 1})
        assert tree.get_path("cam.exp") == INT(100)
        assert tree["a"] == INT(1)


class TestReconcile:
    """reconcile."""

    def test_allowed_keys_only(self):
        """Test that keys missing from the allowed tree are skipped."""
        destination = ParameterTree.from_mapping({"a": 1, "sub": {"x": 1.5}})
        allowed = destination.copy()
        source = ParameterTree.from_mapping({"a": "7", "sub": {"x": 2, "y": 3}, "z": 9})

        written = reconcile(destination, source, allowed)

        assert written == {"a", "sub.x"}
        assert destination["a"] == INT(7)
        assert destination.get_path("sub.x") == DOUBLE(2.0)
        assert not destination.path_exists("sub.y")
        assert "z" not in destination

    def test_missing_key_recreated_with_allowed_kind(self):
        """Test that a key absent from destination takes its kind from allowed."""
        destination = ParameterTree.from_mapping({"a": 1})
        allowed = ParameterTree.from_mapping({"a": 1, "b": True, "sub": {"x": 1}})
        source = ParameterTree.from_mapping({"b": "false", "sub": {"x": 2.9}})

        written = reconcile(destination, source, allowed)

        assert written == {"b", "sub.x"}
        assert destination["b"] == BOOL(False)
        assert destination.get_path("sub.x") == INT(2)

    def test_without_allowed_keys_are_created_freely(self):
        """Test that missing keys are copied as given when nothing is allow-listed."""
        destination = ParameterTree.from_mapping({"a": 1})
        source = ParameterTree.from_mapping({"a": 2.2, "new": {"x": "y"}})

        written = reconcile(destination, source)

        assert written == {"a", "new.x"}
        assert destination["a"] == INT(2)
        assert destination.get_path("new.x") == STRING("y")
        assert destination["new"] is not source["new"]

    def test_recreated_subtree_attached_only_when_filled(self):
        """Test that an allowed sub-tree is not created when none of its values fit."""
        destination = ParameterTree.from_mapping({"a": 1})
        allowed = ParameterTree.from_mapping({"a": 1, "sub": {"x": 1, "inner": {"y": 1}}})
        source = ParameterTree.from_mapping({"sub": {"z": 2, "x": "abc", "inner": {"w": 1}}})

        assert reconcile(destination, source, allowed) == set()
        assert "sub" not in destination

    def test_uncastable_values_are_skipped(self):
        """Test that values the existing kind refuses are skipped."""
        destination = ParameterTree.from_mapping({"a": 1, "sub": {"x": 1}})
        source = ParameterTree.from_mapping({"a": "abc", "sub": 4})

        assert reconcile(destination, source) == set()
        assert destination == ParameterTree.from_mapping({"a": 1, "sub": {"x": 1}})
