"""Tests for file access checks"""

from filelabels.storage.access_gate import (
    AccessGate,
    FileResolver,
    InMemoryFileResolver,
    Permission,
)


class ExplodingResolver(FileResolver):
    """Resolver whose backend is down"""

    def get_nodes_by_id(self, user_id, file_id):
        raise OSError("storage backend unavailable")


def test_can_read_own_file(resolver):
    """Test reading a file the user owns"""
    gate = AccessGate(resolver, "alice")

    assert gate.current_user() == "alice"
    assert gate.can_read(1) is True
    assert gate.can_read(999) is False


def test_can_write_requires_update_permission(resolver):
    """Test write access needs the UPDATE bit"""
    assert AccessGate(resolver, "alice").can_write(1) is True
    assert AccessGate(resolver, "bob").can_read(1) is True
    assert AccessGate(resolver, "bob").can_write(1) is False


def test_can_write_through_any_path():
    """Test a writable path wins even when another path is read-only"""
    resolver = InMemoryFileResolver()
    resolver.add_node("carol", 7, "/carol/Shared/a.txt", permissions=Permission.READ)
    resolver.add_node("carol", 7, "/carol/Group/a.txt", permissions=Permission.READ | Permission.UPDATE)

    assert AccessGate(resolver, "carol").can_write(7) is True


def test_anonymous_has_no_access(resolver):
    """Test the gate denies everything without a user"""
    gate = AccessGate(resolver, None)

    assert gate.current_user() is None
    assert gate.can_read(1) is False
    assert gate.can_write(1) is False
    assert gate.filter_accessible([1, 2, 3]) == []


def test_filter_accessible_preserves_order(resolver):
    """Test filtering keeps the caller's order and drops unknown ids"""
    gate = AccessGate(resolver, "alice")

    assert gate.filter_accessible([4, 999, 1, 10, 3]) == [4, 1, 3]


def test_resolver_errors_deny_access():
    """Test backend failures look the same as a missing file"""
    gate = AccessGate(ExplodingResolver(), "alice")

    assert gate.can_read(1) is False
    assert gate.can_write(1) is False
    assert gate.filter_accessible([1, 2]) == []


def test_in_memory_resolver_children(resolver):
    """Test listing a directory's entries"""
    assert resolver.get_children("alice", 5) == [1, 2, 3]
    assert resolver.get_children("bob", 5) == []


def test_in_memory_resolver_remove_file(resolver):
    """Test removing a file drops it for every user"""
    resolver.remove_file(1)

    assert resolver.get_first_node_by_id("alice", 1) is None
    assert resolver.get_first_node_by_id("bob", 1) is None
    assert resolver.get_first_node_by_id("alice", 2) is not None
