"""Tests for label persistence"""

from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError

from filelabels.models import Label
from filelabels.storage.database import get_db_session
from filelabels.storage.label_store import label_store


def test_set_label_creates_row(temp_db):
    """Test inserting a new label"""
    label = label_store.set_label(1, "alice", "status", "draft")

    assert label.id is not None
    assert label.file_id == 1
    assert label.user_id == "alice"
    assert label.label_key == "status"
    assert label.label_value == "draft"
    assert label.created_at is not None
    assert label.created_at == label.updated_at


def test_set_label_updates_existing(temp_db):
    """Test upsert keeps the row and its created_at"""
    first = label_store.set_label(1, "alice", "status", "draft")
    second = label_store.set_label(1, "alice", "status", "final")

    assert second.id == first.id
    assert second.label_value == "final"
    assert second.created_at == first.created_at
    assert second.updated_at >= first.updated_at
    assert label_store.count_for_user("alice") == 1


def test_unique_constraint_on_file_user_key(temp_db):
    """Test the database refuses a duplicate (file, user, key)"""
    label_store.set_label(1, "alice", "status", "draft")

    with pytest.raises(IntegrityError):
        with get_db_session() as session:
            session.add(Label(
                file_id=1,
                user_id="alice",
                label_key="status",
                label_value="other",
                created_at=datetime(2024, 1, 1),
                updated_at=datetime(2024, 1, 1),
            ))

    assert label_store.find_one(1, "alice", "status").label_value == "draft"


def test_same_key_for_different_users(temp_db):
    """Test users keep separate labels on the same file"""
    label_store.set_label(1, "alice", "status", "draft")
    label_store.set_label(1, "bob", "status", "approved")

    assert label_store.find_one(1, "alice", "status").label_value == "draft"
    assert label_store.find_one(1, "bob", "status").label_value == "approved"


def test_find_by_file_and_user_ordered_by_key(temp_db):
    """Test single-file lookup returns only that user's labels"""
    label_store.set_label(1, "alice", "zeta", "z")
    label_store.set_label(1, "alice", "alpha", "a")
    label_store.set_label(1, "bob", "beta", "b")
    label_store.set_label(2, "alice", "gamma", "g")

    labels = label_store.find_by_file_and_user(1, "alice")

    assert [label.label_key for label in labels] == ["alpha", "zeta"]


def test_find_by_files_and_user_includes_every_requested_id(temp_db):
    """Test bulk lookup maps files without labels to empty lists"""
    label_store.set_label(1, "alice", "a", "1")
    label_store.set_label(1, "alice", "b", "2")
    label_store.set_label(3, "alice", "c", "3")

    result = label_store.find_by_files_and_user([1, 2, 3], "alice")

    assert set(result) == {1, 2, 3}
    assert [label.label_key for label in result[1]] == ["a", "b"]
    assert result[2] == []
    assert [label.label_key for label in result[3]] == ["c"]


def test_find_by_files_and_user_empty_input(temp_db):
    """Test bulk lookup with no ids"""
    assert label_store.find_by_files_and_user([], "alice") == {}


def test_find_by_files_and_user_chunks_large_requests(temp_db):
    """Test bulk lookup across more ids than one IN clause holds"""
    label_store.set_label(5, "alice", "k", "first")
    label_store.set_label(2400, "alice", "k", "last")

    result = label_store.find_by_files_and_user(range(1, 2501), "alice")

    assert len(result) == 2500
    assert result[5][0].label_value == "first"
    assert result[2400][0].label_value == "last"
    assert result[1000] == []


def test_find_one_missing(temp_db):
    """Test find_one returns None when no label matches"""
    assert label_store.find_one(1, "alice", "missing") is None


def test_delete_label(temp_db):
    """Test deleting one label"""
    label_store.set_label(1, "alice", "status", "draft")

    assert label_store.delete_label(1, "alice", "status") is True
    assert label_store.find_one(1, "alice", "status") is None


def test_delete_label_missing_returns_false(temp_db):
    """Test deleting a label that was never set"""
    assert label_store.delete_label(1, "alice", "status") is False


def test_delete_all_for_file(temp_db):
    """Test removing every user's labels on one file"""
    label_store.set_label(1, "alice", "a", "1")
    label_store.set_label(1, "bob", "b", "2")
    label_store.set_label(2, "alice", "c", "3")

    deleted = label_store.delete_all_for_file(1)

    assert deleted == 2
    assert label_store.find_by_file_and_user(1, "alice") == []
    assert label_store.find_by_file_and_user(1, "bob") == []
    assert len(label_store.find_by_file_and_user(2, "alice")) == 1


def test_delete_all_for_user(temp_db):
    """Test removing every label a user owns"""
    for file_id in range(1, 6):
        label_store.set_label(file_id, "alice", "k", "v")
    label_store.set_label(1, "bob", "k", "v")

    deleted = label_store.delete_all_for_user("alice")

    assert deleted == 5
    assert label_store.count_for_user("alice") == 0
    assert label_store.count_for_user("bob") == 1


def test_delete_all_for_user_in_batches(temp_db):
    """Test batched user deletion removes everything across several batches"""
    for file_id in range(1, 12):
        label_store.set_label(file_id, "alice", "k", "v")
    label_store.set_label(1, "bob", "k", "v")

    deleted = label_store.delete_all_for_user("alice", batch_size=5)

    assert deleted == 11
    assert label_store.count_for_user("alice") == 0
    assert label_store.count_for_user("bob") == 1


def test_delete_all_for_user_batch_boundary(temp_db):
    """Test batched deletion when the row count is a multiple of the batch size"""
    for file_id in range(1, 5):
        label_store.set_label(file_id, "alice", "k", "v")

    assert label_store.delete_all_for_user("alice", batch_size=2) == 4
    assert label_store.delete_all_for_user("alice", batch_size=2) == 0


def test_find_files_by_label(temp_db):
    """Test reverse lookup by key and optional value"""
    label_store.set_label(3, "alice", "status", "draft")
    label_store.set_label(1, "alice", "status", "final")
    label_store.set_label(2, "alice", "other", "draft")
    label_store.set_label(4, "bob", "status", "draft")

    assert label_store.find_files_by_label("alice", "status") == [1, 3]
    assert label_store.find_files_by_label("alice", "status", "draft") == [3]
    assert label_store.find_files_by_label("alice", "missing") == []


def test_count_for_user(temp_db):
    """Test counting a user's labels"""
    assert label_store.count_for_user("alice") == 0

    label_store.set_label(1, "alice", "a", "1")
    label_store.set_label(1, "alice", "b", "2")
    label_store.set_label(2, "alice", "a", "3")

    assert label_store.count_for_user("alice") == 3


def test_transaction_rolls_back_on_error(temp_db):
    """Test writes sharing a transaction disappear together on failure"""
    with pytest.raises(RuntimeError):
        with label_store.transaction() as session:
            label_store.set_label(1, "alice", "a", "1", session=session)
            label_store.set_label(1, "alice", "b", "2", session=session)
            raise RuntimeError("boom")

    assert label_store.count_for_user("alice") == 0


def test_transaction_commits(temp_db):
    """Test writes sharing a transaction are all visible afterwards"""
    with label_store.transaction() as session:
        label_store.set_label(1, "alice", "a", "1", session=session)
        label_store.set_label(1, "alice", "b", "2", session=session)

    assert label_store.count_for_user("alice") == 2


def test_label_to_dict(temp_db):
    """Test label serialization"""
    label = label_store.set_label(1, "alice", "status", "draft")
    data = label.to_dict()

    assert data["id"] == label.id
    assert data["file_id"] == 1
    assert data["key"] == "status"
    assert data["value"] == "draft"
    assert data["created_at"] is not None
