"""Test configuration and fixtures"""

import json
import os
import shutil
import tempfile
from pathlib import Path

import pytest

from filelabels.storage.access_gate import AccessGate, InMemoryFileResolver, Permission
from filelabels.storage.database import reset_database_globals
from filelabels.storage.label_service import LabelService
from filelabels.storage.label_store import label_store
from filelabels.storage.migrations import initialize_database


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test isolation"""
    temp_dir = tempfile.mkdtemp()
    original_cwd = os.getcwd()
    os.chdir(temp_dir)

    yield Path(temp_dir)

    os.chdir(original_cwd)
    reset_database_globals()
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def clean_labels_dir(temp_dir):
    """Ensure clean .filelabels directory for each test"""
    labels_dir = temp_dir / ".filelabels"
    if labels_dir.exists():
        shutil.rmtree(labels_dir)
    return labels_dir


@pytest.fixture
def empty_database(temp_dir):
    """Create an empty SQLite database"""
    labels_dir = temp_dir / ".filelabels"
    labels_dir.mkdir(exist_ok=True)

    db_path = labels_dir / "database.db"
    db_path.touch()

    return db_path


@pytest.fixture
def temp_db():
    """Create a temporary database for testing"""
    with tempfile.TemporaryDirectory() as temp_dir:
        old_cwd = os.getcwd()
        os.chdir(temp_dir)

        # Create .filelabels directory and config
        os.makedirs(".filelabels", exist_ok=True)
        with open(".filelabels/config.json", "w") as f:
            json.dump({"max_labels_per_user": 10000, "admin_users": ["admin"]}, f)

        # Initialize database
        initialize_database()

        try:
            yield temp_dir
        finally:
            os.chdir(old_cwd)
            reset_database_globals()


@pytest.fixture
def resolver():
    """File tree shared by alice and bob.

    alice owns 1..5 (5 is a directory holding 1..3). bob sees file 1
    read-only through a share and owns 10.
    """
    resolver = InMemoryFileResolver()
    for file_id in (1, 2, 3):
        resolver.add_node("alice", file_id, f"/alice/docs/file{file_id}.txt", parent_id=5)
    resolver.add_node("alice", 4, "/alice/notes.md")
    resolver.add_node("alice", 5, "/alice/docs")
    resolver.add_node("bob", 1, "/bob/Shared/file1.txt", permissions=Permission.READ)
    resolver.add_node("bob", 10, "/bob/todo.txt")
    return resolver


@pytest.fixture
def make_service(temp_db, resolver):
    """Build a LabelService for a given user (None for anonymous)"""
    from types import SimpleNamespace

    def _make(user_id, max_labels=10000, file_resolver=None):
        settings = SimpleNamespace(max_labels_per_user=max_labels)
        access = AccessGate(file_resolver or resolver, user_id)
        return LabelService(label_store, access, settings)

    return _make
