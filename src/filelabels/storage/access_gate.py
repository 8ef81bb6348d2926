"""File access checks for label operations

The host filesystem owns files, shares and permissions. This module only
asks it, through a FileResolver, whether the current user can see or modify
a file. Any failure while asking is treated as "no": label visibility must
never reveal whether a file exists or how it is shared.
"""

import enum
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


class Permission(enum.IntFlag):
    """Permission bits carried by one access path to a file"""
    READ = 1
    UPDATE = 2
    CREATE = 4
    DELETE = 8
    SHARE = 16
    ALL = READ | UPDATE | CREATE | DELETE | SHARE


@dataclass(frozen=True)
class FileNode:
    """One path through which a user reaches a file"""
    file_id: int
    path: str
    permissions: Permission = Permission.ALL
    parent_id: Optional[int] = None


class FileResolver(ABC):
    """Resolves file ids within one user's view of the filesystem"""

    @abstractmethod
    def get_nodes_by_id(self, user_id: str, file_id: int) -> List[FileNode]:
        """Every access path the user has to the file (own folder, shares, ...)"""

    def get_first_node_by_id(self, user_id: str, file_id: int) -> Optional[FileNode]:
        nodes = self.get_nodes_by_id(user_id, file_id)
        return nodes[0] if nodes else None


class InMemoryFileResolver(FileResolver):
    """Registry-backed resolver for development servers and tests"""

    def __init__(self):
        self._nodes: Dict[str, Dict[int, List[FileNode]]] = {}

    def add_node(
        self,
        user_id: str,
        file_id: int,
        path: str,
        permissions: Permission = Permission.ALL,
        parent_id: Optional[int] = None,
    ) -> FileNode:
        node = FileNode(file_id=file_id, path=path, permissions=permissions, parent_id=parent_id)
        self._nodes.setdefault(user_id, {}).setdefault(file_id, []).append(node)
        return node

    def remove_file(self, file_id: int):
        for user_nodes in self._nodes.values():
            user_nodes.pop(file_id, None)

    def get_nodes_by_id(self, user_id: str, file_id: int) -> List[FileNode]:
        return list(self._nodes.get(user_id, {}).get(file_id, []))

    def get_children(self, user_id: str, directory_id: int) -> List[int]:
        """Ids of the entries whose parent is ``directory_id`` in the user's view"""
        children = []
        for file_id, nodes in self._nodes.get(user_id, {}).items():
            if any(node.parent_id == directory_id for node in nodes):
                children.append(file_id)
        return sorted(children)


class AccessGate:
    """Read/write decisions for the current user"""

    def __init__(self, resolver: FileResolver, user_id: Optional[str]):
        self.resolver = resolver
        self.user_id = user_id

    def current_user(self) -> Optional[str]:
        """The current user id, or None when unauthenticated"""
        return self.user_id

    def can_read(self, file_id: int) -> bool:
        """True if the user can reach the file through any path"""
        if self.user_id is None:
            return False
        return self._first_node(file_id) is not None

    def can_write(self, file_id: int) -> bool:
        """True if at least one access path grants UPDATE"""
        if self.user_id is None:
            return False

        try:
            nodes = self.resolver.get_nodes_by_id(self.user_id, file_id)
        except Exception:
            logger.debug("File resolution failed", exc_info=True, extra={"file_id": file_id})
            return False

        for node in nodes:
            if node.permissions & Permission.UPDATE:
                return True
        return False

    def filter_accessible(self, file_ids: Iterable[int]) -> List[int]:
        """Subset of ``file_ids`` the user can read"""
        if self.user_id is None:
            return []
        return [file_id for file_id in file_ids if self._first_node(file_id) is not None]

    def _first_node(self, file_id: int) -> Optional[FileNode]:
        try:
            return self.resolver.get_first_node_by_id(self.user_id, file_id)
        except Exception:
            # Not found, no access and backend errors all look the same
            logger.debug("File resolution failed", exc_info=True, extra={"file_id": file_id})
            return None
