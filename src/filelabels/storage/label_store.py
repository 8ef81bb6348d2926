"""Label persistence over the file_labels table

The store trusts its caller completely: it performs no permission checks
and no validation. LabelService is the only code that should call the
mutating methods.
"""

import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterable, Iterator, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models import Label
from .database import get_db_session

logger = logging.getLogger(__name__)

# Keep IN (...) lists well below backend bind-parameter limits
IN_CLAUSE_CHUNK_SIZE = 1000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _chunks(items: List[int], size: int) -> Iterator[List[int]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


class LabelStore:
    """CRUD, bulk and reverse lookups over label records"""

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Share one transaction across several store calls.

        Pass the yielded session as ``session=`` to the store methods. The
        transaction commits when the block exits cleanly and rolls back if
        anything inside it raises.
        """
        with get_db_session() as session:
            yield session

    @contextmanager
    def _session_scope(self, session: Optional[Session]) -> Iterator[Session]:
        if session is not None:
            yield session
        else:
            with get_db_session() as own_session:
                yield own_session

    def find_by_file_and_user(
        self, file_id: int, user_id: str, session: Optional[Session] = None
    ) -> List[Label]:
        """All labels a user set on one file"""
        with self._session_scope(session) as session:
            labels = (
                session.query(Label)
                .filter(Label.file_id == file_id, Label.user_id == user_id)
                .order_by(Label.label_key)
                .all()
            )
            for label in labels:
                session.expunge(label)
            return labels

    def find_by_files_and_user(
        self, file_ids: Iterable[int], user_id: str, session: Optional[Session] = None
    ) -> Dict[int, List[Label]]:
        """Labels for many files at once.

        Every requested file id is a key of the result, mapped to an empty
        list when the user has no labels on it.
        """
        result: Dict[int, List[Label]] = {file_id: [] for file_id in file_ids}
        if not result:
            return result

        with self._session_scope(session) as session:
            for chunk in _chunks(list(result), IN_CLAUSE_CHUNK_SIZE):
                labels = (
                    session.query(Label)
                    .filter(Label.file_id.in_(chunk), Label.user_id == user_id)
                    .order_by(Label.file_id, Label.label_key)
                    .all()
                )
                for label in labels:
                    session.expunge(label)
                    result[label.file_id].append(label)
        return result

    def find_one(
        self, file_id: int, user_id: str, key: str, session: Optional[Session] = None
    ) -> Optional[Label]:
        """The label for (file, user, key), or None"""
        with self._session_scope(session) as session:
            label = self._query_one(session, file_id, user_id, key)
            if label:
                session.expunge(label)
            return label

    def set_label(
        self, file_id: int, user_id: str, key: str, value: str, session: Optional[Session] = None
    ) -> Label:
        """Insert or update the label for (file, user, key).

        An existing row keeps its created_at and gets a fresh updated_at.
        A new row starts with both timestamps set to now.
        """
        with self._session_scope(session) as session:
            now = _utcnow()
            label = self._query_one(session, file_id, user_id, key)

            if label is not None:
                label.label_value = value
                label.updated_at = now
            else:
                label = Label(
                    file_id=file_id,
                    user_id=user_id,
                    label_key=key,
                    label_value=value,
                    created_at=now,
                    updated_at=now,
                )
                session.add(label)

            session.flush()
            session.refresh(label)
            # Make label accessible outside session
            session.expunge(label)
            return label

    def delete_label(
        self, file_id: int, user_id: str, key: str, session: Optional[Session] = None
    ) -> bool:
        """Delete one label; False when there was nothing to delete"""
        with self._session_scope(session) as session:
            label = self._query_one(session, file_id, user_id, key)
            if label is None:
                return False
            session.delete(label)
            session.flush()
            return True

    def delete_all_for_file(self, file_id: int, session: Optional[Session] = None) -> int:
        """Remove every user's labels from a file"""
        with self._session_scope(session) as session:
            return (
                session.query(Label)
                .filter(Label.file_id == file_id)
                .delete(synchronize_session=False)
            )

    def delete_all_for_user(
        self, user_id: str, batch_size: Optional[int] = None, pause: float = 0.0
    ) -> int:
        """Remove every label a user owns.

        Without ``batch_size`` this is one unbounded DELETE. With it, rows
        go in chunks of at most ``batch_size``, each chunk committed on its
        own with a ``pause`` second sleep in between, so a huge label set
        never holds one long transaction. A run interrupted part way
        through leaves only fully committed chunks behind, and calling it
        again picks up the rest.
        """
        if not batch_size:
            with get_db_session() as session:
                return (
                    session.query(Label)
                    .filter(Label.user_id == user_id)
                    .delete(synchronize_session=False)
                )

        total = 0
        while True:
            with get_db_session() as session:
                ids = [
                    row[0]
                    for row in session.query(Label.id)
                    .filter(Label.user_id == user_id)
                    .order_by(Label.id)
                    .limit(batch_size)
                    .all()
                ]
                if not ids:
                    break
                deleted = (
                    session.query(Label)
                    .filter(Label.id.in_(ids))
                    .delete(synchronize_session=False)
                )
            total += deleted
            logger.debug(
                "Deleted label batch for user",
                extra={"user_id": user_id, "batch": deleted, "total": total},
            )
            if len(ids) < batch_size:
                break
            if pause:
                time.sleep(pause)
        return total

    def find_files_by_label(
        self, user_id: str, key: str, value: Optional[str] = None, session: Optional[Session] = None
    ) -> List[int]:
        """File ids the user marked with ``key`` (and ``value``, when given)"""
        with self._session_scope(session) as session:
            query = session.query(Label.file_id).filter(
                Label.user_id == user_id, Label.label_key == key
            )
            if value is not None:
                query = query.filter(Label.label_value == value)
            return [int(row[0]) for row in query.order_by(Label.file_id).all()]

    def count_for_user(self, user_id: str, session: Optional[Session] = None) -> int:
        """Total label rows owned by a user"""
        with self._session_scope(session) as session:
            return session.query(func.count(Label.id)).filter(Label.user_id == user_id).scalar() or 0

    def _query_one(self, session: Session, file_id: int, user_id: str, key: str) -> Optional[Label]:
        return (
            session.query(Label)
            .filter(
                Label.file_id == file_id,
                Label.user_id == user_id,
                Label.label_key == key,
            )
            .first()
        )


# Global store instance
label_store = LabelStore()
