"""Label service layer: authorization, validation and quota for labels

Every label read and write from the REST API, the property handler or any
other in-process caller goes through LabelService. Mutations run the steps
validate -> authenticate -> authorize -> quota (new keys only) -> persist,
and stop at the first failing step with a typed exception from
filelabels.exceptions.
"""

import logging
from typing import Dict, Iterable, List, Optional

from ..exceptions import (
    ForbiddenError,
    LabelValidationError,
    NotAuthenticatedError,
    QuotaExceededError,
)
from ..models import Label
from ..settings import KEY_PATTERN, MAX_KEY_LENGTH, MAX_VALUE_LENGTH
from .access_gate import AccessGate
from .label_store import LabelStore

logger = logging.getLogger(__name__)


def _byte_length(text: str) -> int:
    # Limits are on the stored UTF-8 size, not on code points
    try:
        return len(text.encode("utf-8"))
    except UnicodeEncodeError:
        raise LabelValidationError("Label must be valid UTF-8")


def validate_key(key: str):
    """Raise LabelValidationError unless ``key`` is a well-formed label key"""
    if not isinstance(key, str):
        raise LabelValidationError("Label key must be a string")
    if len(key) == 0:
        raise LabelValidationError("Label key cannot be empty")
    if _byte_length(key) > MAX_KEY_LENGTH:
        raise LabelValidationError(f"Label key cannot exceed {MAX_KEY_LENGTH} characters")
    if not KEY_PATTERN.fullmatch(key):
        raise LabelValidationError("Label key must match pattern [a-z0-9_:.-]+")


def validate_value(value: str):
    """Raise LabelValidationError unless ``value`` fits the value length limit"""
    if not isinstance(value, str):
        raise LabelValidationError("Label value must be a string")
    if _byte_length(value) > MAX_VALUE_LENGTH:
        raise LabelValidationError(f"Label value cannot exceed {MAX_VALUE_LENGTH} characters")


class LabelService:
    """Service class for label operations on behalf of the current user"""

    def __init__(self, store: LabelStore, access: AccessGate, settings):
        """
        Args:
            store: persistence for label rows
            access: permission checks for the current user
            settings: anything with a ``max_labels_per_user`` attribute;
                read on every quota check so changes apply immediately
        """
        self.store = store
        self.access = access
        self.settings = settings

    def get_max_labels_per_user(self) -> int:
        """Current per-user label quota"""
        return int(self.settings.max_labels_per_user)

    def get_labels_for_file(self, file_id: int) -> List[Label]:
        """All of the current user's labels on a file"""
        user_id = self._require_user()
        if not self.access.can_read(file_id):
            raise ForbiddenError("Cannot access file")

        labels = self.store.find_by_file_and_user(file_id, user_id)

        logger.debug(
            "Retrieved labels for file",
            extra={"file_id": file_id, "user_id": user_id, "count": len(labels)},
        )
        return labels

    def get_labels_for_files(self, file_ids: Iterable[int]) -> Dict[int, List[Label]]:
        """Labels for many files, limited to the ones the user can see.

        Unauthenticated callers get an empty dict rather than an error, and
        inaccessible files are left out of the result.
        """
        user_id = self.access.current_user()
        if user_id is None:
            return {}

        file_ids = list(file_ids)
        accessible_ids = self.access.filter_accessible(file_ids)
        if not accessible_ids:
            return {}

        labels_map = self.store.find_by_files_and_user(accessible_ids, user_id)

        logger.debug(
            "Bulk retrieved labels for files",
            extra={
                "user_id": user_id,
                "requested_count": len(file_ids),
                "accessible_count": len(accessible_ids),
            },
        )
        return labels_map

    def set_label(self, file_id: int, key: str, value: str) -> Label:
        """Create or update one label on a file"""
        validate_key(key)
        validate_value(value)

        user_id = self._require_writable(file_id)

        # Only new keys count against the quota
        existing = self.store.find_one(file_id, user_id, key)
        if existing is None:
            self._check_quota(user_id)

        label = self.store.set_label(file_id, user_id, key, value)

        logger.debug(
            "Label set",
            extra={"file_id": file_id, "user_id": user_id, "key": key, "is_new": existing is None},
        )
        return label

    def set_labels(self, file_id: int, labels: Dict[str, str]) -> List[Label]:
        """Create or update several labels on a file, all or nothing.

        Every entry is validated before anything is written, the quota is
        charged only for keys that do not exist yet, and all writes share
        one transaction.
        """
        for key, value in labels.items():
            validate_key(key)
            validate_value(value)

        user_id = self._require_writable(file_id)

        existing_keys = {
            label.label_key for label in self.store.find_by_file_and_user(file_id, user_id)
        }
        new_count = sum(1 for key in labels if key not in existing_keys)
        if new_count > 0:
            self._check_quota(user_id, new_count)

        result = []
        try:
            with self.store.transaction() as session:
                for key, value in labels.items():
                    result.append(self.store.set_label(file_id, user_id, key, value, session=session))
        except Exception as e:
            logger.error(
                "Bulk set_labels failed, rolled back",
                extra={"file_id": file_id, "user_id": user_id, "error": str(e)},
            )
            raise

        logger.info(
            "Bulk labels set",
            extra={
                "file_id": file_id,
                "user_id": user_id,
                "count": len(labels),
                "new_count": new_count,
            },
        )
        return result

    def delete_label(self, file_id: int, key: str) -> bool:
        """Delete one label; False when the key was not set"""
        user_id = self._require_writable(file_id)

        deleted = self.store.delete_label(file_id, user_id, key)

        logger.debug(
            "Label deleted",
            extra={"file_id": file_id, "user_id": user_id, "key": key, "success": deleted},
        )
        return deleted

    def find_files_by_label(self, key: str, value: Optional[str] = None) -> List[int]:
        """Files the current user marked with a label and can still access"""
        user_id = self._require_user()

        file_ids = self.store.find_files_by_label(user_id, key, value)

        # Access may have been revoked after the label was set
        accessible = self.access.filter_accessible(file_ids)

        logger.debug(
            "Found files by label",
            extra={
                "user_id": user_id,
                "key": key,
                "has_value": value is not None,
                "found_count": len(file_ids),
                "accessible_count": len(accessible),
            },
        )
        return accessible

    def has_label(self, file_id: int, key: str, value: Optional[str] = None) -> bool:
        """Whether a readable file carries ``key`` (with exactly ``value``, if given)"""
        user_id = self.access.current_user()
        if user_id is None:
            return False
        if not self.access.can_read(file_id):
            return False

        label = self.store.find_one(file_id, user_id, key)
        if label is None:
            return False
        if value is not None and label.label_value != value:
            return False
        return True

    def get_label_count(self, user_id: str) -> int:
        """Current label count for a user"""
        return self.store.count_for_user(user_id)

    def _require_user(self) -> str:
        user_id = self.access.current_user()
        if user_id is None:
            raise NotAuthenticatedError()
        return user_id

    def _require_writable(self, file_id: int) -> str:
        user_id = self._require_user()
        if not self.access.can_write(file_id):
            raise ForbiddenError("Cannot modify file")
        return user_id

    def _check_quota(self, user_id: str, new_labels: int = 1):
        """Raise QuotaExceededError if ``new_labels`` more would pass the limit.

        This is a soft limit: concurrent creations for the same user can
        both pass the check before either one inserts.
        """
        max_labels = self.get_max_labels_per_user()
        current_count = self.store.count_for_user(user_id)

        if current_count + new_labels > max_labels:
            logger.warning(
                "Label quota exceeded",
                extra={
                    "user_id": user_id,
                    "current_count": current_count,
                    "new_labels": new_labels,
                    "max_labels": max_labels,
                },
            )
            raise QuotaExceededError(current_count, max_labels)
