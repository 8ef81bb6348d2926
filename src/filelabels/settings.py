"""Runtime settings backed by the project config file"""

import re
from typing import List, Optional

from .exceptions import LabelValidationError
from .storage.migrations import get_project_config, save_project_config

# Label keys: lowercase alphanumeric, dots, dashes, underscores, colons
KEY_PATTERN = re.compile(r"[a-z0-9_:.-]+")
MAX_KEY_LENGTH = 255
# Value length limit imposed for sidebar display
MAX_VALUE_LENGTH = 255

# Quota bounds an admin may choose from
DEFAULT_MAX_LABELS_PER_USER = 10000
MIN_MAX_LABELS = 100
MAX_MAX_LABELS = 1000000

# Upper bound on ids accepted by one bulk lookup request
MAX_BULK_FILE_IDS = 1000


class LabelSettings:
    """Settings read from .filelabels/config.json on every access.

    Nothing is cached, so a value written by an admin (or edited by hand)
    applies to the next call without restarting the server.
    """

    def _get(self, name, default=None):
        return get_project_config().get(name, default)

    @property
    def max_labels_per_user(self) -> int:
        return int(self._get("max_labels_per_user", DEFAULT_MAX_LABELS_PER_USER))

    @property
    def admin_users(self) -> List[str]:
        return list(self._get("admin_users", []) or [])

    @property
    def user_deletion_batch_size(self) -> Optional[int]:
        value = self._get("user_deletion_batch_size")
        return int(value) if value else None

    @property
    def user_deletion_pause(self) -> float:
        return float(self._get("user_deletion_pause", 0.0) or 0.0)

    def is_admin(self, user_id: Optional[str]) -> bool:
        return user_id is not None and user_id in self.admin_users

    def set_max_labels_per_user(self, value) -> int:
        """Persist a new quota after checking it against the allowed bounds"""
        try:
            int_value = int(value)
        except (TypeError, ValueError):
            raise LabelValidationError("Value must be a number")

        if int_value < MIN_MAX_LABELS or int_value > MAX_MAX_LABELS:
            raise LabelValidationError(
                f"Value must be between {MIN_MAX_LABELS} and {MAX_MAX_LABELS}"
            )

        config = get_project_config()
        config["max_labels_per_user"] = int_value
        save_project_config(config)
        return int_value


# Global settings instance
label_settings = LabelSettings()
