"""Listeners that remove labels when their file or owner is deleted"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from ..settings import LabelSettings, label_settings
from .events import EventDispatcher, FileDeletedEvent, UserDeletedEvent
from .label_store import LabelStore, label_store

logger = logging.getLogger(__name__)


class FileDeletedListener:
    """Deletes every user's labels on a file that was deleted"""

    def __init__(self, store: LabelStore):
        self.store = store

    def __eq__(self, other):
        return type(other) is type(self) and other.store is self.store

    def __hash__(self):
        return hash((type(self), id(self.store)))

    def __call__(self, event: FileDeletedEvent):
        if event.file_id is None:
            return

        try:
            deleted = self.store.delete_all_for_file(event.file_id)
        except SQLAlchemyError:
            # The file is already gone on the host side; a failure here must
            # not break the host's delete, so it is only logged.
            logger.exception("Failed to delete labels for file", extra={"file_id": event.file_id})
            return

        logger.debug("Deleted labels for file", extra={"file_id": event.file_id, "deleted": deleted})


class UserDeletedListener:
    """Deletes every label owned by a user that was deleted.

    Large label sets are removed in committed batches (see
    LabelStore.delete_all_for_user); the batch size and pause come from
    settings at the time of the event.
    """

    def __init__(self, store: LabelStore, settings: Optional[LabelSettings] = None):
        self.store = store
        self.settings = settings or label_settings

    def __eq__(self, other):
        return type(other) is type(self) and other.store is self.store

    def __hash__(self):
        return hash((type(self), id(self.store)))

    def __call__(self, event: UserDeletedEvent):
        try:
            deleted = self.store.delete_all_for_user(
                event.user_id,
                batch_size=self.settings.user_deletion_batch_size,
                pause=self.settings.user_deletion_pause,
            )
        except SQLAlchemyError:
            logger.exception("Failed to delete labels for user", extra={"user_id": event.user_id})
            return

        logger.info("Deleted all labels for user", extra={"user_id": event.user_id, "deleted": deleted})


def register_cleanup_listeners(
    dispatcher: EventDispatcher,
    store: LabelStore = label_store,
    settings: Optional[LabelSettings] = None,
):
    """Hook label cleanup into file and user deletion events (idempotent)"""
    dispatcher.add_listener(FileDeletedEvent, FileDeletedListener(store))
    dispatcher.add_listener(UserDeletedEvent, UserDeletedListener(store, settings))
