"""Per-request wiring: current user, file resolver and label service"""

from typing import Optional

from fastapi import Depends, Header

from ..settings import LabelSettings, label_settings
from ..storage.access_gate import AccessGate, FileResolver, InMemoryFileResolver
from ..storage.events import EventDispatcher, event_dispatcher
from ..storage.label_service import LabelService
from ..storage.label_store import label_store

# Set by the authenticating reverse proxy in front of the app
REMOTE_USER_HEADER = "X-Remote-User"

# Default resolver for development; deployments override get_file_resolver
file_resolver = InMemoryFileResolver()


def get_current_user_id(
    remote_user: Optional[str] = Header(None, alias=REMOTE_USER_HEADER),
) -> Optional[str]:
    """Current user id, or None when the request is unauthenticated"""
    if remote_user is None:
        return None
    remote_user = remote_user.strip()
    return remote_user or None


def get_file_resolver() -> FileResolver:
    return file_resolver


def get_settings() -> LabelSettings:
    return label_settings


def get_event_dispatcher() -> EventDispatcher:
    return event_dispatcher


def get_label_service(
    user_id: Optional[str] = Depends(get_current_user_id),
    resolver: FileResolver = Depends(get_file_resolver),
    settings: LabelSettings = Depends(get_settings),
) -> LabelService:
    """Label service bound to the current request's user"""
    return LabelService(label_store, AccessGate(resolver, user_id), settings)
