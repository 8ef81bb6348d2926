"""Labels as a WebDAV property

The property ``{http://nextcloud.org/ns}labels`` on every file and
directory holds a JSON object with the current user's labels for that
node. PROPFIND reads it; PROPPATCH updates it partially.

The WebDAV server itself lives in the host. It builds one
LabelsPropertyHandler per request, calls ``preload_collection`` before
listing a directory, and then asks for ``get_property`` on each node, so a
listing of N files costs one bulk query instead of N.
"""

import json
import logging
import re
from typing import Dict, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..exceptions import LabelError, LabelValidationError, NotPermittedError
from ..models.label import labels_to_map
from ..storage.label_service import LabelService, validate_key, validate_value

logger = logging.getLogger(__name__)

NS_NEXTCLOUD = "http://nextcloud.org/ns"
PROPERTY_LABELS = "{http://nextcloud.org/ns}labels"

# Escape markup-significant characters inside the JSON so the value can be
# embedded in XML verbatim. Escaped backslashes are matched as a pair so the
# quote after "\\" is left structural.
_XML_UNSAFE = re.compile(r'\\\\|\\"|[<>&\']')
_XML_ESCAPES = {
    "\\\\": "\\\\",
    '\\"': "\\u0022",
    "<": "\\u003C",
    ">": "\\u003E",
    "&": "\\u0026",
    "'": "\\u0027",
}


def encode_labels(labels: Dict[str, str]) -> str:
    """JSON-encode a label map with XML-unsafe characters hex-escaped"""
    encoded = json.dumps(labels)
    return _XML_UNSAFE.sub(lambda match: _XML_ESCAPES[match.group()], encoded)


class DirectoryPreloadCache:
    """Per-request memo of label maps, filled one directory at a time.

    Lives for one request and is then thrown away. It never goes stale in
    a way that matters because the same actor cannot change labels in the
    middle of its own request.
    """

    def __init__(self, service: LabelService):
        self.service = service
        self._labels: Dict[int, Dict[str, str]] = {}
        self._directories = set()

    def preload(self, directory_id: int, member_ids: Iterable[int]):
        """Fetch labels for a directory and its members in one bulk call"""
        if directory_id in self._directories:
            return

        file_ids = [directory_id] + list(member_ids)
        labels_map = self.service.get_labels_for_files(file_ids)

        for file_id, labels in labels_map.items():
            self._labels[file_id] = labels_to_map(labels)

        # Mark empty results too
        for file_id in file_ids:
            self._labels.setdefault(file_id, {})

        self._directories.add(directory_id)

    def lookup(self, file_id: int) -> Optional[Dict[str, str]]:
        """Cached label map, or None on a miss"""
        labels = self._labels.get(file_id)
        return dict(labels) if labels is not None else None

    def invalidate(self, file_id: int):
        self._labels.pop(file_id, None)

    def __contains__(self, file_id):
        return file_id in self._labels


class LabelsPropertyHandler:
    """Reads and patches the labels property for one request"""

    def __init__(self, service: LabelService, cache: Optional[DirectoryPreloadCache] = None):
        self.service = service
        self.cache = cache if cache is not None else DirectoryPreloadCache(service)

    def preload_collection(self, directory_id: int, member_ids: Iterable[int]):
        """Preload labels for all entries of a directory to avoid N+1 queries"""
        self.cache.preload(directory_id, member_ids)

    def get_property(self, file_id: int) -> str:
        """Property value for PROPFIND"""
        labels = self.cache.lookup(file_id)
        if labels is not None:
            return encode_labels(labels)

        # Fallback for single-file requests
        try:
            labels = labels_to_map(self.service.get_labels_for_file(file_id))
        except NotPermittedError:
            return "{}"
        return encode_labels(labels)

    def patch_property(self, file_id: int, value: str) -> bool:
        """Apply a PROPPATCH value; returns whether the update succeeded.

        ``value`` is a JSON object. A key with a string value is set, a key
        with ``null`` is deleted, and keys that are not mentioned stay as
        they are, so ``{}`` changes nothing. Any other value type (number,
        boolean, array, object) rejects the whole patch.
        """
        try:
            new_labels = json.loads(value)
        except (TypeError, ValueError):
            new_labels = None
        if not isinstance(new_labels, dict):
            logger.warning("Invalid labels JSON received via WebDAV", extra={"file_id": file_id})
            return False

        try:
            current = labels_to_map(self.service.get_labels_for_file(file_id))

            to_set = {}
            to_delete = []
            for key, new_value in new_labels.items():
                if new_value is None:
                    if key in current:
                        to_delete.append(key)
                elif not isinstance(new_value, str):
                    raise LabelValidationError("Label value must be a string")
                elif current.get(key) != new_value:
                    to_set[key] = new_value

            # Reject bad entries before any deletion is applied
            for key, new_value in to_set.items():
                validate_key(key)
                validate_value(new_value)

            for key in to_delete:
                self.service.delete_label(file_id, key)

            if to_set:
                self.service.set_labels(file_id, to_set)
        except NotPermittedError as e:
            logger.warning("Permission denied for WebDAV label update", extra={"file_id": file_id, "error": str(e)})
            return False
        except LabelError as e:
            # Validation and quota failures
            logger.warning("Rejected WebDAV label update", extra={"file_id": file_id, "error": str(e)})
            return False
        except SQLAlchemyError as e:
            logger.error("Failed to update labels via WebDAV", extra={"file_id": file_id, "error": str(e)})
            return False
        finally:
            self.cache.invalidate(file_id)

        logger.debug(
            "Labels updated via WebDAV",
            extra={"file_id": file_id, "set_count": len(to_set), "delete_count": len(to_delete)},
        )
        return True
