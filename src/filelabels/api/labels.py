"""Labels API endpoints

Permission problems and unauthenticated requests are answered with 404,
the same as a missing file, so the API never reveals whether a file
exists to someone who cannot see it.
"""

from typing import Dict

from fastapi import APIRouter, Depends, HTTPException

from ..exceptions import LabelValidationError, NotPermittedError, QuotaExceededError
from ..models.label import labels_to_map
from ..settings import MAX_BULK_FILE_IDS
from ..storage.events import EventDispatcher, LabelsChangedEvent
from ..storage.label_service import LabelService
from .schemas import BulkLabelsRequest, LabelResponse, LabelsUpdate, LabelValue, SuccessResponse
from .session import get_event_dispatcher, get_label_service

router = APIRouter()

FILE_NOT_FOUND = "File not found"


def _notify_changed(service: LabelService, dispatcher: EventDispatcher, file_id: int):
    """Tell listeners about the file's full label map after a change"""
    if not dispatcher.has_listeners(LabelsChangedEvent):
        return
    labels = labels_to_map(service.get_labels_for_file(file_id))
    dispatcher.dispatch(
        LabelsChangedEvent(file_id=file_id, user_id=service.access.current_user(), labels=labels)
    )


@router.post("/bulk", response_model=Dict[int, Dict[str, str]])
async def get_labels_bulk(
    request: BulkLabelsRequest,
    service: LabelService = Depends(get_label_service),
):
    """Get labels for many files at once (only files the user can access)"""

    if len(request.file_ids) > MAX_BULK_FILE_IDS:
        raise HTTPException(
            status_code=400,
            detail=f"Too many file IDs (maximum {MAX_BULK_FILE_IDS})"
        )

    if not request.file_ids:
        return {}

    labels_map = service.get_labels_for_files(request.file_ids)
    return {file_id: labels_to_map(labels) for file_id, labels in labels_map.items()}


@router.get("/{file_id}", response_model=Dict[str, str])
async def get_labels(file_id: int, service: LabelService = Depends(get_label_service)):
    """Get all labels the current user set on a file"""

    try:
        labels = service.get_labels_for_file(file_id)
    except NotPermittedError:
        raise HTTPException(status_code=404, detail=FILE_NOT_FOUND)

    return labels_to_map(labels)


@router.put("/{file_id}/{key}", response_model=LabelResponse)
async def set_label(
    file_id: int,
    key: str,
    label_data: LabelValue,
    service: LabelService = Depends(get_label_service),
    dispatcher: EventDispatcher = Depends(get_event_dispatcher),
):
    """Set a single label on a file"""

    try:
        label = service.set_label(file_id, key, label_data.value)
    except NotPermittedError:
        raise HTTPException(status_code=404, detail=FILE_NOT_FOUND)
    except LabelValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except QuotaExceededError as e:
        raise HTTPException(status_code=429, detail=str(e))

    _notify_changed(service, dispatcher, file_id)
    return LabelResponse(**label.to_dict())


@router.delete("/{file_id}/{key}", response_model=SuccessResponse)
async def delete_label(
    file_id: int,
    key: str,
    service: LabelService = Depends(get_label_service),
    dispatcher: EventDispatcher = Depends(get_event_dispatcher),
):
    """Delete a label from a file"""

    try:
        deleted = service.delete_label(file_id, key)
    except NotPermittedError:
        raise HTTPException(status_code=404, detail=FILE_NOT_FOUND)

    if not deleted:
        raise HTTPException(status_code=404, detail="Label not found")

    _notify_changed(service, dispatcher, file_id)
    return SuccessResponse(success=True)


@router.put("/{file_id}", response_model=Dict[str, str])
async def set_labels(
    file_id: int,
    labels_data: LabelsUpdate,
    service: LabelService = Depends(get_label_service),
    dispatcher: EventDispatcher = Depends(get_event_dispatcher),
):
    """Set several labels on a file (all or nothing)"""

    try:
        labels = service.set_labels(file_id, labels_data.labels)
    except NotPermittedError:
        raise HTTPException(status_code=404, detail=FILE_NOT_FOUND)
    except LabelValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except QuotaExceededError as e:
        raise HTTPException(status_code=429, detail=str(e))

    _notify_changed(service, dispatcher, file_id)
    return labels_to_map(labels)
