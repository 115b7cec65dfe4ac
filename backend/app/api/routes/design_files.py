"""
API routes for design files: registration, review decisions, freeze
toggles and version history.
"""
from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.design_file import DesignFile
from app.models.user import User
from app.rate_limiter import limiter, RateLimits
from app.schemas.design_file import (
    DesignFileCreate, DesignFileUpdate, DesignFileResponse, DesignFileUpdateResponse,
    DesignVersionHistory, BulkReviewRequest, BulkReviewResponse, BulkReviewFailure,
    FreezeResponse, StorageLimitsResponse
)
from app.services.design_approval_state import DesignApprovalStateMachine
from app.services.design_comment_service import has_pinned_comments, unresolved_pin_count
from app.services.design_file_service import DesignFileService
from app.services.freeze_lock import FreezeLockService
from app.services.notification_service import DesignEvent, get_notification_service
from app.services.permission_service import Permission, require_permission
from app.services.storage_service import ObjectStore, get_object_store
from app.utils.dependencies import get_current_user

router = APIRouter(prefix="/design-files", tags=["design-files"])


def to_design_response(design: DesignFile) -> DesignFileResponse:
    """Serialize a design file with its comment-derived fields."""
    resp = DesignFileResponse.model_validate(design)
    resp.has_pinned_comments = has_pinned_comments(design)
    resp.unresolved_pin_count = unresolved_pin_count(design)
    return resp


def to_design_responses(designs: List[DesignFile]) -> List[DesignFileResponse]:
    return [to_design_response(d) for d in designs]


@router.post("", response_model=DesignFileResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(RateLimits.FILE_UPLOAD)
async def create_design_file(
    request: Request,
    data: DesignFileCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.DESIGNS_UPLOAD))
):
    """Register a file already written to the object store as a new version."""
    design = DesignFileService(db).create_design_file(data, current_user)
    await get_notification_service().notify_design_event(
        DesignEvent.UPLOADED, design.project_id, design.id, design.category,
        version_number=design.version_number
    )
    return to_design_response(design)


# IMPORTANT: static routes MUST be defined BEFORE /{design_id} routes
# otherwise FastAPI will try to parse them as an integer id

@router.get("/storage-limits", response_model=StorageLimitsResponse)
async def get_storage_limits(
    store: ObjectStore = Depends(get_object_store),
    current_user: User = Depends(require_permission(Permission.DESIGNS_VIEW))
):
    """Upload limits of the object store (informational)."""
    return store.get_bucket_limits()


@router.post("/bulk-review", response_model=BulkReviewResponse)
@limiter.limit(RateLimits.REVIEW_ACTION)
async def bulk_review_designs(
    request: Request,
    data: BulkReviewRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.DESIGNS_APPROVE))
):
    """Approve, reject or request changes on several design files."""
    result = DesignFileService(db).bulk_review(
        data.design_ids, data.action.value, current_user, data.admin_comments
    )
    notifier = get_notification_service()
    for design in result["updated"]:
        await notifier.notify_status_changed(design)

    updated = to_design_responses(result["updated"])
    return BulkReviewResponse(
        message=f"Successfully reviewed {len(updated)} design(s)",
        updated=updated,
        failed=[BulkReviewFailure(**f) for f in result["failed"]],
        updated_count=len(updated)
    )


@router.get("/{design_id}", response_model=DesignFileResponse)
async def get_design_file(
    design_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.DESIGNS_VIEW))
):
    """Get a design file with its comments."""
    return to_design_response(DesignFileService(db).get_design(design_id))


@router.patch("/{design_id}", response_model=DesignFileUpdateResponse)
@limiter.limit(RateLimits.REVIEW_ACTION)
async def review_design_file(
    request: Request,
    design_id: int,
    data: DesignFileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.DESIGNS_APPROVE))
):
    """
    Take a review decision on a pending design file.

    Returns the file and its whole category so clients re-derive the
    current-approved flag from the server rather than patching siblings.
    """
    sm = DesignApprovalStateMachine(db, design_id)
    design = sm.set_status(data.approval_status.value, current_user, data.admin_comments)
    await get_notification_service().notify_status_changed(design)

    service = DesignFileService(db)
    return DesignFileUpdateResponse(
        design=to_design_response(design),
        category_files=to_design_responses(service.list_category_files(design.project_id, design.category))
    )


@router.delete("/{design_id}")
async def delete_design_file(
    design_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Delete a design file (uploader or designs.delete). Versions are not renumbered."""
    service = DesignFileService(db)
    design = service.get_design(design_id)
    project_id, category = design.project_id, design.category
    service.delete_design_file(design_id, current_user)
    await get_notification_service().notify_design_event(
        DesignEvent.DELETED, project_id, design_id, category
    )
    return {"success": True, "id": design_id}


@router.get("/{design_id}/versions", response_model=DesignVersionHistory)
async def get_design_versions(
    design_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.DESIGNS_VIEW))
):
    """Version history of the design file's category, latest first."""
    service = DesignFileService(db)
    design = service.get_design(design_id)
    versions = service.list_versions(design_id)
    return DesignVersionHistory(
        current_id=design.id,
        category=design.category,
        versions=to_design_responses(versions),
        total_versions=len(versions)
    )


@router.post("/{design_id}/freeze", response_model=FreezeResponse)
@limiter.limit(RateLimits.REVIEW_ACTION)
async def freeze_design_file(
    request: Request,
    design_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.DESIGNS_FREEZE))
):
    """Freeze a design file, locking its category against uploads."""
    design = FreezeLockService(db).freeze(design_id, current_user)
    await get_notification_service().notify_design_event(
        DesignEvent.FROZEN, design.project_id, design.id, design.category
    )
    return FreezeResponse(message="Design frozen successfully", design=to_design_response(design))


@router.delete("/{design_id}/freeze", response_model=FreezeResponse)
@limiter.limit(RateLimits.REVIEW_ACTION)
async def unfreeze_design_file(
    request: Request,
    design_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.DESIGNS_FREEZE))
):
    """Unfreeze a design file."""
    design = FreezeLockService(db).unfreeze(design_id, current_user)
    await get_notification_service().notify_design_event(
        DesignEvent.UNFROZEN, design.project_id, design.id, design.category
    )
    return FreezeResponse(message="Design unfrozen successfully", design=to_design_response(design))
