"""
Project-scoped design routes: grouped listing, batch upload and
project-wide freeze controls.
"""
import logging
from typing import List, Optional

import anyio
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.database import get_db
from app.models.user import User
from app.rate_limiter import limiter, RateLimits
from app.schemas.design_file import (
    DesignFileListResponse, DesignCategoryResponse, BatchUploadResponse, UploadFailureResponse,
    FreezeStatusResponse, ProjectFreezeResponse
)
from app.api.routes.design_files import to_design_response, to_design_responses
from app.services.category_grouper import summarize_categories
from app.services.design_file_service import DesignFileService
from app.services.freeze_lock import FreezeLockService
from app.services.notification_service import DesignEvent, get_notification_service
from app.services.permission_service import Permission, require_permission
from app.services.storage_service import ObjectStore, get_object_store
from app.services.upload_orchestrator import UploadItem, UploadOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["project-designs"])


@router.get("/{project_id}/design-files", response_model=DesignFileListResponse)
async def list_project_designs(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.DESIGNS_VIEW))
):
    """All design files of a project with comments, plus their category grouping."""
    designs = DesignFileService(db).list_project_designs(project_id)
    responses = {d.id: to_design_response(d) for d in designs}

    categories = [
        DesignCategoryResponse(
            name=group["name"],
            files=[responses[d.id] for d in group["files"]],
            latest_version=group["latest_version"],
            is_frozen=group["is_frozen"],
            current_approved_id=group["current_approved_id"]
        )
        for group in summarize_categories(designs)
    ]
    return DesignFileListResponse(
        designs=[responses[d.id] for d in designs],
        categories=categories,
        total=len(designs)
    )


@router.post("/{project_id}/design-files/upload", response_model=BatchUploadResponse)
@limiter.limit(RateLimits.FILE_UPLOAD)
async def upload_design_files(
    request: Request,
    project_id: int,
    category: str = Form(...),
    files: List[UploadFile] = File(...),
    db: Session = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
    current_user: User = Depends(require_permission(Permission.DESIGNS_UPLOAD))
):
    """
    Upload one or more files into a category as consecutive new versions.

    Files are processed sequentially; per-file failures are reported in
    `failed` while the rest of the batch goes through. The batch stops
    issuing uploads if the client disconnects.
    """
    items = [
        UploadItem(file_name=f.filename or "", data=await f.read(), content_type=f.content_type)
        for f in files
    ]

    def client_connected() -> bool:
        return not anyio.from_thread.run(request.is_disconnected)

    orchestrator = UploadOrchestrator(db, store)
    result = await run_in_threadpool(
        orchestrator.upload_batch,
        project_id,
        category,
        items,
        current_user,
        should_continue=client_connected
    )

    notifier = get_notification_service()
    for design in result.succeeded:
        await notifier.notify_design_event(
            DesignEvent.UPLOADED, design.project_id, design.id, design.category,
            version_number=design.version_number
        )

    return BatchUploadResponse(
        category=result.category,
        total=result.total,
        succeeded=to_design_responses(result.succeeded),
        failed=[UploadFailureResponse(file_name=f.file_name, reason=f.reason, detail=f.detail) for f in result.failed],
        succeeded_count=len(result.succeeded),
        failed_count=len(result.failed),
        cancelled=result.cancelled
    )


@router.get("/{project_id}/design-freeze", response_model=FreezeStatusResponse)
async def get_design_freeze_status(
    project_id: int,
    category: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.DESIGNS_VIEW))
):
    """Whether any design in the project (or the given category) is frozen."""
    return FreezeLockService(db).freeze_status(project_id, category)


@router.post("/{project_id}/freeze-designs", response_model=ProjectFreezeResponse)
@limiter.limit(RateLimits.REVIEW_ACTION)
async def freeze_project_designs(
    request: Request,
    project_id: int,
    category: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.DESIGNS_FREEZE))
):
    """Freeze all designs of a project, or of one category."""
    count = FreezeLockService(db).freeze_project(project_id, current_user, category)
    await get_notification_service().notify_design_event(
        DesignEvent.FROZEN, project_id, category=category, count=count
    )
    return ProjectFreezeResponse(
        message="Designs frozen successfully", project_id=project_id, category=category, count=count
    )


@router.delete("/{project_id}/freeze-designs", response_model=ProjectFreezeResponse)
@limiter.limit(RateLimits.REVIEW_ACTION)
async def unfreeze_project_designs(
    request: Request,
    project_id: int,
    category: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.DESIGNS_FREEZE))
):
    """Unfreeze all designs of a project, or of one category."""
    count = FreezeLockService(db).unfreeze_project(project_id, current_user, category)
    await get_notification_service().notify_design_event(
        DesignEvent.UNFROZEN, project_id, category=category, count=count
    )
    return ProjectFreezeResponse(
        message="Designs unfrozen successfully", project_id=project_id, category=category, count=count
    )
