"""
Upload orchestration for design file batches.

A batch targets one (project, category). Files are processed strictly one
after another so version numbers come out in order without any distributed
lock:

    1. refuse the whole batch if the category is frozen
    2. per file: write bytes to the object store
    3. only on storage success: allocate the next version and insert the row

A storage failure or lost version race affects only that file; it is
reported in `failed` and the batch moves on. Objects already written are
never rolled back.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from app.models.design_file import DesignFile, DesignFileType, ApprovalStatus
from app.models.project import Project
from app.models.user import User
from app.services.category_grouper import clean_category
from app.services.design_errors import (
    CategoryFrozenError,
    DesignNotFound,
    DesignValidationError,
    StorageFailure,
    VersionConflictError,
)
from app.services.freeze_lock import FreezeLockService
from app.services.storage_service import ObjectStore, build_object_path
from app.services.version_allocator import VersionAllocator

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp", "svg", "bmp", "tif", "tiff"}

# (current_index, total_files, percent_of_current_file)
ProgressCallback = Callable[[int, int, int], None]


def infer_file_type(file_name: str, content_type: Optional[str] = None) -> str:
    """Classify a file as image, pdf or other from its content type or extension."""
    if content_type:
        if content_type.startswith("image/"):
            return DesignFileType.IMAGE
        if content_type == "application/pdf":
            return DesignFileType.PDF
    ext = os.path.splitext(file_name or "")[1].lstrip(".").lower()
    if ext in IMAGE_EXTENSIONS:
        return DesignFileType.IMAGE
    if ext == "pdf":
        return DesignFileType.PDF
    return DesignFileType.OTHER


@dataclass
class UploadItem:
    """One file of a batch."""
    file_name: str
    data: bytes
    content_type: Optional[str] = None


@dataclass
class UploadFailure:
    file_name: str
    reason: str
    detail: str


@dataclass
class BatchUploadResult:
    category: str
    total: int
    succeeded: List[DesignFile] = field(default_factory=list)
    failed: List[UploadFailure] = field(default_factory=list)
    cancelled: bool = False


class UploadOrchestrator:
    """Runs design upload batches against the object store and database."""

    def __init__(
        self,
        db: Session,
        store: ObjectStore,
        freeze_lock: Optional[FreezeLockService] = None,
        allocator: Optional[VersionAllocator] = None
    ):
        self.db = db
        self.store = store
        self.freeze_lock = freeze_lock or FreezeLockService(db)
        self.allocator = allocator or VersionAllocator(db)

    @staticmethod
    def _report(progress: Optional[ProgressCallback], index: int, total: int, percent: int) -> None:
        if progress is not None:
            progress(index, total, percent)
        else:
            logger.info(f"[Upload] file {index}/{total}: {percent}%", extra={"batch_index": index})

    def upload_batch(
        self,
        project_id: int,
        category: str,
        files: List[UploadItem],
        uploader: User,
        progress: Optional[ProgressCallback] = None,
        should_continue: Optional[Callable[[], bool]] = None
    ) -> BatchUploadResult:
        """
        Upload files into a category as consecutive new versions.

        Args:
            project_id: Owning project
            category: Room/area label (trimmed; required)
            files: Files in upload order
            uploader: User performing the upload (capability checked upstream)
            progress: Called with (index, total, percent) as each file moves on
            should_continue: Polled before each file; returning False stops
                the batch (e.g. client disconnected)

        Returns:
            Per-file outcome of the batch

        Raises:
            DesignValidationError: missing category or no files
            DesignNotFound: unknown project
            CategoryFrozenError: category locked before the batch started
        """
        category = clean_category(category)
        if not category:
            raise DesignValidationError("category is required")
        if not files:
            raise DesignValidationError("At least one file is required")
        if not self.db.query(Project.id).filter(Project.id == project_id).first():
            raise DesignNotFound("Project", project_id)

        self.freeze_lock.ensure_category_open(project_id, category)

        total = len(files)
        result = BatchUploadResult(category=category, total=total)
        logger.info(
            f"[Upload] Batch of {total} file(s) into '{category}' by {uploader.email}",
            extra={"project_id": project_id, "category": category, "user_id": uploader.id}
        )

        for index, item in enumerate(files, start=1):
            if should_continue is not None and not should_continue():
                result.cancelled = True
                logger.warning(
                    f"[Upload] Batch stopped before file {index}/{total}",
                    extra={"project_id": project_id, "category": category}
                )
                break

            self._report(progress, index, total, 0)
            design = self._upload_one(project_id, category, item, uploader, result)
            if design is not None:
                result.succeeded.append(design)
            self._report(progress, index, total, 100)

        logger.info(
            f"[Upload] '{category}': {len(result.succeeded)} succeeded, {len(result.failed)} failed",
            extra={"project_id": project_id, "category": category}
        )
        return result

    def _upload_one(
        self,
        project_id: int,
        category: str,
        item: UploadItem,
        uploader: User,
        result: BatchUploadResult
    ) -> Optional[DesignFile]:
        if not item.file_name:
            result.failed.append(UploadFailure("", DesignValidationError.error_code, "file name is required"))
            return None

        # A reviewer may freeze the category while the batch is running
        if self.freeze_lock.is_category_frozen(project_id, category):
            error = CategoryFrozenError(project_id, category)
            result.failed.append(UploadFailure(item.file_name, error.error_code, error.message))
            return None

        path = build_object_path(project_id, category, item.file_name)
        try:
            file_url = self.store.put(path, item.data, item.content_type)
        except StorageFailure as e:
            logger.warning(
                f"[Upload] Storage failed for {item.file_name}: {e.message}",
                extra={"project_id": project_id, "category": category}
            )
            result.failed.append(UploadFailure(item.file_name, e.error_code, e.message))
            return None

        design = DesignFile(
            project_id=project_id,
            category=category,
            file_name=item.file_name,
            file_url=file_url,
            storage_path=path,
            file_type=infer_file_type(item.file_name, item.content_type),
            file_size=len(item.data),
            approval_status=ApprovalStatus.PENDING,
            is_current_approved=False,
            is_frozen=False,
            uploaded_by=uploader.id
        )
        try:
            self.allocator.allocate_and_insert(design)
            self.db.commit()
        except VersionConflictError as e:
            result.failed.append(UploadFailure(item.file_name, e.error_code, e.message))
            return None

        self.db.refresh(design)
        return design
