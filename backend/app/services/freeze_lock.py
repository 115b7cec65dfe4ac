"""
Freeze lock for design categories.

Freezing is a review-control gesture ("stop changes while we finalize this
room"). The flag lives on individual design file rows; a category is locked
for uploads while ANY of its files is frozen. Several files may be frozen
independently, and unfreezing one of them releases the category only when
no other frozen file remains.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.models.design_file import DesignFile
from app.models.project import Project
from app.models.user import User
from app.services.category_grouper import clean_category
from app.services.design_errors import CategoryFrozenError, DesignNotFound

logger = logging.getLogger(__name__)


class FreezeLockService:
    """Sets, clears and queries design freeze flags."""

    def __init__(self, db: Session):
        self.db = db

    def _get_design(self, design_file_id: int) -> DesignFile:
        design = self.db.query(DesignFile).filter(DesignFile.id == design_file_id).first()
        if not design:
            raise DesignNotFound("Design file", design_file_id)
        return design

    def _get_project(self, project_id: int) -> Project:
        project = self.db.query(Project).filter(Project.id == project_id).first()
        if not project:
            raise DesignNotFound("Project", project_id)
        return project

    # ============ SINGLE FILE ============

    def freeze(self, design_file_id: int, user: User) -> DesignFile:
        """Freeze exactly the targeted file. Commits."""
        design = self._get_design(design_file_id)
        design.is_frozen = True
        design.frozen_at = datetime.now(timezone.utc)
        design.frozen_by = user.id
        self.db.commit()
        logger.info(
            f"[Freeze] '{design.category}' v{design.version_number} frozen by {user.email}",
            extra={"project_id": design.project_id, "design_file_id": design.id}
        )
        return design

    def unfreeze(self, design_file_id: int, user: User) -> DesignFile:
        """Clear the freeze flag on exactly the targeted file. Commits."""
        design = self._get_design(design_file_id)
        design.is_frozen = False
        design.frozen_at = None
        design.frozen_by = None
        self.db.commit()
        logger.info(
            f"[Freeze] '{design.category}' v{design.version_number} unfrozen by {user.email}",
            extra={"project_id": design.project_id, "design_file_id": design.id}
        )
        return design

    # ============ QUERIES ============

    def is_category_frozen(self, project_id: int, category: str) -> bool:
        return self.db.query(DesignFile.id).filter(
            DesignFile.project_id == project_id,
            DesignFile.category == category,
            DesignFile.is_frozen == True
        ).first() is not None

    def ensure_category_open(self, project_id: int, category: str) -> None:
        """Raise CategoryFrozenError when the category is locked for uploads."""
        if self.is_category_frozen(project_id, category):
            raise CategoryFrozenError(project_id, category)

    def freeze_status(self, project_id: int, category: Optional[str] = None) -> Dict[str, Any]:
        """Whether any file in the project (or one of its categories) is frozen."""
        self._get_project(project_id)
        if category is not None:
            # Same label uploads are checked against
            category = clean_category(category)
        query = self.db.query(DesignFile).filter(
            DesignFile.project_id == project_id,
            DesignFile.is_frozen == True
        )
        if category is not None:
            query = query.filter(DesignFile.category == category)
        frozen = query.order_by(DesignFile.frozen_at.desc()).all()
        latest = frozen[0] if frozen else None

        return {
            "project_id": project_id,
            "category": category,
            "is_frozen": bool(frozen),
            "frozen_count": len(frozen),
            "frozen_categories": sorted({d.category for d in frozen}),
            "frozen_at": latest.frozen_at if latest else None,
            "frozen_by": latest.frozen_by if latest else None,
        }

    # ============ PROJECT-WIDE ============

    def freeze_project(self, project_id: int, user: User, category: Optional[str] = None) -> int:
        """Freeze every file of the project (or one category). Returns the count."""
        self._get_project(project_id)
        query = self.db.query(DesignFile).filter(DesignFile.project_id == project_id)
        if category is not None:
            query = query.filter(DesignFile.category == category)
        count = query.update(
            {
                DesignFile.is_frozen: True,
                DesignFile.frozen_at: datetime.now(timezone.utc),
                DesignFile.frozen_by: user.id,
            },
            synchronize_session="fetch"
        )
        self.db.commit()
        logger.info(
            f"[Freeze] {count} design(s) frozen by {user.email}",
            extra={"project_id": project_id, "category": category}
        )
        return count

    def unfreeze_project(self, project_id: int, user: User, category: Optional[str] = None) -> int:
        """Unfreeze every file of the project (or one category). Returns the count."""
        self._get_project(project_id)
        query = self.db.query(DesignFile).filter(
            DesignFile.project_id == project_id,
            DesignFile.is_frozen == True
        )
        if category is not None:
            query = query.filter(DesignFile.category == category)
        count = query.update(
            {
                DesignFile.is_frozen: False,
                DesignFile.frozen_at: None,
                DesignFile.frozen_by: None,
            },
            synchronize_session="fetch"
        )
        self.db.commit()
        logger.info(
            f"[Freeze] {count} design(s) unfrozen by {user.email}",
            extra={"project_id": project_id, "category": category}
        )
        return count
