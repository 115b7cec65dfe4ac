"""
Version allocation for design file lineages.

Version numbers are per (project, category), start at 1 and are never
handed out twice, including after the file holding them is deleted. Two
guards enforce this:

- a high-water-mark row in design_category_versions, locked FOR UPDATE
  while a new version is reserved;
- the unique (project_id, category, version_number) constraint on
  design_files, which rejects the loser of any race the lock did not
  serialize (e.g. two writers creating the first version of a category).

A lost race surfaces as VersionConflictError; nothing retries silently.
"""
import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.design_file import DesignFile, DesignCategoryVersion
from app.services.design_errors import VersionConflictError

logger = logging.getLogger(__name__)


class VersionAllocator:
    """Computes and reserves version numbers for one database session."""

    def __init__(self, db: Session):
        self.db = db

    def _get_counter(self, project_id: int, category: str, lock: bool = False) -> Optional[DesignCategoryVersion]:
        query = self.db.query(DesignCategoryVersion).filter(
            DesignCategoryVersion.project_id == project_id,
            DesignCategoryVersion.category == category
        )
        if lock:
            query = query.with_for_update()
        return query.first()

    def _max_existing(self, project_id: int, category: str) -> int:
        return self.db.query(func.max(DesignFile.version_number)).filter(
            DesignFile.project_id == project_id,
            DesignFile.category == category
        ).scalar() or 0

    def next_version(self, project_id: int, category: str, lock: bool = False) -> int:
        """Return max(allocated so far) + 1, or 1 for a new category."""
        counter = self._get_counter(project_id, category, lock=lock)
        high_water = counter.last_version if counter else 0
        return max(high_water, self._max_existing(project_id, category)) + 1

    def reserve(self, project_id: int, category: str, version_number: int) -> None:
        """
        Advance the high-water mark to version_number.

        Raises:
            VersionConflictError: if the slot was already allocated
        """
        counter = self._get_counter(project_id, category, lock=True)
        if counter is None:
            self.db.add(DesignCategoryVersion(
                project_id=project_id,
                category=category,
                last_version=version_number
            ))
            return
        if version_number <= counter.last_version:
            raise VersionConflictError(project_id, category, version_number)
        counter.last_version = version_number

    def insert(self, design: DesignFile) -> DesignFile:
        """
        Insert a design file carrying an already computed version number.

        The caller's transaction is rolled back on conflict; commit is left
        to the caller on success.

        Raises:
            VersionConflictError: if another writer holds the slot
        """
        project_id, category, version = design.project_id, design.category, design.version_number
        try:
            self.reserve(project_id, category, version)
            self.db.add(design)
            self.db.flush()
        except VersionConflictError:
            self.db.rollback()
            logger.warning(
                f"[Versions] Stale version {version} for '{category}' rejected",
                extra={"project_id": project_id, "category": category}
            )
            raise
        except IntegrityError:
            self.db.rollback()
            logger.warning(
                f"[Versions] Unique constraint rejected '{category}' v{version}",
                extra={"project_id": project_id, "category": category}
            )
            raise VersionConflictError(project_id, category, version)

        logger.info(
            f"[Versions] Allocated '{category}' v{version}",
            extra={"project_id": project_id, "category": category}
        )
        return design

    def allocate_and_insert(self, design: DesignFile) -> DesignFile:
        """Assign the next version to design and insert it in one transaction."""
        design.version_number = self.next_version(design.project_id, design.category, lock=True)
        return self.insert(design)
