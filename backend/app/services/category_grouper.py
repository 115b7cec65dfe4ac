"""
Category grouping for design files.

Partitions a project's flat list of design files into per-room lineages
("Kitchen", "Bedroom", ...) ordered latest version first. Pure functions,
no database access.
"""
from typing import Any, Dict, Iterable, List, Optional

from app.models.design_file import UNCATEGORIZED


def clean_category(value: Optional[str]) -> Optional[str]:
    """Trim a category label; blank labels become None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def category_key(value: Optional[str]) -> str:
    """Grouping key for a stored category label."""
    return clean_category(value) or UNCATEGORIZED


def _version_sort_key(design) -> int:
    return design.version_number or 0


def group_by_category(files: Iterable[Any]) -> Dict[str, List[Any]]:
    """
    Group design files by category, latest version first.

    Categories come back in alphabetical order with "Uncategorized" last.
    The sort is stable, so equal version numbers keep their input order.
    """
    groups: Dict[str, List[Any]] = {}
    for design in files:
        groups.setdefault(category_key(design.category), []).append(design)

    ordered = sorted(groups, key=lambda name: (name == UNCATEGORIZED, name.lower()))
    return {
        name: sorted(groups[name], key=_version_sort_key, reverse=True)
        for name in ordered
    }


def summarize_categories(files: Iterable[Any]) -> List[Dict[str, Any]]:
    """Build the per-category payload returned by the list endpoint."""
    summaries = []
    for name, designs in group_by_category(files).items():
        current = next((d for d in designs if d.is_current_approved), None)
        summaries.append({
            "name": name,
            "files": designs,
            "latest_version": designs[0].version_number if designs else None,
            "is_frozen": any(d.is_frozen for d in designs),
            "current_approved_id": current.id if current else None,
        })
    return summaries
