"""
ProjectSource -- read-only capability over project records.

The Milestone Tracking Engine holds a ProjectSource instead of the
Project Escrow service itself.  Any object with a matching
``get_project`` satisfies it, which lets tests substitute a fake.
"""

from typing import Protocol, runtime_checkable

from escrow_kernel.domain.dtos import ProjectInfo


@runtime_checkable
class ProjectSource(Protocol):
    """Resolves project snapshots by id."""

    def get_project(self, project_id: int) -> ProjectInfo | None:
        """Return the current project snapshot, or None if absent."""
        ...
