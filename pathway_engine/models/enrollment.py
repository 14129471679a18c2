from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Enrollment:
    """A participant's membership in a track.

    Owned by the enrollment subsystem; the engine only reads it.
    """

    id: UUID
    user_id: UUID
    track_id: UUID
    assigned_pathway_id: UUID | None = None
    status: str = "active"  # active|inactive

    @staticmethod
    def new(
        *,
        user_id: UUID,
        track_id: UUID,
        assigned_pathway_id: UUID | None = None,
    ) -> Enrollment:
        return Enrollment(
            id=uuid4(),
            user_id=user_id,
            track_id=track_id,
            assigned_pathway_id=assigned_pathway_id,
        )
