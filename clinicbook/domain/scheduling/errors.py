"""Typed failures of the booking engine.

Every error carries a ``kind`` so the API layer can translate it into a transport
response without inspecting messages. None of these are retried by the core.
"""

from typing import Optional


class SchedulingError(Exception):
    kind = "scheduling_error"
    status_code = 400

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason

    def to_dict(self) -> dict:
        return {"detail": self.message, "error": self.kind, "reason": self.reason}


class EntityNotFound(SchedulingError):
    kind = "entity_not_found"
    status_code = 404

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found or inactive", reason=entity.lower())
        self.entity = entity
        self.entity_id = entity_id


class InvalidInterval(SchedulingError):
    kind = "invalid_interval"
    status_code = 400


class StaffUnavailable(SchedulingError):
    kind = "staff_unavailable"
    status_code = 422


class SchedulingConflict(SchedulingError):
    kind = "scheduling_conflict"
    status_code = 409

    def __init__(self, message: str, reason: Optional[str] = None, conflicting_ids: Optional[list[int]] = None):
        super().__init__(message, reason=reason)
        self.conflicting_ids = conflicting_ids or []

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["conflictingIds"] = self.conflicting_ids
        return data


class ConcurrencyConflict(SchedulingConflict):
    """The storage backstop fired after the application check passed (a race was caught).

    Presented to callers exactly like ``SchedulingConflict``.
    """

    kind = "scheduling_conflict"


class InvalidTransition(SchedulingError):
    kind = "invalid_transition"
    status_code = 409
