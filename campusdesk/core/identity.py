from __future__ import annotations

from dataclasses import dataclass

DEFAULT_STUDENT_ROLE_ID = "role_student"


@dataclass(slots=True, frozen=True)
class CurrentUser:
    """The authenticated operator as supplied by the identity provider."""

    id: str
    name: str
    role_id: str

    def is_student(self, student_role_id: str = DEFAULT_STUDENT_ROLE_ID) -> bool:
        return self.role_id == student_role_id
