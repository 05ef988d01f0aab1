from __future__ import annotations
from typing import List, Optional
from pydantic import BaseModel, Field, model_validator

from models import Status, TeacherType

class TeacherProfileIn(BaseModel):
    user_id: str = Field(min_length=1, max_length=36)
    teacher_type: TeacherType = TeacherType.SUBJECT
    specialization: Optional[str] = Field(None, max_length=255)

class TeacherAssignmentIn(BaseModel):
    campus_id: str = Field(min_length=1, max_length=36)
    is_primary: bool = False
    status: Status = Status.ACTIVE

class TeacherUpsertIn(BaseModel):
    profile: TeacherProfileIn
    # None leaves the relation as is, a list (even empty) replaces it
    assignments: Optional[List[TeacherAssignmentIn]] = None
    subjects: Optional[List[str]] = None
    classes: Optional[List[str]] = None

    @model_validator(mode="after")
    def check_assignments(self):
        if self.assignments:
            ids = [a.campus_id for a in self.assignments]
            if len(ids) != len(set(ids)):
                raise ValueError("campus_id must be unique across assignments")
            if sum(1 for a in self.assignments if a.is_primary) > 1:
                raise ValueError("at most one assignment can be primary")
            if any(a.status == Status.ARCHIVED for a in self.assignments):
                raise ValueError("assignment status must be ACTIVE or INACTIVE")
        return self

class TeacherStatusIn(BaseModel):
    status: Status
