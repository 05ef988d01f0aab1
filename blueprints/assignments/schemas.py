from __future__ import annotations
from typing import Literal
from pydantic import BaseModel, Field

class TeacherAssignIn(BaseModel):
    teacher_id: str = Field(min_length=1, max_length=36)
    is_primary: bool = False

class StudentAssignIn(BaseModel):
    student_id: str = Field(min_length=1, max_length=36)
    is_primary: bool = False

class AssignmentStatusIn(BaseModel):
    status: Literal["ACTIVE", "INACTIVE"]

class PrimaryCampusIn(BaseModel):
    campus_id: str = Field(min_length=1, max_length=36)
