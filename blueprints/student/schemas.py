from __future__ import annotations
from datetime import date
from typing import Optional
from pydantic import BaseModel, Field

from models import Status

class StudentCreateIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=8, max_length=128)
    date_of_birth: date
    class_id: Optional[str] = Field(None, max_length=36)

class StudentUpdateIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    date_of_birth: date
    class_id: Optional[str] = Field(None, max_length=36)

class StudentClassIn(BaseModel):
    class_id: str = Field(min_length=1, max_length=36)

class StudentSearchIn(BaseModel):
    q: Optional[str] = None
    class_id: Optional[str] = None
    program_id: Optional[str] = None
    campus_id: Optional[str] = None
    status: Optional[Status] = None
    page: int = Field(1, ge=1)
    per_page: int = Field(20, ge=1, le=100)
