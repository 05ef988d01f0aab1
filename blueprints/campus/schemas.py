from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from models import CampusType, Status

class CampusIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    code: str = Field(min_length=1, max_length=50)
    type: CampusType = CampusType.MAIN
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    status: Status = Status.ACTIVE

class CampusOut(CampusIn):
    model_config = ConfigDict(from_attributes=True)

    id: str
