from __future__ import annotations

from pydantic import BaseModel, Field


class LanguageIn(BaseModel):
    name: str = Field(min_length=2, max_length=80)
    code: str = Field(min_length=2, max_length=12)
    is_active: bool = True


class LanguageOut(BaseModel):
    id: int
    name: str
    code: str
    is_active: bool
