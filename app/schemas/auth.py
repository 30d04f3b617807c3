from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class UserOut(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    name: str
    role: str
    status: str
    languages: list[str] = Field(default_factory=list)
    hourly_rate: int | None = None
    balance: float = 0.0
    bio: str | None = None
    default_meeting_link: str | None = None
    created_at: datetime


class SignupIn(BaseModel):
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=8, max_length=200)
    first_name: str = Field(default="", max_length=120)
    last_name: str = Field(default="", max_length=120)
    role: str = Field(default="student", max_length=20)
    languages: list[str] | None = None
    hourly_rate: int | None = Field(default=None, ge=0, le=10000)
    bio: str | None = Field(default=None, max_length=6000)


class LoginIn(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1, max_length=200)


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class AdminUserUpdateIn(BaseModel):
    first_name: str | None = Field(default=None, max_length=120)
    last_name: str | None = Field(default=None, max_length=120)
    role: str | None = Field(default=None, max_length=20)
    status: str | None = Field(default=None, max_length=20)
    hourly_rate: int | None = None
    languages: list[str] | None = None
    bio: str | None = Field(default=None, max_length=6000)
