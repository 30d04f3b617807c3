from __future__ import annotations

from sqlalchemy import Boolean, CheckConstraint, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.common import TimestampMixin

USER_ROLES = ("student", "teacher", "admin")
USER_STATUSES = ("active", "pending", "inactive", "suspended")


class User(TimestampMixin, Base):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        CheckConstraint("role in ('student','teacher','admin')", name="ck_users_role"),
        CheckConstraint("status in ('active','pending','inactive','suspended')", name="ck_users_status"),
        CheckConstraint("balance_cents >= 0", name="ck_users_balance_non_negative"),
        CheckConstraint("hourly_rate IS NULL OR hourly_rate >= 0", name="ck_users_hourly_rate_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), default="student", index=True, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="active", index=True, nullable=False)
    # Comma-joined, e.g. "Spanish, French".
    language: Mapped[str | None] = mapped_column(String(500), nullable=True)
    hourly_rate: Mapped[int | None] = mapped_column(Integer, nullable=True)
    balance_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    default_meeting_link: Mapped[str | None] = mapped_column(String(1200), nullable=True)
    free_demo_available: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    trial_class_price_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def languages(self) -> list[str]:
        return split_languages(self.language)


def split_languages(raw: str | None) -> list[str]:
    return [x.strip() for x in (raw or "").split(",") if x.strip()]


def join_languages(values: list[str] | None) -> str | None:
    cleaned = [x.strip() for x in (values or []) if x and x.strip()]
    return ", ".join(cleaned) or None
