from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError
from app.db.session import get_db
from app.models.language import Language
from app.schemas.language import LanguageIn, LanguageOut
from app.services.auth import AuthUser, get_current_admin

logger = logging.getLogger(__name__)

router = APIRouter(tags=["languages"])


def _to_language_out(row: Language) -> LanguageOut:
    return LanguageOut(id=row.id, name=row.name, code=row.code, is_active=row.is_active)


@router.get("/languages", response_model=list[LanguageOut])
async def list_languages(db: AsyncSession = Depends(get_db)) -> list[LanguageOut]:
    rows = (
        await db.execute(select(Language).where(Language.is_active.is_(True)).order_by(Language.name.asc()))
    ).scalars().all()
    return [_to_language_out(row) for row in rows]


@router.post("/admin/languages", response_model=LanguageOut, status_code=201)
async def create_language(
    payload: LanguageIn,
    db: AsyncSession = Depends(get_db),
    admin: AuthUser = Depends(get_current_admin),
) -> LanguageOut:
    name = payload.name.strip()
    code = payload.code.strip().lower()
    existing = (
        await db.execute(
            select(Language.id).where(or_(func.lower(Language.name) == name.lower(), Language.code == code))
        )
    ).first()
    if existing is not None:
        raise ConflictError("Language already exists")

    row = Language(name=name, code=code, is_active=payload.is_active)
    db.add(row)
    await db.commit()
    await db.refresh(row)
    logger.info("Admin %s added language %s", admin.user_id, row.code)
    return _to_language_out(row)
