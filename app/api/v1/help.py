from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_user_by_id
from app.core.errors import NotFoundError, ValidationError
from app.db.session import get_db
from app.models.common import utcnow
from app.models.help import TICKET_STATUSES, SupportTicket
from app.models.user import User
from app.schemas.help import SupportTicketCreateIn, SupportTicketOut, SupportTicketStatusUpdateIn
from app.services.auth import AuthUser, get_current_admin, get_current_user

router = APIRouter(tags=["support"])


_TICKET_STATUS_ALIASES = {
    "open": "open",
    "opened": "open",
    "new": "open",
    "in_progress": "in_progress",
    "in-progress": "in_progress",
    "in progress": "in_progress",
    "pending": "in_progress",
    "resolved": "closed",
    "done": "closed",
    "closed": "closed",
}
_CATEGORIES = {"general", "technical", "billing", "account", "lesson"}


def _normalize_status(raw: str | None) -> str:
    key = str(raw or "").strip().lower()
    norm = _TICKET_STATUS_ALIASES.get(key, key)
    if norm not in TICKET_STATUSES:
        raise ValidationError("Invalid ticket status")
    return norm


def _normalize_category(raw: str | None) -> str:
    key = str(raw or "").strip().lower()
    if key not in _CATEGORIES:
        raise ValidationError("Invalid ticket category")
    return key


def _as_ticket_out(ticket: SupportTicket, requester: User) -> SupportTicketOut:
    return SupportTicketOut(
        id=ticket.id,
        user_id=ticket.user_id,
        requester_name=requester.full_name or requester.email,
        requester_email=requester.email,
        subject=ticket.subject,
        category=ticket.category,
        status=ticket.status,
        message=ticket.message,
        resolution_note=ticket.resolution_note,
        created_at=ticket.created_at,
        updated_at=ticket.updated_at,
        resolved_at=ticket.resolved_at,
    )


@router.post("/support", response_model=SupportTicketOut, status_code=201)
async def create_support_ticket(
    payload: SupportTicketCreateIn,
    db: AsyncSession = Depends(get_db),
    current_user: AuthUser = Depends(get_current_user),
) -> SupportTicketOut:
    me = await get_user_by_id(db, current_user.user_id)

    row = SupportTicket(
        user_id=me.id,
        subject=payload.subject.strip(),
        category=_normalize_category(payload.category),
        status="open",
        message=payload.message.strip(),
    )
    db.add(row)
    await db.commit()
    await db.refresh(row)
    return _as_ticket_out(row, me)


@router.get("/admin/support", response_model=list[SupportTicketOut])
async def list_support_tickets(
    status: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    _admin: AuthUser = Depends(get_current_admin),
) -> list[SupportTicketOut]:
    stmt = select(SupportTicket, User).join(User, User.id == SupportTicket.user_id)
    if status:
        stmt = stmt.where(SupportTicket.status == _normalize_status(status))
    rows = (
        await db.execute(stmt.order_by(SupportTicket.created_at.desc(), SupportTicket.id.desc()).limit(limit))
    ).all()
    return [_as_ticket_out(ticket, requester) for ticket, requester in rows]


@router.patch("/admin/support/{ticket_id}", response_model=SupportTicketOut)
async def update_support_ticket_status(
    ticket_id: int,
    payload: SupportTicketStatusUpdateIn,
    db: AsyncSession = Depends(get_db),
    _admin: AuthUser = Depends(get_current_admin),
) -> SupportTicketOut:
    row = (
        await db.execute(
            select(SupportTicket, User)
            .join(User, User.id == SupportTicket.user_id)
            .where(SupportTicket.id == ticket_id)
        )
    ).one_or_none()
    if row is None:
        raise NotFoundError("Ticket not found")
    ticket, requester = row[0], row[1]

    next_status = _normalize_status(payload.status)
    ticket.status = next_status
    if payload.resolution_note is not None:
        ticket.resolution_note = payload.resolution_note.strip() or None
    ticket.resolved_at = utcnow() if next_status == "closed" else None

    await db.commit()
    await db.refresh(ticket)
    return _as_ticket_out(ticket, requester)
