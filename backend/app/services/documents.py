"""Document metadata attached to filings.

A document is visible to whoever can see its filing. Editing and deleting
are limited to the uploader and admins; verification to the filing's CA
and admins.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.permissions import ensure_can_access, ensure_role, scope_clause
from app.middleware.exceptions import (
    AccessDeniedError,
    ResourceNotFoundError,
    ValidationFailedError,
)
from app.models.client import Client
from app.models.document import Document, DocumentType
from app.models.filing import Filing
from app.models.notification import NotificationCategory, NotificationType
from app.models.user import User, UserRole
from app.schemas.document import DocumentCreate, DocumentUpdate
from app.services.filings import get_filing
from app.services.notifications import notify

logger = logging.getLogger(__name__)


async def get_document(db: AsyncSession, user: User, document_id: str) -> Document:
    result = await db.execute(select(Document).where(Document.id == document_id))
    document = result.scalar_one_or_none()
    if not document:
        raise ResourceNotFoundError("Document")
    filing = document.filing
    ensure_can_access(user, "Document", filing.client.user_id, filing.ca_id)
    return document


def _ensure_uploader_or_admin(user: User, document: Document, action: str) -> None:
    if user.role != UserRole.ADMIN and document.uploaded_by != user.id:
        raise AccessDeniedError(f"Only the uploader or an admin can {action} this document")


async def create_document(db: AsyncSession, user: User, body: DocumentCreate) -> Document:
    filing = await get_filing(db, user, body.filing_id)
    document = Document(
        filing=filing,
        uploaded_by=user.id,
        document_type=body.document_type,
        file_name=body.file_name,
        file_path=body.file_path,
        file_size=body.file_size,
        mime_type=body.mime_type,
        is_verified=False,
        notes=body.notes,
    )
    db.add(document)
    await db.flush()

    logger.info("Document %s (%s) added to filing %s", document.id, body.document_type.value, filing.id)
    return document


def _scoped(query, user: User, *filters):
    """Restrict a Document query to what `user` may see through the filing."""
    return (
        query.join(Filing, Document.filing_id == Filing.id)
        .join(Client, Filing.client_id == Client.id)
        .where(scope_clause(user, Client.user_id, Filing.ca_id), *filters)
    )


async def list_documents(
    db: AsyncSession,
    user: User,
    *,
    filing_id: str | None = None,
    document_type: DocumentType | None = None,
    is_verified: bool | None = None,
    offset: int = 0,
    limit: int = 10,
) -> tuple[list[Document], int]:
    filters = []
    if filing_id:
        filters.append(Document.filing_id == filing_id)
    if document_type is not None:
        filters.append(Document.document_type == document_type)
    if is_verified is not None:
        filters.append(Document.is_verified.is_(is_verified))

    total = (
        await db.execute(_scoped(select(func.count()).select_from(Document), user, *filters))
    ).scalar() or 0
    result = await db.execute(
        _scoped(select(Document), user, *filters)
        .order_by(Document.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def update_document(
    db: AsyncSession, user: User, document_id: str, body: DocumentUpdate
) -> Document:
    document = await get_document(db, user, document_id)
    _ensure_uploader_or_admin(user, document, "update")
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(document, key, value)
    await db.flush()
    return document


async def delete_document(db: AsyncSession, user: User, document_id: str) -> None:
    document = await get_document(db, user, document_id)
    _ensure_uploader_or_admin(user, document, "delete")
    await db.delete(document)
    await db.flush()
    logger.info("Deleted document %s", document_id)


async def verify_document(
    db: AsyncSession, user: User, document_id: str, notes: str | None = None
) -> Document:
    ensure_role(
        user, UserRole.CA, UserRole.ADMIN, message="Only CAs and admins can verify documents"
    )
    document = await get_document(db, user, document_id)
    if user.role == UserRole.CA and document.filing.ca_id != user.id:
        raise AccessDeniedError("You are not assigned to this filing")
    if document.is_verified:
        raise ValidationFailedError("Document is already verified")

    document.is_verified = True
    document.verified_by = user.id
    document.verified_at = datetime.utcnow()
    if notes is not None:
        document.notes = notes

    notify(
        db,
        document.uploaded_by,
        title="Document verified",
        body=f"Your document {document.file_name} has been verified",
        type=NotificationType.SUCCESS,
        category=NotificationCategory.DOCUMENT,
        action_url=f"/filings/{document.filing_id}",
    )
    await db.flush()

    logger.info("Document %s verified by %s", document.id, user.id)
    return document



# ── Stats and review queue ──────────────────────────────────


async def document_stats(db: AsyncSession, user: User, now: datetime | None = None) -> dict:
    """Counts, sizes and type breakdown of the documents in scope."""
    since = (now or datetime.utcnow()) - timedelta(hours=24)
    totals = (
        await db.execute(
            _scoped(
                select(
                    func.count(Document.id),
                    func.count(Document.id).filter(Document.is_verified.is_(True)),
                    func.count(Document.id).filter(Document.created_at >= since),
                    func.coalesce(func.sum(Document.file_size), 0),
                ).select_from(Document),
                user,
            )
        )
    ).one()
    by_type = await db.execute(
        _scoped(select(Document.document_type, func.count()).select_from(Document), user)
        .group_by(Document.document_type)
    )

    total, verified, recent, size = totals
    return {
        "total_documents": total,
        "verified_documents": verified,
        "pending_verification": total - verified,
        "documents_by_type": {row[0].value: row[1] for row in by_type.all()},
        "recent_uploads": recent,
        "total_file_size": int(size),
    }


async def list_unverified(
    db: AsyncSession,
    user: User,
    *,
    offset: int = 0,
    limit: int = 10,
) -> tuple[list[Document], int]:
    """Documents awaiting verification, oldest first."""
    ensure_role(
        user, UserRole.CA, UserRole.ADMIN, message="Only CAs and admins can review documents"
    )
    pending = Document.is_verified.is_(False)
    total = (
        await db.execute(_scoped(select(func.count()).select_from(Document), user, pending))
    ).scalar() or 0
    result = await db.execute(
        _scoped(select(Document), user, pending)
        .order_by(Document.created_at)
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all()), total
