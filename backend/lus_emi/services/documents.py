import uuid
from pathlib import Path
from uuid import UUID

from sqlalchemy.orm import Session

from lus_emi.core.config import settings
from lus_emi.core.errors import PermissionDeniedError, ValidationError
from lus_emi.core.logging import get_logger
from lus_emi.models.document import Document
from lus_emi.models.transaction import Transaction
from lus_emi.models.user import Role, User
from lus_emi.services.transactions import get_transaction

logger = get_logger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png"}
ALLOWED_MIME_TYPES = {"image/jpeg", "image/jpg", "image/png"}

DOCUMENT_TYPES = {"vmf_merchant", "vmf_cashbag", "pacra", "zra_tpin", "kyc", "compliance"}


def validate_upload(filename: str | None, content_type: str | None, content: bytes) -> str:
    """Returns the normalised file extension."""
    if not filename or not content:
        raise ValidationError("No file uploaded")

    extension = Path(filename).suffix.lower()
    if extension not in ALLOWED_EXTENSIONS or (content_type or "").lower() not in ALLOWED_MIME_TYPES:
        raise ValidationError("Only JPEG and PNG images are allowed.")

    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise ValidationError(
            f"File too large. Maximum size is {settings.MAX_UPLOAD_BYTES // (1024 * 1024)}MB."
        )
    if len(content) < settings.MIN_UPLOAD_BYTES:
        raise ValidationError("File is too small. Please upload a valid document.")
    return extension


def _can_access(user: User, tx: Transaction) -> bool:
    if user.role in (Role.ADMIN, Role.FINANCE):
        return True
    return user.id in (tx.to_user_id, tx.processed_by, tx.assigned_cashier_id)


def save_document(
    db: Session,
    user: User,
    filename: str | None,
    content_type: str | None,
    content: bytes,
    document_type: str,
    transaction_id: UUID | None = None,
) -> Document:
    extension = validate_upload(filename, content_type, content)
    if document_type not in DOCUMENT_TYPES:
        raise ValidationError(f"Unknown document type '{document_type}'")

    if transaction_id:
        tx = get_transaction(db, transaction_id)
        if not _can_access(user, tx):
            raise PermissionDeniedError("Cannot attach documents to this transaction")

    upload_dir = Path(settings.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    stored_name = f"{uuid.uuid4().hex}{extension}"
    (upload_dir / stored_name).write_bytes(content)

    document = Document(
        user_id=user.id,
        transaction_id=transaction_id,
        organization_id=user.organization_id,
        filename=stored_name,
        original_name=Path(filename).name,
        mime_type=content_type.lower(),
        size=len(content),
        type=document_type,
    )
    db.add(document)
    db.commit()
    db.refresh(document)
    logger.info(
        "document_uploaded",
        document_id=str(document.id),
        type=document_type,
        size=document.size,
        transaction_id=str(transaction_id) if transaction_id else None,
    )
    return document


def list_for_transaction(db: Session, user: User, transaction_id: UUID) -> list[Document]:
    tx = get_transaction(db, transaction_id)
    if not _can_access(user, tx):
        raise PermissionDeniedError("Cannot view documents of this transaction")
    return (
        db.query(Document)
        .filter(Document.transaction_id == transaction_id)
        .order_by(Document.created_at)
        .all()
    )
