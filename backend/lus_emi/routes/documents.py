from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.orm import Session

from lus_emi.deps import get_db, get_current_user
from lus_emi.models.user import User
from lus_emi.schemas.document import DocumentRead
from lus_emi.services import documents

router = APIRouter(prefix="/api", tags=["Documents"])


@router.post("/documents", response_model=DocumentRead, status_code=201)
async def upload_document(
    file: Optional[UploadFile] = File(None),
    type: str = Form(...),
    transaction_id: Optional[UUID] = Form(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if file is None:
        raise HTTPException(status_code=400, detail="No file uploaded")

    content = await file.read()
    return documents.save_document(
        db,
        current_user,
        filename=file.filename,
        content_type=file.content_type,
        content=content,
        document_type=type,
        transaction_id=transaction_id,
    )


@router.get("/transactions/{tx_id}/documents", response_model=list[DocumentRead])
def transaction_documents(
    tx_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return documents.list_for_transaction(db, current_user, tx_id)
