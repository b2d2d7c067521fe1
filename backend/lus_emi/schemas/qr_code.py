from pydantic import BaseModel
from uuid import UUID
from datetime import datetime

from lus_emi.models.transaction import TransactionType

class QrGenerate(BaseModel):
    transaction_id: UUID

class QrGenerated(BaseModel):
    qr_id: UUID
    qr_data: str
    expires_at: datetime
    reference: str

class QrVerify(BaseModel):
    qr_data: str

class QrTransactionSummary(BaseModel):
    id: UUID
    reference: str
    amount: float
    vmf_number: str | None = None
    type: TransactionType

class QrVerified(BaseModel):
    valid: bool
    transaction: QrTransactionSummary
