from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lus_emi.deps import get_db, get_current_user, require_roles
from lus_emi.models.user import Role, User
from lus_emi.realtime import manager
from lus_emi.schemas.qr_code import QrGenerate, QrGenerated, QrVerified, QrVerify
from lus_emi.services import qr_codes

router = APIRouter(prefix="/api/qr-codes", tags=["QR Codes"])


@router.post("/generate", response_model=QrGenerated, status_code=201)
def generate_qr(
    payload: QrGenerate,
    db: Session = Depends(get_db),
    merchant: User = Depends(require_roles(Role.MERCHANT)),
):
    qr_code, tx = qr_codes.generate(db, merchant, payload.transaction_id)
    return {
        "qr_id": qr_code.id,
        "qr_data": qr_code.qr_data,
        "expires_at": qr_code.expires_at,
        "reference": tx.reference,
    }


@router.post("/verify", response_model=QrVerified)
async def verify_qr(
    payload: QrVerify,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        tx = qr_codes.verify(db, current_user, payload.qr_data)
    except qr_codes.QrCodeExpiredError as e:
        await manager.broadcast("qr_code_expired", {
            "qr_id": str(e.qr_code.id),
            "transaction_id": str(e.qr_code.transaction_id),
        })
        raise

    return {
        "valid": True,
        "transaction": {
            "id": tx.id,
            "reference": tx.reference,
            "amount": float(tx.amount),
            "vmf_number": tx.vmf_number,
            "type": tx.type,
        },
    }
