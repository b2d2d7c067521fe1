from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lus_emi.deps import get_db, require_roles
from lus_emi.models.user import Role, User
from lus_emi.schemas.compliance import ComplianceReportRead, ReportGenerate, ReportStatusUpdate
from lus_emi.services import compliance

router = APIRouter(prefix="/api/compliance", tags=["Compliance"])

compliance_officer = require_roles(Role.FINANCE, Role.ADMIN)


@router.get("/reports", response_model=list[ComplianceReportRead])
def list_reports(
    db: Session = Depends(get_db),
    current_user: User = Depends(compliance_officer),
):
    return compliance.list_reports(db)


@router.post("/reports/generate", response_model=ComplianceReportRead, status_code=201)
def generate_report(
    payload: ReportGenerate,
    db: Session = Depends(get_db),
    current_user: User = Depends(compliance_officer),
):
    return compliance.generate_report(db, current_user, payload.report_type, payload.period)


@router.patch("/reports/{report_id}/status", response_model=ComplianceReportRead)
def update_report_status(
    report_id: UUID,
    payload: ReportStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(compliance_officer),
):
    return compliance.update_status(db, report_id, payload.status)
