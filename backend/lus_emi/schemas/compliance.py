from pydantic import BaseModel
from uuid import UUID
from datetime import datetime
from typing import Any, Optional

from lus_emi.models.compliance import ReportStatus, ReportType

class ReportGenerate(BaseModel):
    report_type: ReportType
    period: str

class ReportStatusUpdate(BaseModel):
    status: ReportStatus

class ComplianceReportRead(BaseModel):
    id: UUID
    report_type: ReportType
    period: str
    report_data: dict[str, Any]
    status: ReportStatus
    generated_by: Optional[UUID] = None
    submitted_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True
