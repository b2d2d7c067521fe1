import enum
import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, JSON, Uuid
from lus_emi.database import Base, str_enum, utc_now


class ReportType(str, enum.Enum):
    DAILY_SUMMARY = "daily_summary"
    WEEKLY_COMPLIANCE = "weekly_compliance"
    MONTHLY_REGULATORY = "monthly_regulatory"


class ReportStatus(str, enum.Enum):
    GENERATED = "generated"
    SUBMITTED = "submitted"
    ACKNOWLEDGED = "acknowledged"


class ComplianceReport(Base):
    __tablename__ = "compliance_reports"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    report_type = Column(str_enum(ReportType), nullable=False)
    period = Column(String, nullable=False)  # 2026-10-16 | 2026-W42 | 2026-10
    report_data = Column(JSON, nullable=False)

    status = Column(str_enum(ReportStatus), nullable=False, default=ReportStatus.GENERATED)
    generated_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)
    submitted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now, index=True)
