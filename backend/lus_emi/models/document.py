import uuid
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Uuid
from lus_emi.database import Base, utc_now


class Document(Base):
    __tablename__ = "documents"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    transaction_id = Column(Uuid(as_uuid=True), ForeignKey("transactions.id"), nullable=True)
    organization_id = Column(Uuid(as_uuid=True), ForeignKey("organizations.id"), nullable=True)

    filename = Column(String, nullable=False)       # stored name under UPLOAD_DIR
    original_name = Column(String, nullable=False)
    mime_type = Column(String, nullable=False)
    size = Column(Integer, nullable=False)
    type = Column(String, nullable=False)           # vmf_merchant, vmf_cashbag, pacra, zra_tpin, ...

    created_at = Column(DateTime, default=utc_now)
