from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lus_emi.deps import get_db, get_current_user
from lus_emi.models.user import User
from lus_emi.schemas.notification import NotificationRead
from lus_emi.services import notifications

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


@router.get("", response_model=list[NotificationRead])
def my_notifications(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return notifications.list_for_user(db, current_user.id)


@router.patch("/{notification_id}/read", response_model=NotificationRead)
def mark_read(
    notification_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return notifications.mark_read(db, current_user.id, notification_id)
