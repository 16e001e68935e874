from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class Message(BaseModel):
    """A direct message between two users, as stored in the `messages` collection."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    sender_id: int = Field(alias='senderId')
    receiver_id: int = Field(alias='receiverId')
    content: Optional[str] = None
    is_read: Optional[bool] = Field(default=None, alias='isRead')
    sent_at: Optional[datetime] = Field(default=None, alias='sentAt')
    application_id: Optional[int] = Field(default=None, alias='applicationId')


def utc_now() -> datetime:
    # mongo keeps milliseconds only
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def populate_defaults(message: Message) -> None:
    """Fill sentAt and isRead on a message that is about to be persisted.

    Only absent fields are touched, so a timestamp is never recomputed once set.
    """
    if message.sent_at is None:
        message.sent_at = utc_now()
    if message.is_read is None:
        message.is_read = False
