from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer
from ..models.messages import Message, as_utc


def format_sent_at(value: datetime) -> str:
    """Render a timestamp as yyyy-MM-dd'T'HH:mm:ss.SSSXXX (UTC renders as Z)."""
    text = as_utc(value).isoformat(timespec='milliseconds')
    if text.endswith('+00:00'):
        text = text[:-6] + 'Z'
    return text


class MessageIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sender_id: int = Field(alias='senderId')
    receiver_id: int = Field(alias='receiverId')
    content: Optional[str] = None
    application_id: Optional[int] = Field(default=None, alias='applicationId')
    is_read: Optional[bool] = Field(default=None, alias='isRead')
    sent_at: Optional[datetime] = Field(default=None, alias='sentAt')

    def to_message(self) -> Message:
        return Message(**self.model_dump())


class MessageOut(BaseModel):
    """Transfer shape of a message: HTTP responses and live pushes."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    sender_id: int = Field(alias='senderId')
    receiver_id: int = Field(alias='receiverId')
    content: Optional[str] = None
    is_read: Optional[bool] = Field(default=None, alias='isRead')
    sent_at: Optional[datetime] = Field(default=None, alias='sentAt')
    application_id: Optional[int] = Field(default=None, alias='applicationId')

    @field_serializer('sent_at')
    def _serialize_sent_at(self, value: Optional[datetime]):
        return format_sent_at(value) if value is not None else None

    @classmethod
    def from_message(cls, message: Message) -> 'MessageOut':
        return cls(**message.model_dump())

    def to_json(self) -> dict:
        return self.model_dump(mode='json', by_alias=True)


def envelope(data: Any = None, message: str = None, error: str = None, success: bool = True) -> dict:
    """Wrap a payload as {success, data?, message?, error?}."""
    body = {'success': success}
    if data is not None:
        body['data'] = data
    if message is not None:
        body['message'] = message
    if error is not None:
        body['error'] = error
    return body
