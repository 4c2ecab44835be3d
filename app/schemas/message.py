from pydantic import BaseModel, Field
from typing import Literal, Optional

from .user import UserOut

MessageType = Literal["text", "image"]


class MessageCreate(BaseModel):
    receiver_id: str = Field(..., min_length=1, description="Usuario que recibe el mensaje")
    type: MessageType = "text"
    content: str = Field(..., min_length=1, description="Texto plano o imagen en base64")
    duration: Optional[int] = Field(None, gt=0, description="Vida del mensaje tras verse (ms)")


class MessageOut(BaseModel):
    id: str
    sender_id: str
    receiver_id: str
    type: MessageType
    content: str
    timestamp: int
    viewed_at: Optional[int] = None
    expires_at: Optional[int] = None
    duration: int


class ChatPreview(BaseModel):
    other_user: UserOut
    last_message: Optional[MessageOut] = None
    unread_count: int = 0
