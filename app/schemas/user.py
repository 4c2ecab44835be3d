from pydantic import BaseModel, Field
from typing import Optional


class UserOut(BaseModel):
    id: str
    username: str
    bio: Optional[str] = None
    avatar: Optional[str] = None   # base64 opcional
    created_at: Optional[int] = None


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class Credentials(BaseModel):
    username: str = Field(..., min_length=1, max_length=40, description="Nombre de usuario")
    password: str = Field(..., min_length=1, description="Contraseña")
