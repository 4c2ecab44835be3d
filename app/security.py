from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext

from .config import get_settings
from .db import get_users
from .users import UserDirectory
from .utils import to_id

settings = get_settings()
ALGO = "HS256"
pwd = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def hash_password(plain: str) -> str:
    return pwd.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd.verify(plain, hashed)


def create_access_token(user_id: str, expires_hours: Optional[int] = None) -> str:
    expire = datetime.now(timezone.utc) + timedelta(hours=expires_hours or settings.jwt_expires_hours)
    payload = {"sub": user_id, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGO)


def decode_user_id(token: str) -> Optional[str]:
    """Devuelve el user_id del token JWT o None si no es válido"""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[ALGO])
    except JWTError:
        return None
    sub = payload.get("sub")
    return str(sub) if sub else None


async def get_current_user_id(token: str = Depends(oauth2_scheme)) -> str:
    user_id = decode_user_id(token)
    if not user_id:
        raise HTTPException(status_code=401, detail="Token inválido")
    return user_id


async def get_current_user(
    users: UserDirectory = Depends(get_users),
    user_id: str = Depends(get_current_user_id),
):
    doc = users.find_user_by_id(user_id)
    if not doc:
        raise HTTPException(status_code=401, detail="Usuario no encontrado")
    return to_id(doc)
