from fastapi import APIRouter, Depends, HTTPException, status, Request
from pydantic import BaseModel, Field, field_validator
from ..db import get_users
from ..schemas.user import Credentials, Token, UserOut
from ..security import hash_password, verify_password, create_access_token
from ..users import UserDirectory, UsernameTaken
from ..utils import to_id
from ..middleware.rate_limit import apply_rate_limit
import re
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

USERNAME_RE = re.compile(r"^[A-Za-z0-9_.-]{2,40}$")


def validate_password_strength(password: str) -> str:
    """Valida que la contraseña tenga al menos 6 caracteres"""
    if len(password) < 6:
        raise ValueError("La contraseña debe tener al menos 6 caracteres")
    if password.isdigit() or password.isalpha():
        logger.warning("Contraseña débil detectada (solo números o solo letras)")
    return password


class Register(BaseModel):
    username: str = Field(..., description="Nombre de usuario (2-40 caracteres)")
    password: str = Field(..., min_length=6, max_length=128, description="Contraseña (mín. 6 caracteres)")
    bio: str | None = Field(None, max_length=500, description="Biografía del usuario")

    @field_validator('username')
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        if not USERNAME_RE.match(v):
            raise ValueError("Nombre de usuario inválido: 2-40 caracteres alfanuméricos, '.', '-' o '_'")
        return v

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        return validate_password_strength(v)


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def register(request: Request, payload: Register, users: UserDirectory = Depends(get_users)):
    # Rate limiting: máximo 5 registros por minuto por IP
    apply_rate_limit(request, "5/minute")

    try:
        doc = users.create_user(payload.username, hash_password(payload.password), payload.bio)
    except UsernameTaken:
        raise HTTPException(409, "Nombre de usuario ya registrado")
    logger.info(f"User registered: {doc['username']}")
    return to_id(doc)


@router.post("/login", response_model=Token)
async def login(request: Request, payload: Credentials, users: UserDirectory = Depends(get_users)):
    # Rate limiting: máximo 10 intentos de login por minuto por IP
    apply_rate_limit(request, "10/minute")

    user = users.find_user_by_username(payload.username)
    if not user or not verify_password(payload.password, user.get("password_hash", "")):
        raise HTTPException(401, "Credenciales inválidas")
    token = create_access_token(str(user["_id"]))
    return {"access_token": token, "token_type": "bearer", "user": to_id(user)}
