# app/routers/users.py
from fastapi import APIRouter, Depends, HTTPException

from ..db import get_users
from ..security import get_current_user
from ..users import UserDirectory
from ..utils import to_id
from ..schemas.user import UserOut

router = APIRouter()


@router.get("/me", response_model=UserOut)
async def get_me(current=Depends(get_current_user)):
    return current


@router.get("/search/{username}", response_model=UserOut)
async def find_user_by_username(
    username: str,
    users: UserDirectory = Depends(get_users),
    current=Depends(get_current_user),
):
    doc = users.find_user_by_username(username)
    if not doc:
        raise HTTPException(404, "Usuario no encontrado")
    return to_id(doc)


@router.get("/{user_id}", response_model=UserOut)
async def find_user_by_id(
    user_id: str,
    users: UserDirectory = Depends(get_users),
    current=Depends(get_current_user),
):
    doc = users.find_user_by_id(user_id)
    if not doc:
        raise HTTPException(404, "Usuario no encontrado")
    return to_id(doc)
