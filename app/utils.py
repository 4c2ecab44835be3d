# app/utils.py
from typing import Any, Dict, Optional
import time
from bson import ObjectId

from .errors import NotFound


def to_id(doc: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Convierte _id -> id (str) y todos los ObjectIds a strings.
    Si doc es None, devuelve {}.
    Nunca devuelve el hash de la contraseña.
    """
    if doc is None:
        return {}
    d = dict(doc)

    # Convertir _id a id
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    d.pop("password_hash", None)

    for key, value in d.items():
        if isinstance(value, ObjectId):
            d[key] = str(value)
        elif isinstance(value, dict):
            d[key] = to_id(value)

    return d


def to_object_id(value: str, field_name: str = "id") -> ObjectId:
    """
    Convierte un string a ObjectId con validación.
    Un id mal formado no puede existir en el almacén, así que se trata como NotFound.
    """
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise NotFound(f"{field_name} inválido: {value}")
    return ObjectId(value)


def now_ms() -> int:
    """Reloj por defecto: epoch en milisegundos"""
    return int(time.time() * 1000)
