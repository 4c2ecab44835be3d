"""
Middleware para aplicar rate limiting a endpoints específicos usando slowapi
"""
from fastapi import Request, HTTPException
from limits import parse
from slowapi.util import get_remote_address


def apply_rate_limit(request: Request, limit: str):
    """
    Aplica rate limiting a un endpoint específico.
    Uso: apply_rate_limit(request, "5/minute")

    Si el limiter no está configurado (por ejemplo, en tests), la función no hace nada.
    """
    # Obtener el limiter del state usando getattr para evitar errores si no existe
    limiter = getattr(request.app.state, "limiter", None)

    # Si no hay limiter configurado (por ejemplo, en tests), saltar rate limiting
    if limiter is None or not limiter.enabled:
        return

    key = get_remote_address(request)

    # hit() incrementa el contador y devuelve False si ya se ha superado el límite
    if not limiter.limiter.hit(parse(limit), key, request.url.path):
        raise HTTPException(
            status_code=429,
            detail=f"Demasiadas solicitudes. Límite: {limit}. Intenta más tarde."
        )
