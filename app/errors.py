"""
Excepciones de dominio del ciclo de vida de mensajes.

Los routers no las traducen a mano: app/main.py registra un handler que las
convierte en respuestas JSON con el status_code de cada clase.
"""


class WhisperError(Exception):
    status_code = 400
    default_detail = "Solicitud inválida"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class InvalidParticipants(WhisperError):
    status_code = 400
    default_detail = "El emisor y el receptor deben ser distintos"


class InvalidMessage(WhisperError):
    status_code = 400
    default_detail = "Mensaje inválido"


class NotFound(WhisperError):
    # Suele deberse a una carrera con la expiración: no es un fallo grave
    status_code = 404
    default_detail = "Mensaje no encontrado"


class Unauthorized(WhisperError):
    status_code = 403
    default_detail = "No tienes acceso a este mensaje"


class TransportUnavailable(WhisperError):
    # Nunca llega al emisor: el canal en tiempo real la captura y la registra
    status_code = 503
    default_detail = "Usuario sin conexión activa"
