from pydantic import BaseModel, Field, model_validator
import os
from dotenv import load_dotenv
load_dotenv()  # carga el archivo .env de la raíz


def _durations_from_env(raw: str) -> list[int]:
    return sorted({int(part) for part in raw.split(",") if part.strip()})


class Settings(BaseModel):
    app_name: str = os.getenv("APP_NAME", "WhisperLink")
    env: str = os.getenv("APP_ENV", "dev")
    jwt_secret: str = os.getenv("JWT_SECRET", "change-me")
    jwt_expires_hours: int = int(os.getenv("JWT_EXPIRES_HOURS", "8"))
    frontend_base_url: str = os.getenv("FRONTEND_BASE_URL", "http://localhost:5173")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Ciclo de vida de los mensajes (todo en milisegundos salvo el barrido)
    default_duration_ms: int = int(os.getenv("DEFAULT_DURATION_MS", "300000"))
    allowed_durations_ms: list[int] = Field(
        default_factory=lambda: _durations_from_env(
            os.getenv("ALLOWED_DURATIONS_MS", "60000,300000,900000,3600000")
        )
    )
    sweep_interval_seconds: float = float(os.getenv("SWEEP_INTERVAL_SECONDS", "5"))
    max_content_chars: int = int(os.getenv("MAX_CONTENT_CHARS", str(10 * 1024 * 1024)))

    @model_validator(mode="after")
    def validate_lifecycle(self):
        """El barrido debe ser más rápido que la duración mínima permitida"""
        if not self.allowed_durations_ms:
            raise ValueError("ALLOWED_DURATIONS_MS no puede estar vacío")
        if self.default_duration_ms not in self.allowed_durations_ms:
            raise ValueError(
                f"DEFAULT_DURATION_MS={self.default_duration_ms} no está en {self.allowed_durations_ms}"
            )
        if self.sweep_interval_seconds <= 0:
            raise ValueError("SWEEP_INTERVAL_SECONDS debe ser positivo")
        if self.sweep_interval_seconds * 1000 >= min(self.allowed_durations_ms):
            raise ValueError(
                "SWEEP_INTERVAL_SECONDS debe ser menor que la duración mínima permitida"
            )
        return self


_settings: Settings | None = None
def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
