from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_files() -> list[str]:
    """Load .env from the repo root so JWT_* vars are shared by every service."""
    base = Path(__file__).resolve().parents[3]  # shared/shared/auth/ → repo root
    return [str(base / ".env"), ".env"]


class AuthSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        env_file=_env_files(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    secret: str = "change-me"
    algorithm: str = "HS256"
    issuer: str = "lms-identity"
    audience: str = "lms-services"


def get_auth_settings() -> AuthSettings:
    return AuthSettings()
