"""Application configuration loaded from environment variables."""
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent.parent


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    # API server
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    # Empty string disables the file sink
    LOG_FILE: str = os.getenv("LOG_FILE", "logs/garage.log")

    # CORS
    CORS_ORIGINS: list[str] = [
        o.strip()
        for o in os.getenv(
            "CORS_ORIGINS", "http://localhost:5173,http://localhost:3000"
        ).split(",")
        if o.strip()
    ]

    # Auth: "local" (single in-process account) or "firebase"
    AUTH_PROVIDER: str = os.getenv("AUTH_PROVIDER", "local").lower()
    AUTH_USERNAME: str = os.getenv("AUTH_USERNAME", "admin@garage.local")
    AUTH_PASSWORD: str = os.getenv("AUTH_PASSWORD", "changeme")
    FIREBASE_API_KEY: str = os.getenv("FIREBASE_API_KEY", "")
    IDENTITY_TIMEOUT_SECONDS: float = float(os.getenv("IDENTITY_TIMEOUT_SECONDS", "10"))

    # Session tokens handed out by /api/auth/login
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-secret-change-me")
    ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

    # Storage: "memory" keeps everything in-process, "sqlite" mirrors it to DATABASE_URL
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "memory").lower()
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL", f"sqlite:///{BASE_DIR / 'garage_billing.db'}"
    )

    # Billing
    INVOICE_PREFIX: str = os.getenv("INVOICE_PREFIX", "INV")
    SEED_DEMO_DATA: bool = _flag("SEED_DEMO_DATA")


settings = Settings()
