import os
import logging
from pydantic import BaseModel, Field
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class AISettings(BaseModel):
    api_key: Optional[str] = Field(default=os.getenv("AI_API_KEY"))
    api_url: str = Field(default=os.getenv("AI_API_URL", "https://api.openai.com/v1/chat/completions"))
    model_name: str = Field(default=os.getenv("AI_MODEL_NAME", "gpt-4o"))
    kill_switch: bool = Field(default=_env_flag("AI_KILL_SWITCH", "false"))
    temperature: float = 0.7
    max_tokens: int = int(os.getenv("AI_MAX_TOKENS", "1000"))
    request_timeout: int = 30


class AttendanceSettings(BaseModel):
    # Local wall-clock thresholds used by the notification job and the stats views
    late_arrival_hour: int = 9
    late_arrival_minute: int = 0
    overtime_threshold_hours: float = 9.0
    absence_cutoff_hour: int = 10


class ChatSettings(BaseModel):
    max_file_size: int = 20 * 1024 * 1024
    allowed_file_types: List[str] = [
        "image/jpeg",
        "image/png",
        "image/webp",
        "image/gif",
        "application/pdf",
        "text/plain",
    ]


class Config(BaseModel):
    app_name: str = "Employee Management System"
    environment: str = os.getenv("APP_ENV", "development")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    api_prefix: str = "/api"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./ems.db")

    # Auth
    secret_key: str = os.getenv("SECRET_KEY", "dev-only-insecure-key-DO-NOT-USE-IN-PROD")
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))
    refresh_token_expire_days: int = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))
    encryption_key: str = os.getenv("ENCRYPTION_KEY", "dev-only-encryption-key")

    # Bootstrap admin created at start-up when both are set
    admin_email: Optional[str] = os.getenv("ADMIN_EMAIL")
    admin_password: Optional[str] = os.getenv("ADMIN_PASSWORD")

    # Serverless-style functions (attendance notifications); open when unset
    functions_api_key: Optional[str] = os.getenv("FUNCTIONS_API_KEY")

    ai: AISettings = AISettings()
    attendance: AttendanceSettings = AttendanceSettings()
    chat: ChatSettings = ChatSettings()

    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"

    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://localhost:5173,"
                "http://127.0.0.1:3000,http://127.0.0.1:5173",
            ).split(",")
            if o.strip()
        ]
    )

    # Query cache and search
    enable_caching: bool = _env_flag("ENABLE_CACHING", "true")
    recent_searches_limit: int = 10
    search_results_per_source: int = 5

    # Rate limiting
    rate_limit_enabled: bool = _env_flag("RATE_LIMIT_ENABLED", "true")
    login_rate_limit: str = os.getenv("LOGIN_RATE_LIMIT", "10/minute")


settings = Config()

_logger = logging.getLogger(__name__)


def _check_secrets(config: Config):
    """Refuse to start outside development with the built-in dev keys."""
    insecure = [
        name for name, value in (("SECRET_KEY", config.secret_key), ("ENCRYPTION_KEY", config.encryption_key))
        if "dev-only" in value
    ]
    if not insecure:
        return
    if config.environment in ("development", "testing"):
        _logger.warning(f"⚠ Using insecure default {', '.join(insecure)}; only acceptable in development.")
        return
    raise RuntimeError(
        f"FATAL: {', '.join(insecure)} must be set via environment variables "
        f"when APP_ENV={config.environment}."
    )


_check_secrets(settings)
