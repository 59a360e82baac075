"""
Application configuration management using Pydantic Settings.
Handles environment-based configuration for the LLM provider, database, cache and pipeline limits.
"""
import os
from typing import Optional, List
from pydantic import field_validator
from pydantic_settings import BaseSettings
import secrets


SUPPORTED_AI_PROVIDERS = ("zhipu", "openai", "groq", "gemini")


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application settings
    APP_NAME: str = "AI PRD Studio API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    API_PREFIX: str = "/api"

    # Server settings
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Security settings (admin sub-API)
    SECRET_KEY: str = secrets.token_urlsafe(32)
    ALGORITHM: str = "HS256"
    ADMIN_PASSWORD_HASH: Optional[str] = os.getenv("ADMIN_PASSWORD_HASH")
    ADMIN_TOKEN_EXPIRE_HOURS: int = 24

    # Database settings
    MONGODB_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "ai_prd_studio"

    # Redis settings
    REDIS_URL: Optional[str] = os.getenv("REDIS_URL")
    REDIS_DB: int = 0
    PRD_CACHE_TTL: int = 300  # 5 minutes

    # CORS settings
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
    ]
    ALLOWED_METHODS: List[str] = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    ALLOWED_HEADERS: List[str] = ["*"]

    # AI Provider settings
    AI_PROVIDER: str = os.getenv("AI_PROVIDER", "zhipu")
    ZHIPU_API_KEY: Optional[str] = os.getenv("ZHIPU_API_KEY")
    ZHIPU_BASE_URL: str = os.getenv("ZHIPU_BASE_URL", "https://open.bigmodel.cn/api/paas/v4")
    ZHIPU_MODEL: str = os.getenv("ZHIPU_MODEL", "glm-4.6v")
    OPENAI_API_KEY: Optional[str] = os.getenv("OPENAI_API_KEY")
    OPENAI_BASE_URL: Optional[str] = os.getenv("OPENAI_BASE_URL")
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    GROQ_API_KEY: Optional[str] = os.getenv("GROQ_API_KEY")
    GROQ_MODEL: str = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
    GEMINI_API_KEY: Optional[str] = os.getenv("GEMINI_API_KEY")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

    # AI Response Configuration
    AI_MAX_TOKENS: int = 4096
    AI_TEMPERATURE: float = 0.7
    AI_TOP_P: float = 0.9
    AI_TIMEOUT_SECONDS: Optional[int] = None  # provider client default

    # Pipeline settings
    IDEA_MIN_LENGTH: int = 10
    SESSION_TITLE_MAX_LENGTH: int = 50
    DIAGRAM_MAX_RETRIES: int = 1  # one call plus one retry per diagram

    # Mermaid CLI (optional render check on top of the structural parse)
    MERMAID_CLI_PATH: Optional[str] = os.getenv("MERMAID_CLI_PATH")
    MERMAID_CLI_ENABLED: bool = bool(os.getenv("MERMAID_CLI_ENABLED", "").lower() in ("1", "true", "yes"))
    MERMAID_CLI_TIMEOUT_SECONDS: int = 20

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @field_validator("SECRET_KEY")
    def validate_secret_key(cls, v):
        """Ensure secret key is sufficiently long."""
        if len(v) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters long")
        return v

    @field_validator("MONGODB_URL")
    def validate_mongodb_url(cls, v):
        """Validate MongoDB URL format."""
        if not v.startswith(("mongodb://", "mongodb+srv://")):
            raise ValueError("MONGODB_URL must start with 'mongodb://' or 'mongodb+srv://'")
        return v

    @field_validator("REDIS_URL")
    def validate_redis_url(cls, v):
        """Validate Redis URL format."""
        if v is None or v == "":
            return v
        if not v.startswith("redis://") and not v.startswith("rediss://"):
            raise ValueError("REDIS_URL must start with 'redis://' or 'rediss://'")
        return v

    @field_validator("AI_PROVIDER")
    def validate_ai_provider(cls, v):
        """Only providers with a configured chat model are accepted."""
        v = (v or "").strip().lower()
        if v not in SUPPORTED_AI_PROVIDERS:
            raise ValueError(f"AI_PROVIDER must be one of: {list(SUPPORTED_AI_PROVIDERS)}")
        return v

    @field_validator("DIAGRAM_MAX_RETRIES")
    def validate_diagram_max_retries(cls, v):
        """Retry bound cannot be negative."""
        if v < 0:
            raise ValueError("DIAGRAM_MAX_RETRIES must be >= 0")
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


# Global settings instance
settings = Settings()
