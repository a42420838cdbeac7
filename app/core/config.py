"""
Configuration management for the PTO approval engine
"""
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import Optional, List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    
    # Required settings
    DATABASE_URL: str = Field(..., description="Database URL (PostgreSQL in prod, SQLite locally)")
    JWT_SECRET_KEY: str = Field(..., description="JWT secret key for token verification")
    
    # Optional settings with defaults
    JWT_ALGORITHM: str = Field(default="HS256", description="JWT algorithm")
    JWT_EXPIRE_MINUTES: int = Field(default=120, description="JWT token expiration in minutes")
    
    APP_ENV: str = Field(default="local", description="Application environment: local, staging, prod")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level: DEBUG, INFO, WARNING, ERROR")
    
    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins. Use '*' for local only."
    )
    
    VERSION: Optional[str] = Field(default=None, description="Application version (git SHA or semver)")
    
    # Approval chain: who approves when nobody else can
    PTO_FALLBACK_APPROVER_ID: Optional[int] = Field(
        default=None,
        description="Employee id used as approver when no manager or specific approver resolves"
    )
    PTO_FALLBACK_APPROVER_ROLE: str = Field(
        default="ADMIN",
        description="Role searched for a fallback approver when PTO_FALLBACK_APPROVER_ID is not set"
    )
    
    # Blackout evaluation
    BLACKOUT_LIMIT_LOCKING: bool = Field(
        default=True,
        description="Lock the blackout row (SELECT ... FOR UPDATE) while counting requests against its limit"
    )
    DEFAULT_OVERRIDE_DENIAL_REASON: str = Field(
        default="Emergency override denied due to blackout conflicts.",
        description="Denial reason stored when an override is denied without a caller-supplied reason"
    )
    
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
    
    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate APP_ENV"""
        allowed = ["local", "staging", "prod"]
        if v not in allowed:
            raise ValueError(f"APP_ENV must be one of {allowed}")
        return v
    
    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate LOG_LEVEL"""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return v.upper()
    
    @field_validator("PTO_FALLBACK_APPROVER_ROLE")
    @classmethod
    def validate_fallback_role(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("PTO_FALLBACK_APPROVER_ROLE cannot be empty")
        return v.strip().upper()
    
    def validate_production(self) -> None:
        """
        Validate settings for production environment
        
        Raises:
            ValueError: If production settings are invalid
        """
        if self.APP_ENV == "prod":
            if len(self.JWT_SECRET_KEY) < 32:
                raise ValueError(
                    "JWT_SECRET_KEY must be at least 32 characters in production environment"
                )
            
            if self.ALLOWED_ORIGINS == "*" or not self.ALLOWED_ORIGINS:
                raise ValueError(
                    "ALLOWED_ORIGINS must be explicitly set (not '*') in production environment"
                )
    
    def get_allowed_origins_list(self) -> List[str]:
        """
        Get list of allowed CORS origins
        
        Returns:
            List of allowed origins (or ['*'] for local)
        """
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


# Create settings instance
settings = Settings()

# Validate production settings if in prod
if settings.APP_ENV == "prod":
    settings.validate_production()
