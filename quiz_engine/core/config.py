from typing import List, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application Information
    app_name: str = Field(default="E-Learning Quiz Engine")
    app_description: str = Field(
        default="Quiz authoring, attempts and automatic grading"
    )
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=True)
    production: bool = Field(default=False)

    # Database Configuration
    db_host: str = Field(default="127.0.0.1")
    db_port: int = Field(default=5432)
    db_database: str = Field(default="e-learning")
    db_username: str = Field(default="home")
    db_password: str = Field(default="123")
    # Full SQLAlchemy URL; overrides the db_* fields when set (e.g. sqlite://)
    db_url: Optional[str] = Field(default=None)
    db_echo: bool = Field(default=False)

    # Security Settings
    cors_allowed_origins: List[str] = Field(default=["http://localhost:3000"])

    # JWT Configuration
    jwt_secret: str = Field(default="your-secret-key-change-in-production")
    jwt_algorithm: str = Field(default="HS256")
    jwt_user_expiration: int = Field(default=7)
    jwt_issuer: str = Field(default="E-Learning Platform")

    # Logging
    log_level: str = Field(default="info")
    log_file: str = Field(default="logs/app.log")

    # Pagination
    default_page_size: int = Field(default=10)
    max_page_size: int = Field(default=100)

    # Authorization
    authorization_default_role: str = Field(default="student")
    authoring_roles: List[str] = Field(default=["admin", "instructor"])

    # Redis / rate limiting
    redis_url: str = Field(default="redis://localhost:6379")
    redis_rate_limit: str = Field(default="20/minute")
    rate_limit_enabled: bool = Field(default=True)

    # Admin Defaults
    admin_default_name: str = Field(default="Platform Admin")
    admin_default_email: str = Field(default="admin@example.com")

    # Quiz defaults
    default_passing_percentage: int = Field(default=50, ge=0, le=100)
    default_max_attempts: int = Field(default=1, ge=1)

    # ============================
    # Generic comma-separated parser
    # ============================
    @staticmethod
    def _parse_csv(value, default):
        if isinstance(value, str):
            items = [x.strip() for x in value.split(",") if x.strip()]
            return items if items else default
        if isinstance(value, list):
            return value
        return default

    @field_validator("authoring_roles", mode="before")
    def validate_authoring_roles(cls, v):
        return cls._parse_csv(v, ["admin", "instructor"])

    @field_validator("cors_allowed_origins", mode="before")
    def validate_cors(cls, v):
        return cls._parse_csv(v, ["http://localhost:3000"])

    @property
    def database_url(self) -> str:
        if self.db_url:
            return self.db_url
        return "postgresql+psycopg2://{user}:{password}@{host}:{port}/{database}".format(
            user=self.db_username,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_database,
        )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


def load_settings():
    try:
        settings = Settings()
        print("✅ Settings loaded successfully!")
        return settings
    except ValidationError as e:
        print("❌ Validation Error:", e)
        raise


settings = load_settings()
