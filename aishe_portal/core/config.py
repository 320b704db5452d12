from sqlalchemy.engine import URL
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # --- DATABASE ---
    # A full DATABASE_URL wins over the individual DB_* parts
    DATABASE_URL: str | None = None
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str | None = None
    DB_PASS: str | None = None
    DB_NAME: str = "aishe_portal"
    DB_SSL: bool = False
    DB_POOL_SIZE: int = 10
    DB_CONNECT_TIMEOUT: int = 60
    DB_RETRY_ATTEMPTS: int = 2
    DB_RETRY_DELAY_SECONDS: float = 2.0

    # --- TOKENS ---
    JWT_SECRET: str = "change-me"
    ACCESS_TOKEN_EXPIRE_HOURS: int = 24

    # --- EMAIL SETTINGS ---
    EMAIL_USER: str | None = None
    EMAIL_PASS: str | None = None
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_TIMEOUT: int = 20
    EMAILS_FROM_NAME: str = "AISHE PORTAL"

    # --- PASSWORD RESET ---
    OTP_EXPIRE_MINUTES: int = 10
    PASSWORD_MIN_LENGTH: int = 8

    # --- MAINTENANCE ---
    MAINTENANCE_CACHE_SECONDS: float = 15.0

    # --- HTTP ---
    CORS_ORIGIN: str | None = None
    PORT: int = 5000
    RATE_LIMIT_ENABLED: bool = True
    OTP_REQUEST_RATE_LIMIT: str = "5/minute"
    REDIS_URL: str | None = None

    ENV: str = "development"  # "development" or "production"
    TESTING: bool = False

    SUPER_ADMIN_USERNAME: str | None = None
    SUPER_ADMIN_EMAIL: str | None = None
    SUPER_ADMIN_PASSWORD: str | None = None
    SUPER_ADMIN_NAME: str | None = "Nodal Officer"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.ENV.strip().lower() == "production"

    @property
    def email_configured(self) -> bool:
        return bool(self.EMAIL_USER and self.EMAIL_PASS)

    @property
    def cors_origins(self) -> list[str]:
        if self.CORS_ORIGIN:
            return [o.strip() for o in self.CORS_ORIGIN.split(",") if o.strip()]
        return ["http://localhost:3000", "http://localhost:3001"]

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return URL.create(
            "postgresql+asyncpg",
            username=self.DB_USER,
            password=self.DB_PASS,
            host=self.DB_HOST,
            port=self.DB_PORT,
            database=self.DB_NAME,
        ).render_as_string(hide_password=False)


settings = Settings()
