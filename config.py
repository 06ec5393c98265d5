import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # API Ayarları
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("PORT", os.getenv("API_PORT", "3000")))
    cors_origin: str = os.getenv("CORS_ORIGIN", "http://localhost:3000")
    frontend_url: str = os.getenv("FRONTEND_URL", "http://localhost:3000")

    # Veritabanı Ayarları
    database_timeout: float = float(os.getenv("DATABASE_TIMEOUT", "10"))

    # Oturum Ayarları
    session_secret: str = os.getenv("SESSION_SECRET", "library-management-secret")
    session_cookie_name: str = os.getenv("SESSION_COOKIE_NAME", "libraryms.sid")
    session_max_age: int = int(os.getenv("SESSION_MAX_AGE", "86400"))  # 24 saat
    session_cookie_secure: bool = _env_flag("SESSION_COOKIE_SECURE")

    # Redis Ayarları (bekleyen kayıtlar için)
    redis_url: str = os.getenv("REDIS_URL", os.getenv("REDIS_TLS_URL", "redis://localhost:6379/0"))
    verification_ttl_seconds: int = int(os.getenv("VERIFICATION_TTL_SECONDS", "900"))  # 15 dakika
    resend_token_ttl_hours: int = int(os.getenv("RESEND_TOKEN_TTL_HOURS", "24"))

    # E-posta Ayarları
    smtp_host: str = os.getenv("SMTP_HOST", "smtp.gmail.com")
    smtp_port: int = int(os.getenv("SMTP_PORT", "587"))
    smtp_username: Optional[str] = os.getenv("SMTP_USERNAME", os.getenv("EMAIL_USER"))
    smtp_password: Optional[str] = os.getenv("SMTP_PASSWORD", os.getenv("EMAIL_PASS"))
    smtp_from_email: Optional[str] = os.getenv("SMTP_FROM_EMAIL", os.getenv("EMAIL_USER"))
    smtp_from_name: str = os.getenv("SMTP_FROM_NAME", "Kütüphane Yönetim Sistemi")
    smtp_timeout: float = float(os.getenv("SMTP_TIMEOUT", "10"))

    # Uygulama Ayarları
    app_name: str = os.getenv("APP_NAME", "Kütüphane Yönetim Sistemi")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    debug: bool = _env_flag("DEBUG")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Sayfalama Ayarları
    default_page_size: int = int(os.getenv("DEFAULT_PAGE_SIZE", "10"))
    max_page_size: int = int(os.getenv("MAX_PAGE_SIZE", "100"))

    # İstatistik Ayarları
    top_list_size: int = int(os.getenv("TOP_LIST_SIZE", "10"))
    top_readers_size: int = int(os.getenv("TOP_READERS_SIZE", "5"))
    recent_activity_size: int = int(os.getenv("RECENT_ACTIVITY_SIZE", "10"))

    @property
    def email_configured(self) -> bool:
        return bool(self.smtp_username and self.smtp_password)


settings = Settings()
