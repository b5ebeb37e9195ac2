import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


APP_ENV = os.getenv("APP_ENV", "development")
APP_TIMEZONE = os.getenv("APP_TIMEZONE", "America/Santiago")

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_ECHO = _get_bool(os.getenv("DATABASE_ECHO"), default=False)

CORS_ALLOW_ORIGINS = _get_list(os.getenv("CORS_ALLOW_ORIGINS"), ["http://localhost:3000"])

# Tokens come from the hosted auth provider; `sub` carries the profile id.
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

CALENDAR_NAME = os.getenv("CALENDAR_NAME", "University Office Hours")
CALENDAR_DESCRIPTION = os.getenv("CALENDAR_DESCRIPTION", "Office hours booked with professors")
CALENDAR_PRODID = os.getenv("CALENDAR_PRODID", "-//Office Hours Booking//EN")
CALENDAR_UID_DOMAIN = os.getenv("CALENDAR_UID_DOMAIN", "office-hours.app")

MAIL_SENDER_ADDRESS = os.getenv("MAIL_SENDER_ADDRESS", "")
MAIL_SENDER_NAME = os.getenv("MAIL_SENDER_NAME", "Office Hours Booking")
MAIL_OAUTH_CLIENT_ID = os.getenv("MAIL_OAUTH_CLIENT_ID", "")
MAIL_OAUTH_CLIENT_SECRET = os.getenv("MAIL_OAUTH_CLIENT_SECRET", "")
MAIL_OAUTH_REFRESH_TOKEN = os.getenv("MAIL_OAUTH_REFRESH_TOKEN", "")
MAIL_OAUTH_TOKEN_URL = os.getenv("MAIL_OAUTH_TOKEN_URL", "https://oauth2.googleapis.com/token")
MAIL_SMTP_HOST = os.getenv("MAIL_SMTP_HOST", "smtp.gmail.com")
MAIL_SMTP_PORT = int(os.getenv("MAIL_SMTP_PORT", "587"))
MAIL_TIMEOUT_SECONDS = float(os.getenv("MAIL_TIMEOUT_SECONDS", "10"))


def missing_mail_settings() -> list[str]:
    required = {
        "MAIL_SENDER_ADDRESS": MAIL_SENDER_ADDRESS,
        "MAIL_OAUTH_CLIENT_ID": MAIL_OAUTH_CLIENT_ID,
        "MAIL_OAUTH_CLIENT_SECRET": MAIL_OAUTH_CLIENT_SECRET,
        "MAIL_OAUTH_REFRESH_TOKEN": MAIL_OAUTH_REFRESH_TOKEN,
    }
    return [name for name, value in required.items() if not value.strip()]


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
