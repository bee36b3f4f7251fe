import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

EMAIL_PROVIDERS = ("resend", "sendgrid")


@dataclass(frozen=True)
class Settings:
    database_url: str
    log_level: str
    log_path: str
    email_provider: str
    resend_api_key: Optional[str]
    sendgrid_api_key: Optional[str]
    from_email: str
    from_name: str
    email_send_delay: float

    @property
    def email_api_key(self) -> Optional[str]:
        if self.email_provider == "sendgrid":
            return self.sendgrid_api_key
        return self.resend_api_key

    @property
    def email_configured(self) -> bool:
        return bool(self.email_api_key)


def load_settings() -> Settings:
    database_url = os.getenv("DATABASE_URL")
    log_level = os.getenv("LOG_LEVEL", "INFO")
    log_path = os.getenv("LOG_PATH", "logs/secret_santa.log")
    email_provider = os.getenv("EMAIL_PROVIDER", "resend").strip().lower()
    delay = os.getenv("EMAIL_SEND_DELAY", "0.1")

    if not database_url:
        raise ValueError("DATABASE_URL is required. Set it in the environment or .env file.")
    if email_provider not in EMAIL_PROVIDERS:
        raise ValueError(
            "EMAIL_PROVIDER must be one of: {0}.".format(", ".join(EMAIL_PROVIDERS))
        )
    try:
        email_send_delay = float(delay)
    except ValueError as exc:
        raise ValueError("EMAIL_SEND_DELAY must be a number of seconds.") from exc

    return Settings(
        database_url=database_url,
        log_level=log_level,
        log_path=log_path,
        email_provider=email_provider,
        resend_api_key=os.getenv("RESEND_API_KEY") or None,
        sendgrid_api_key=os.getenv("SENDGRID_API_KEY") or None,
        from_email=os.getenv("FROM_EMAIL", "onboarding@resend.dev"),
        from_name=os.getenv("FROM_NAME", "Secret Santa Generator"),
        email_send_delay=max(email_send_delay, 0.0),
    )
