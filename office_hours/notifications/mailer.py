"""Outbound mail through an OAuth2-authenticated SMTP relay (Gmail by default)."""

import logging
import smtplib
from email.message import Message
from email.utils import formataddr

import httpx

from office_hours.core import config
from office_hours.notifications.errors import MailConfigurationError, NotificationDeliveryError

logger = logging.getLogger(__name__)


def xoauth2_string(user: str, access_token: str) -> str:
    return f"user={user}\x01auth=Bearer {access_token}\x01\x01"


class OAuth2Mailer:
    def __init__(
        self,
        sender_address: str,
        sender_name: str,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        token_url: str,
        smtp_host: str,
        smtp_port: int,
        timeout: float = 10.0,
    ):
        self.sender_address = sender_address
        self.sender_name = sender_name
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.token_url = token_url
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.timeout = timeout

    @classmethod
    def from_config(cls) -> "OAuth2Mailer":
        missing = config.missing_mail_settings()
        if missing:
            raise MailConfigurationError(missing)
        return cls(
            sender_address=config.MAIL_SENDER_ADDRESS,
            sender_name=config.MAIL_SENDER_NAME,
            client_id=config.MAIL_OAUTH_CLIENT_ID,
            client_secret=config.MAIL_OAUTH_CLIENT_SECRET,
            refresh_token=config.MAIL_OAUTH_REFRESH_TOKEN,
            token_url=config.MAIL_OAUTH_TOKEN_URL,
            smtp_host=config.MAIL_SMTP_HOST,
            smtp_port=config.MAIL_SMTP_PORT,
            timeout=config.MAIL_TIMEOUT_SECONDS,
        )

    @property
    def from_header(self) -> str:
        return formataddr((self.sender_name, self.sender_address))

    def fetch_access_token(self) -> str:
        try:
            response = httpx.post(
                self.token_url,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": self.refresh_token,
                    "grant_type": "refresh_token",
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise NotificationDeliveryError(f"Could not refresh the mail relay access token: {exc}") from exc

        try:
            access_token = response.json().get("access_token")
        except (ValueError, AttributeError) as exc:
            raise NotificationDeliveryError("Mail relay token response was not a JSON object.") from exc
        if not access_token:
            raise NotificationDeliveryError("Mail relay token response did not include an access token.")
        return access_token

    def send(self, messages: list[Message]) -> None:
        """Send every message over a single authenticated SMTP session."""
        access_token = self.fetch_access_token()
        auth_string = xoauth2_string(self.sender_address, access_token)
        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
                server.starttls()
                server.ehlo()
                server.auth("XOAUTH2", lambda challenge=None: auth_string)
                for message in messages:
                    server.sendmail(self.sender_address, [message["To"]], message.as_string())
                    logger.info("Email '%s' sent to %s", message["Subject"], message["To"])
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationDeliveryError(f"Mail relay rejected the message: {exc}") from exc
