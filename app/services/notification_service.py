"""
Notification Service

Renders task emails and delivers them through an email provider.
"""

import abc
import asyncio
import html
import os
import re
import smtplib
from datetime import datetime, timezone
from email.message import EmailMessage
from typing import Any, Dict, List, Optional

from app.services.errors import NotificationError
from app.utils.clock import format_local
from app.utils.logger import get_logger

logger = get_logger("notification-service")

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


class NotificationProvider(abc.ABC):
    """Abstract base class for notification providers."""

    @abc.abstractmethod
    async def send(self, recipient: str, subject: str, html_body: str) -> None:
        """
        Deliver one message.

        Raises:
            NotificationError: If the message could not be delivered
        """

    @abc.abstractmethod
    def validate_recipient(self, recipient: str) -> bool:
        """Return True when the recipient address is usable."""


class EmailProvider(NotificationProvider):
    """SMTP email provider. Without an SMTP host it only logs (development mode)."""

    def __init__(self, config: Dict[str, Any]):
        self.smtp_host = config.get("smtp_host")
        self.smtp_port = int(config.get("smtp_port") or 587)
        self.username = config.get("username")
        self.password = config.get("password")
        self.sender_email = config.get("sender_email") or self.username or "noreply@example.com"
        self.timeout = float(config.get("timeout") or 30)

        if not self.smtp_host:
            logger.warning("SMTP_HOST not set. Emails will be logged instead of sent.")

    @classmethod
    def from_env(cls) -> "EmailProvider":
        return cls({
            "smtp_host": os.environ.get("SMTP_HOST"),
            "smtp_port": os.environ.get("SMTP_PORT", "587"),
            "username": os.environ.get("MAIL_USER"),
            "password": os.environ.get("MAIL_PASS"),
            "sender_email": os.environ.get("MAIL_FROM"),
        })

    def validate_recipient(self, recipient: str) -> bool:
        return bool(recipient and EMAIL_PATTERN.match(recipient))

    async def send(self, recipient: str, subject: str, html_body: str) -> None:
        if not self.validate_recipient(recipient):
            raise NotificationError(f"Invalid email address: {recipient!r}")

        if not self.smtp_host:
            logger.info("[DEV MODE] Would send email", to=recipient, subject=subject)
            return

        message = EmailMessage()
        message["From"] = self.sender_email
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(re.sub(r"<[^>]+>", "", html_body))
        message.add_alternative(html_body, subtype="html")

        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"Failed to send email to {recipient}: {str(e)}") from e

    def _deliver(self, message: EmailMessage):
        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as smtp:
            smtp.starttls()
            if self.username and self.password:
                smtp.login(self.username, self.password)
            smtp.send_message(message)


def render_email(content: Dict[str, str]) -> str:
    """Wrap a title/message pair in the HTML email layout."""
    action = ""
    if content.get("action_text") and content.get("action_url"):
        action = (
            '<div style="text-align: center; margin: 30px 0;">'
            f'<a href="{html.escape(content["action_url"])}" style="background-color: #4CAF50; color: white; '
            'text-decoration: none; padding: 12px 24px; border-radius: 5px; display: inline-block;">'
            f'{html.escape(content["action_text"])}</a></div>'
        )
    year = datetime.now(timezone.utc).year
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: auto; '
        'border: 1px solid #e0e0e0; border-radius: 8px; overflow: hidden;">'
        '<div style="background-color: #4CAF50; color: white; padding: 20px; text-align: center;">'
        f'<h1 style="margin: 0; font-size: 24px;">{html.escape(content["title"])}</h1></div>'
        f'<div style="padding: 20px; color: #333; line-height: 1.5;"><p>{content["message"]}</p>{action}</div>'
        '<div style="background-color: #f2f2f2; padding: 10px; text-align: center; font-size: 12px; color: #666;">'
        f'&copy; {year} Working Status. All rights reserved.</div></div>'
    )


class NotificationService:
    """Sends task emails. ``send`` raises, ``send_safely`` logs and swallows."""

    def __init__(self, provider: Optional[NotificationProvider] = None):
        self.provider = provider or EmailProvider.from_env()

    async def send(self, to: str, subject: str, content: Dict[str, str]) -> None:
        """
        Send one email.

        Args:
            to: Recipient email address
            subject: Email subject line
            content: ``title`` and ``message`` (trusted HTML), optional action link

        Raises:
            NotificationError: If delivery fails
        """
        await self.provider.send(to, subject, render_email(content))
        logger.info("Email sent", to=to, subject=subject)

    async def send_safely(self, to: str, subject: str, content: Dict[str, str]) -> bool:
        try:
            await self.send(to, subject, content)
            return True
        except NotificationError as e:
            logger.error("Email delivery failed", to=to, subject=subject, error=e.message)
            return False

    async def notify_deadline_set(
        self,
        recipients: List[str],
        task_name: str,
        deadline: datetime,
        is_update: bool,
    ) -> int:
        """Tell creator and assignees about a new or moved deadline. Returns emails delivered."""
        subject = "Task Deadline Updated" if is_update else "New Task Deadline Set"
        verb = "has been moved to" if is_update else "is"
        message = (
            f"The deadline for <strong>{html.escape(task_name)}</strong> {verb} "
            f"<strong>{format_local(deadline)}</strong>."
        )
        delivered = 0
        for address in recipients:
            if await self.send_safely(address, subject, {"title": subject, "message": message}):
                delivered += 1
        return delivered

    async def notify_task_assigned(
        self,
        recipients: List[str],
        task_name: str,
        deadline: Optional[datetime] = None,
    ) -> int:
        subject = "New Task Assigned"
        message = f"You have been assigned the task <strong>{html.escape(task_name)}</strong>."
        if deadline:
            message += f" It is due at <strong>{format_local(deadline)}</strong>."
        delivered = 0
        for address in recipients:
            if await self.send_safely(address, subject, {"title": subject, "message": message}):
                delivered += 1
        return delivered


notification_service = NotificationService()


def get_notification_service() -> NotificationService:
    """Dependency for the shared notification service."""
    return notification_service
