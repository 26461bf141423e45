"""
Post-run notifications.

Notifiers are invoked by the test runner once a run is over; the core
never triggers them. Delivery problems are reported as NotificationError
and logged by notify_all without affecting the run outcome.
"""

from __future__ import annotations

import abc
import logging
import smtplib
from email.message import EmailMessage

import httpx

from e2e_harness.core.common.exceptions import NotificationError
from e2e_harness.core.config.app_config import EmailConfig, NotificationsConfig
from e2e_harness.core.reporting.summary import RunSummary

logger = logging.getLogger(__name__)

DISCORD_CONTENT_LIMIT = 2000


class Notifier(abc.ABC):
    """Delivers a run summary to one channel."""

    channel: str

    @abc.abstractmethod
    def send(self, summary: RunSummary) -> None:
        """Deliver the summary or raise NotificationError."""


class WebhookNotifier(Notifier):
    """Base for chat webhooks that accept a JSON POST."""

    def __init__(
        self, webhook_url: str, client: httpx.Client | None = None, timeout: float = 10.0
    ) -> None:
        self.webhook_url = webhook_url
        self._client = client
        self._timeout = timeout

    @abc.abstractmethod
    def payload(self, summary: RunSummary) -> dict:
        pass

    def send(self, summary: RunSummary) -> None:
        try:
            if self._client is not None:
                response = self._client.post(
                    self.webhook_url, json=self.payload(summary), timeout=self._timeout
                )
            else:
                with httpx.Client(timeout=self._timeout) as client:
                    response = client.post(self.webhook_url, json=self.payload(summary))
        except httpx.RequestError as e:
            raise NotificationError(
                f"Could not reach {self.channel} webhook ({e})", channel=self.channel
            ) from e

        if response.status_code >= 400:
            raise NotificationError(
                f"{self.channel} webhook rejected the message with {response.status_code}",
                channel=self.channel,
                details={"body": response.text[:500]},
            )


class SlackNotifier(WebhookNotifier):
    channel = "slack"

    def payload(self, summary: RunSummary) -> dict:
        return {"text": summary.render_text()}


class DiscordNotifier(WebhookNotifier):
    channel = "discord"

    def payload(self, summary: RunSummary) -> dict:
        return {"content": summary.render_text()[:DISCORD_CONTENT_LIMIT]}


class EmailNotifier(Notifier):
    channel = "email"

    def __init__(self, config: EmailConfig) -> None:
        self.config = config

    def build_message(self, summary: RunSummary) -> EmailMessage:
        status = "PASSED" if summary.passed else "FAILED"
        message = EmailMessage()
        message["Subject"] = f"[e2e] {summary.environment}: {status}"
        message["From"] = self.config.sender or ""
        message["To"] = ", ".join(self.config.recipients)
        message.set_content(summary.render_text())
        return message

    def send(self, summary: RunSummary) -> None:
        if not self.config.smtp_host:
            raise NotificationError("SMTP host is not configured", channel=self.channel)
        try:
            with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port) as smtp:
                if self.config.use_tls:
                    smtp.starttls()
                if self.config.username and self.config.password:
                    smtp.login(self.config.username, self.config.password)
                smtp.send_message(self.build_message(summary))
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(
                f"Could not send summary email ({e})", channel=self.channel
            ) from e


def build_notifiers(config: NotificationsConfig) -> list[Notifier]:
    """Create a notifier for every configured channel."""
    notifiers: list[Notifier] = []
    if config.slack_webhook_url:
        notifiers.append(SlackNotifier(config.slack_webhook_url))
    if config.discord_webhook_url:
        notifiers.append(DiscordNotifier(config.discord_webhook_url))
    if config.email.enabled:
        notifiers.append(EmailNotifier(config.email))
    return notifiers


def notify_all(
    notifiers: list[Notifier], summary: RunSummary, *, only_on_failure: bool = False
) -> list[NotificationError]:
    """Send the summary through every notifier; returns the delivery errors."""
    if only_on_failure and summary.passed:
        logger.debug("Run passed; skipping notifications")
        return []

    errors: list[NotificationError] = []
    for notifier in notifiers:
        try:
            notifier.send(summary)
        except NotificationError as e:
            logger.warning("Notification via %s failed: %s", notifier.channel, e.message)
            errors.append(e)
        else:
            logger.info("Run summary sent via %s", notifier.channel)
    return errors
