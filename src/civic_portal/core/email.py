"""
Email Notification Dispatcher

Sends templated notifications through an ordered chain of delivery
providers. Each provider is tried in turn with the same rendered content;
the first success wins. If every provider fails, AllProvidersFailedError
is raised with one DeliveryAttempt per provider.

Provider order:
1. Resend (primary, Python SDK run in a worker thread)
2. SMTP2GO (secondary, HTTP API via httpx)

Outside production, when no provider is configured, messages are logged
instead of sent.
"""

import asyncio
import enum
import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import httpx
import resend

from civic_portal.core.config import Settings, settings
from civic_portal.core.email_templates import (
    render_admin_notification,
    render_approval,
    render_otp,
    render_rejection,
)

logger = logging.getLogger(__name__)

SMTP2GO_ENDPOINT = "https://api.smtp2go.com/v3/email/send"


class NotificationType(str, enum.Enum):
    """Template selector for outgoing notifications."""

    ADMIN_NOTIFICATION = "admin_notification"
    APPROVAL = "approval"
    REJECTION = "rejection"
    OTP = "otp"


_RENDERERS: dict[NotificationType, Callable[[Mapping[str, Any]], tuple[str, str]]] = {
    NotificationType.ADMIN_NOTIFICATION: render_admin_notification,
    NotificationType.APPROVAL: render_approval,
    NotificationType.REJECTION: render_rejection,
    NotificationType.OTP: render_otp,
}


def render_notification(
    notification_type: NotificationType, data: Mapping[str, Any]
) -> tuple[str, str]:
    """Return (subject, html) for a notification type."""
    return _RENDERERS[notification_type](data)


@dataclass(frozen=True)
class DeliveryAttempt:
    """Outcome of a single provider call."""

    provider: str
    ok: bool
    delivery_id: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class DeliveryReceipt:
    """Successful delivery: provider message id and the provider that sent it."""

    delivery_id: str
    provider: str


class AllProvidersFailedError(Exception):
    """Raised when every configured provider rejected the send."""

    def __init__(self, failures: Sequence[DeliveryAttempt]):
        self.failures = list(failures)
        summary = "; ".join(f"{f.provider}: {f.error}" for f in self.failures) or "no providers"
        super().__init__(f"All email providers failed ({summary})")


class EmailProvider(ABC):
    """
    A delivery capability.

    Implementations must not raise: every outcome, including timeouts,
    is reported as a DeliveryAttempt.
    """

    name: str

    @abstractmethod
    async def send(self, to_email: str, subject: str, html_content: str) -> DeliveryAttempt: ...

    def _failed(self, error: str) -> DeliveryAttempt:
        return DeliveryAttempt(provider=self.name, ok=False, error=error)


class ResendProvider(EmailProvider):
    name = "resend"

    def __init__(self, api_key: str, sender: str, timeout_seconds: float):
        resend.api_key = api_key
        self._sender = sender
        self._timeout = timeout_seconds

    async def send(self, to_email: str, subject: str, html_content: str) -> DeliveryAttempt:
        params: resend.Emails.SendParams = {
            "from": self._sender,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }
        try:
            # Sync SDK call, run off the event loop
            email = await asyncio.wait_for(
                asyncio.to_thread(resend.Emails.send, params),
                timeout=self._timeout,
            )
        except TimeoutError:
            return self._failed(f"timed out after {self._timeout}s")
        except Exception as e:
            return self._failed(str(e))

        return DeliveryAttempt(provider=self.name, ok=True, delivery_id=email["id"])


class Smtp2GoProvider(EmailProvider):
    name = "smtp2go"

    def __init__(self, api_key: str, sender: str, timeout_seconds: float):
        self._api_key = api_key
        self._sender = sender
        self._timeout = timeout_seconds

    async def send(self, to_email: str, subject: str, html_content: str) -> DeliveryAttempt:
        payload = {
            "sender": self._sender,
            "to": [to_email],
            "subject": subject,
            "html_body": html_content,
        }
        headers = {
            "X-Smtp2go-Api-Key": self._api_key,
            "accept": "application/json",
            "content-type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(SMTP2GO_ENDPOINT, json=payload, headers=headers)
                response.raise_for_status()
                body = response.json()
        except httpx.TimeoutException:
            return self._failed(f"timed out after {self._timeout}s")
        except httpx.HTTPStatusError as e:
            return self._failed(f"HTTP {e.response.status_code}: {e.response.text[:200]}")
        except (httpx.HTTPError, ValueError) as e:
            return self._failed(str(e))

        delivery_id = (body.get("data") or {}).get("email_id")
        if not delivery_id:
            return self._failed("response did not include an email id")
        return DeliveryAttempt(provider=self.name, ok=True, delivery_id=delivery_id)


class LogOnlyProvider(EmailProvider):
    """Development stand-in that logs instead of sending."""

    name = "log"

    async def send(self, to_email: str, subject: str, html_content: str) -> DeliveryAttempt:
        logger.warning("No email provider configured - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return DeliveryAttempt(provider=self.name, ok=True, delivery_id=f"log-{uuid.uuid4().hex}")


class NotificationDispatcher:
    """Tries each provider in order until one accepts the message."""

    def __init__(self, providers: Sequence[EmailProvider]):
        self.providers = list(providers)

    async def send(
        self,
        notification_type: NotificationType,
        to_email: str,
        data: Mapping[str, Any],
    ) -> DeliveryReceipt:
        """
        Render and deliver a notification.

        Raises:
            AllProvidersFailedError: If no provider accepted the message
        """
        subject, html_content = render_notification(notification_type, data)
        return await self.deliver(to_email, subject, html_content)

    async def deliver(self, to_email: str, subject: str, html_content: str) -> DeliveryReceipt:
        failures: list[DeliveryAttempt] = []

        for provider in self.providers:
            attempt = await provider.send(to_email, subject, html_content)
            if attempt.ok:
                if failures:
                    logger.info(
                        f"Email to {to_email} delivered via fallback provider {attempt.provider}"
                    )
                else:
                    logger.info(f"Email sent to {to_email} via {attempt.provider}")
                return DeliveryReceipt(
                    delivery_id=attempt.delivery_id or "",
                    provider=attempt.provider,
                )

            logger.warning(f"Email provider {provider.name} failed for {to_email}: {attempt.error}")
            failures.append(attempt)

        logger.error(f"All email providers failed for {to_email}")
        raise AllProvidersFailedError(failures)


def build_providers(config: Settings) -> list[EmailProvider]:
    """Build the provider chain from configuration."""
    timeout = config.notification_timeout_seconds
    providers: list[EmailProvider] = []

    if config.resend_api_key:
        providers.append(ResendProvider(config.resend_api_key, config.email_from, timeout))
    if config.smtp2go_api_key:
        providers.append(Smtp2GoProvider(config.smtp2go_api_key, config.email_from, timeout))

    if not providers and not config.is_production:
        providers.append(LogOnlyProvider())

    return providers


@lru_cache
def get_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher(build_providers(settings))


async def send_notification(
    notification_type: NotificationType,
    to_email: str,
    data: Mapping[str, Any],
) -> DeliveryReceipt:
    """Send a notification through the process-wide dispatcher."""
    return await get_dispatcher().send(notification_type, to_email, data)
