from __future__ import annotations

import asyncio
import enum
import html
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import aiohttp
from loguru import logger

from app.services.assignment import AssignmentSet

RESEND_ENDPOINT = "https://api.resend.com/emails"
SENDGRID_ENDPOINT = "https://api.sendgrid.com/v3/mail/send"


class NotificationError(RuntimeError):
    pass


class ProviderError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None, category: str = "unknown") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.category = category


class EmailProvider(str, enum.Enum):
    RESEND = "resend"
    SENDGRID = "sendgrid"


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    html: str
    participant_name: Optional[str] = None
    receiver_name: Optional[str] = None
    is_organizer: bool = False


@dataclass(frozen=True)
class SendResult:
    message: EmailMessage
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    error_category: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def to(self) -> str:
        return self.message.to


@dataclass(frozen=True)
class NotificationReport:
    results: Tuple[SendResult, ...]

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failed(self) -> int:
        return self.total - self.successful

    @property
    def failures(self) -> List[SendResult]:
        return [result for result in self.results if not result.success]

    @property
    def participant_failures(self) -> List[SendResult]:
        return [result for result in self.failures if not result.message.is_organizer]

    @property
    def all_participants_notified(self) -> bool:
        return not self.participant_failures


def categorize_status(status: int) -> str:
    if status == 400:
        return "invalid_request"
    if status == 401:
        return "unauthorized"
    if status == 403:
        return "forbidden"
    if status == 429:
        return "rate_limited"
    if status >= 500:
        return "server_error"
    return "unknown"


def format_budget(budget) -> str:
    if budget is None:
        return "No limit set"
    return f"${float(budget):.2f}"


def format_exchange_date(exchange_date) -> str:
    return exchange_date.strftime("%A, %B %d, %Y")


def _participant_html(participant, assignment, event) -> str:
    parts = [
        f"<p>Hi {html.escape(participant.name)},</p>",
        "<p>You are the Secret Santa for "
        f"<strong>{html.escape(assignment.receiver_name)}</strong>!</p>",
    ]
    if assignment.receiver_wish_list:
        parts.append(f"<p>Their wish list: <em>{html.escape(assignment.receiver_wish_list)}</em></p>")
    parts.append(
        "<p>Event: {0}<br>Exchange date: {1}<br>Budget: {2}</p>".format(
            html.escape(event.name),
            format_exchange_date(event.exchange_date),
            format_budget(event.budget),
        )
    )
    parts.append("<p>Keep it a secret!</p>")
    return "\n".join(parts)


def build_participant_messages(
    event,
    participants: Sequence,
    assignment_set: AssignmentSet,
) -> List[EmailMessage]:
    """One message per giver, naming only that giver's receiver."""
    messages: List[EmailMessage] = []
    for participant in participants:
        assignment = assignment_set.for_giver(participant.id)
        if assignment is None:
            raise NotificationError(f"No assignment found for participant {participant.id}.")
        messages.append(
            EmailMessage(
                to=participant.email,
                subject=f"Your Secret Santa Assignment - {event.name}",
                html=_participant_html(participant, assignment, event),
                participant_name=participant.name,
                receiver_name=assignment.receiver_name,
            )
        )
    return messages


def build_organizer_message(event, participant_count: int) -> EmailMessage:
    body = "\n".join(
        [
            "<p>Your Secret Santa event has been created.</p>",
            "<p>Event: {0}<br>Exchange date: {1}<br>Budget: {2}<br>Participants: {3}</p>".format(
                html.escape(event.name),
                format_exchange_date(event.exchange_date),
                format_budget(event.budget),
                participant_count,
            ),
            "<p>Assignments are being sent to every participant by email.</p>",
        ]
    )
    return EmailMessage(
        to=event.organizer_email,
        subject=f"Secret Santa Event Created - {event.name}",
        html=body,
        is_organizer=True,
    )


class ResendProvider:
    kind = EmailProvider.RESEND

    def __init__(self, api_key: str, from_email: str, from_name: str) -> None:
        self.api_key = api_key
        self.from_email = from_email
        self.from_name = from_name

    def build_payload(self, message: EmailMessage) -> dict:
        return {
            "from": f"{self.from_name} <{self.from_email}>",
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
        }

    async def send(self, http: aiohttp.ClientSession, message: EmailMessage) -> Optional[str]:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        async with http.post(RESEND_ENDPOINT, json=self.build_payload(message), headers=headers) as response:
            try:
                data = await response.json(content_type=None) or {}
            except ValueError:
                data = {}
            if not isinstance(data, dict):
                data = {}
            if response.status >= 400:
                raise ProviderError(
                    data.get("message") or "Failed to send",
                    status_code=response.status,
                    category=categorize_status(response.status),
                )
            return data.get("id")


class SendGridProvider:
    kind = EmailProvider.SENDGRID

    def __init__(self, api_key: str, from_email: str, from_name: str) -> None:
        self.api_key = api_key
        self.from_email = from_email
        self.from_name = from_name

    def build_payload(self, message: EmailMessage) -> dict:
        return {
            "personalizations": [{"to": [{"email": message.to}], "subject": message.subject}],
            "from": {"email": self.from_email, "name": self.from_name},
            "content": [{"type": "text/html", "value": message.html}],
        }

    async def send(self, http: aiohttp.ClientSession, message: EmailMessage) -> Optional[str]:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        async with http.post(SENDGRID_ENDPOINT, json=self.build_payload(message), headers=headers) as response:
            if response.status >= 400:
                raise ProviderError(
                    f"SendGrid error: {response.status} {response.reason}",
                    status_code=response.status,
                    category=categorize_status(response.status),
                )
            return response.headers.get("X-Message-Id")


def build_provider(settings):
    provider = EmailProvider(settings.email_provider)
    if not settings.email_api_key:
        raise NotificationError(f"No API key configured for the {provider.value} email provider.")
    provider_class = SendGridProvider if provider == EmailProvider.SENDGRID else ResendProvider
    return provider_class(settings.email_api_key, settings.from_email, settings.from_name)


class Notifier:
    def __init__(self, provider, delay_seconds: float = 0.1, timeout_seconds: float = 30) -> None:
        self.provider = provider
        self.delay_seconds = delay_seconds
        self.timeout_seconds = timeout_seconds

    async def send_all(self, messages: Sequence[EmailMessage]) -> NotificationReport:
        results: List[SendResult] = []
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        async with aiohttp.ClientSession(timeout=timeout) as http:
            for index, message in enumerate(messages):
                if index and self.delay_seconds:
                    await asyncio.sleep(self.delay_seconds)
                results.append(await self._send_one(http, message))

        report = NotificationReport(tuple(results))
        logger.bind(provider=self.provider.kind.value).info(
            "Email summary: {successful}/{total} sent, {failed} failed",
            successful=report.successful,
            total=report.total,
            failed=report.failed,
        )
        return report

    async def _send_one(self, http: aiohttp.ClientSession, message: EmailMessage) -> SendResult:
        log = logger.bind(provider=self.provider.kind.value, to=message.to)
        try:
            message_id = await self.provider.send(http, message)
        except ProviderError as exc:
            log.warning("Email rejected: {error}", error=str(exc))
            return SendResult(
                message=message,
                success=False,
                error=str(exc),
                error_category=exc.category,
                status_code=exc.status_code,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            log.warning("Email delivery failed: {error}", error=repr(exc))
            return SendResult(
                message=message,
                success=False,
                error=str(exc) or exc.__class__.__name__,
                error_category="network_error",
            )
        log.debug("Email sent")
        return SendResult(message=message, success=True, message_id=message_id)


def manual_notification_report(report: NotificationReport, event) -> str:
    """Text the organizer can forward by hand for participants whose email failed."""
    failures = report.participant_failures
    if not failures:
        return ""
    lines = [
        f"SECRET SANTA - {event.name}",
        f"Date: {format_exchange_date(event.exchange_date)}",
        f"Budget: {format_budget(event.budget)}",
        "",
        "Notify manually:",
    ]
    for position, result in enumerate(failures, start=1):
        lines.append(f"{position}. {result.message.participant_name} <{result.to}>")
        lines.append(f"   Gives to: {result.message.receiver_name}")
        lines.append(f"   Email failed: {result.error}")
    return "\n".join(lines)
