"""Lifecycle email notifications.

Two events send mail: a new request notifies the resident with approve/reject links,
and an approval sends the verification code to the visitor. Delivery is best-effort:
failures are logged and never reach the caller or undo the state change that triggered them.
"""
import logging
from html import escape
from typing import Any, Callable

from pydantic import BaseModel

from app.core.exceptions import NotificationError
from app.db.models import Visitor
from app.services.mail_service import SmtpMailer

logger = logging.getLogger(__name__)

REQUEST_CREATED = "visitor.request_created"
REQUEST_APPROVED = "visitor.approved"


class OutgoingEmail(BaseModel):
    to: str
    subject: str
    html: str
    text: str


def approval_links(frontend_base_url: str, visitor_id: int) -> tuple[str, str]:
    base = frontend_base_url.rstrip("/")
    return f"{base}/approve/{visitor_id}", f"{base}/reject/{visitor_id}"


def render_request_created(visitor: Visitor, frontend_base_url: str) -> OutgoingEmail:
    approve_url, reject_url = approval_links(frontend_base_url, visitor.id)
    car_number = visitor.car_number or "Not provided"
    html = (
        "<h2>New Visitor Request</h2>"
        f"<p>Visitor Name: {escape(visitor.visitor_name)}</p>"
        f"<p>Visitor Email: {escape(visitor.visitor_email)}</p>"
        f"<p>Visit Reason: {escape(visitor.visit_reason)}</p>"
        f"<p>Car Number: {escape(car_number)}</p>"
        f'<a href="{escape(approve_url)}">Approve</a> '
        f'<a href="{escape(reject_url)}">Reject</a>'
    )
    text = (
        "New Visitor Request\n\n"
        f"Visitor Name: {visitor.visitor_name}\n"
        f"Visitor Email: {visitor.visitor_email}\n"
        f"Visit Reason: {visitor.visit_reason}\n"
        f"Car Number: {car_number}\n\n"
        f"Approve: {approve_url}\n"
        f"Reject: {reject_url}\n"
    )
    return OutgoingEmail(to=visitor.resident_email, subject="New Visitor Request", html=html, text=text)


def render_approved(visitor: Visitor) -> OutgoingEmail:
    html = (
        "<h2>Your visit has been approved</h2>"
        f"<p>Your verification code is: {escape(visitor.verification_code)}</p>"
        "<p>Please show this code to the guard upon arrival.</p>"
    )
    text = (
        "Your visit has been approved\n\n"
        f"Your verification code is: {visitor.verification_code}\n"
        "Please show this code to the guard upon arrival.\n"
    )
    return OutgoingEmail(
        to=visitor.visitor_email,
        subject="Visit Approved - Verification Code",
        html=html,
        text=text,
    )


class NotificationDispatcher:
    def __init__(
        self,
        mailer: SmtpMailer | None,
        frontend_base_url: str,
        defer: Callable[..., Any] | None = None,
    ):
        self.mailer = mailer
        self.frontend_base_url = frontend_base_url
        self._defer = defer

    def on_request_created(self, visitor: Visitor) -> None:
        self._dispatch(REQUEST_CREATED, visitor, lambda: render_request_created(visitor, self.frontend_base_url))

    def on_approved(self, visitor: Visitor) -> None:
        self._dispatch(REQUEST_APPROVED, visitor, lambda: render_approved(visitor))

    def _dispatch(self, event: str, visitor: Visitor, render: Callable[[], OutgoingEmail]) -> None:
        if self.mailer is None:
            logger.info("%s skipped: email transport not configured visitor_id=%s", event, visitor.id)
            return
        try:
            # Rendered now so delivery never touches the ORM row after the session closes.
            message = render()
        except Exception:
            logger.exception("%s render failed visitor_id=%s", event, visitor.id)
            return
        if self._defer is not None:
            self._defer(self.deliver, event, visitor.id, message)
        else:
            self.deliver(event, visitor.id, message)

    def deliver(self, event: str, visitor_id: int, message: OutgoingEmail) -> bool:
        try:
            self.mailer.send(message.to, message.subject, message.html, message.text)
        except Exception as exc:
            error = exc if isinstance(exc, NotificationError) else NotificationError(str(exc))
            logger.error(
                "%s delivery failed visitor_id=%s to=%s: %s",
                event,
                visitor_id,
                message.to,
                error,
                exc_info=exc,
            )
            return False
        logger.info("%s email sent visitor_id=%s to=%s", event, visitor_id, message.to)
        return True
