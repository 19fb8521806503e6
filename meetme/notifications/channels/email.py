"""SendGrid email delivery channel."""

import html
import logging
import re
from dataclasses import dataclass

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from meetme.config import get_from_email, get_from_name, get_sendgrid_api_key
from meetme.notifications.context import MeetingDetails, build_meeting_context
from meetme.notifications.templates import get_message

logger = logging.getLogger(__name__)

# Regex to match markdown links: [text](url)
MARKDOWN_LINK_PATTERN = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")

_client: SendGridAPIClient | None = None


class EmailDeliveryError(Exception):
    """The email transport rejected or failed to deliver a message."""


@dataclass
class EmailMessage:
    """Email message data. body is markdown-ish text with [text](url) links."""

    to_email: str
    subject: str
    body: str
    html_body: str | None = None


def markdown_to_html(text: str, settings_url: str | None = None) -> str:
    """
    Convert markdown-style links to HTML and wrap in basic HTML structure.

    Converts [text](url) to <a href="url">text</a> and preserves line breaks.
    Callers are responsible for escaping untrusted text first.
    """
    # Convert markdown links to HTML links
    html_body = MARKDOWN_LINK_PATTERN.sub(r'<a href="\2">\1</a>', text.strip())

    # Convert newlines to <br> for proper formatting
    html_body = html_body.replace("\n", "<br>\n")

    footer = "This email was sent by MeetMe."
    if settings_url:
        footer += (
            f' You can manage your notification preferences in '
            f'<a href="{settings_url}">settings</a>.'
        )

    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
<h1 style="color: #F97316; text-align: center;">MeetMe</h1>
{html_body}
<hr style="border: none; border-top: 1px solid #eee; margin: 30px 0;">
<p style="color: #999; font-size: 12px; text-align: center;">{footer}</p>
</body>
</html>"""


def markdown_to_plain_text(text: str) -> str:
    """
    Convert markdown-style links to plain text with URL in parentheses.

    Converts [text](url) to text (url) for plain text email fallback.
    """
    return MARKDOWN_LINK_PATTERN.sub(r"\1 (\2)", text)


# Context values built by us that are allowed to carry [text](url) links
LINK_CONTEXT_KEYS = {"video_line", "meeting_url", "settings_url"}

# Neutralise markdown link syntax in user text so it can't become an anchor
LINK_SYNTAX_ESCAPES = str.maketrans(
    {"[": "&#91;", "]": "&#93;", "(": "&#40;", ")": "&#41;"}
)


def _escape_context(context: dict) -> dict:
    escaped = {}
    for key, value in context.items():
        text = html.escape(str(value))
        if key not in LINK_CONTEXT_KEYS:
            text = text.translate(LINK_SYNTAX_ESCAPES)
        escaped[key] = text
    return escaped


def build_meeting_email(
    to_email: str,
    message_type: str,
    context: dict,
) -> EmailMessage:
    """
    Render subject, plain body and HTML body for a meeting message type.

    Template variables are HTML-escaped for the HTML version only, and user
    text loses its markdown link syntax there so it renders literally.
    """
    subject = get_message(message_type, "email_subject", context)
    body = get_message(message_type, "email_body", context)
    html_body = markdown_to_html(
        get_message(message_type, "email_body", _escape_context(context)),
        settings_url=context.get("settings_url"),
    )
    return EmailMessage(
        to_email=to_email,
        subject=subject,
        body=body,
        html_body=html_body,
    )


def _get_sendgrid_client() -> SendGridAPIClient | None:
    """Get or create SendGrid client singleton."""
    global _client
    api_key = get_sendgrid_api_key()
    if _client is None and api_key:
        _client = SendGridAPIClient(api_key)
    return _client


def send_email(message: EmailMessage) -> None:
    """
    Send an email via SendGrid.

    Both plain text and HTML versions are sent. When SendGrid isn't
    configured this logs what would have been sent and returns normally.

    Raises:
        EmailDeliveryError: on transport failure or a non-2xx response
    """
    client = _get_sendgrid_client()
    if not client:
        logger.info(
            f"SendGrid not configured, would send to {message.to_email}: "
            f"{message.subject}"
        )
        return

    mail = Mail(
        from_email=(get_from_email(), get_from_name()),
        to_emails=message.to_email,
        subject=message.subject,
        plain_text_content=markdown_to_plain_text(message.body),
        html_content=message.html_body or markdown_to_html(message.body),
    )

    try:
        response = client.send(mail)
    except Exception as e:
        raise EmailDeliveryError(f"Failed to send email to {message.to_email}: {e}") from e

    if response.status_code not in (200, 201, 202):
        raise EmailDeliveryError(
            f"SendGrid returned {response.status_code} for {message.to_email}"
        )


def send_meeting_reminder_email(
    to_email: str,
    meeting: MeetingDetails,
    minutes_before: int,
    recipient_name: str | None = None,
) -> None:
    """
    Compose and send a meeting reminder email.

    Args:
        to_email: Recipient address
        meeting: Full meeting payload (times, timezone, link, attendees, organizer)
        minutes_before: Reminder lead time
        recipient_name: Used in the greeting

    Raises:
        EmailDeliveryError: on transport failure
    """
    context = build_meeting_context(
        meeting, recipient_name=recipient_name, minutes_before=minutes_before
    )
    send_email(build_meeting_email(to_email, "meeting_reminder", context))


def send_meeting_email(
    to_email: str,
    message_type: str,
    context: dict,
) -> None:
    """Send any meeting message type that defines email fields."""
    send_email(build_meeting_email(to_email, message_type, context))
