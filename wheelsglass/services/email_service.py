"""Transactional email — quote confirmations via the SendGrid v3 API.

Bodies are rendered from templates/email with Jinja2 (autoescaped for HTML,
since names and service types come straight from the public form). Sending
never raises: a missing API key or an HTTP failure is logged and reported
as False.
"""

import logging
from pathlib import Path

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..config import settings

log = logging.getLogger(__name__)

_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"

_jinja_env = Environment(
    loader=FileSystemLoader(str(_TEMPLATE_DIR)),
    autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
    keep_trailing_newline=False,
)

DIVISION_NAMES = {"glass": "Auto Glass", "wheels": "Wheel Repair"}
_ACCENTS = {"glass": "#2563eb", "wheels": "#f97316"}


def vehicle_text(vehicle: dict | None) -> str:
    if not vehicle:
        return "your vehicle"
    parts = [str(vehicle.get(k)) for k in ("year", "make", "model") if vehicle.get(k)]
    return " ".join(parts) or "your vehicle"


def render_quote_confirmation(
    submission_id: int,
    customer_name: str,
    division: str,
    service_type: str,
    vehicle: dict | None = None,
) -> dict:
    """Returns {"subject", "text", "html"}."""
    division_name = DIVISION_NAMES.get(division, "Auto Glass")
    ctx = {
        "submission_id": submission_id,
        "customer_name": customer_name,
        "division_name": division_name,
        "service_type": service_type,
        "vehicle_text": vehicle_text(vehicle),
        "accent": _ACCENTS.get(division, _ACCENTS["glass"]),
    }
    return {
        "subject": f"Your {division_name} Quote Request #{submission_id}",
        "text": _jinja_env.get_template("quote_confirmation.txt").render(**ctx).strip(),
        "html": _jinja_env.get_template("quote_confirmation.html").render(**ctx).strip(),
    }


async def send_email(to: str, subject: str, text: str, html: str | None = None) -> bool:
    if not settings.sendgrid_api_key or not settings.email_from_address:
        log.info("Email not configured, skipping message to %s", to)
        return False

    from ..http_client import http

    payload = {
        "personalizations": [{"to": [{"email": to}]}],
        "from": {"email": settings.email_from_address, "name": settings.email_from_name},
        "subject": subject,
        "content": [
            {"type": "text/plain", "value": text},
            {"type": "text/html", "value": html or text},
        ],
    }
    try:
        r = await http.post(
            settings.email_api_url,
            json=payload,
            headers={"Authorization": f"Bearer {settings.sendgrid_api_key}"},
            timeout=15,
        )
        r.raise_for_status()
    except httpx.HTTPError as e:
        log.error("Failed to send email to %s: %s", to, e)
        return False
    log.info("Email sent to %s: %s", to, subject)
    return True


async def send_quote_confirmation(
    email: str,
    submission_id: int,
    customer_name: str,
    division: str,
    service_type: str,
    vehicle: dict | None = None,
) -> bool:
    msg = render_quote_confirmation(submission_id, customer_name, division, service_type, vehicle)
    return await send_email(email, msg["subject"], msg["text"], msg["html"])
