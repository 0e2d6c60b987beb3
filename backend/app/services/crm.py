"""
CRM Relay Service - forwards site forms to GoHighLevel.

Covers the contact form, the funnel gift form and onboarding webhooks, plus
the LeadConnector calendar (free slots and booking). Upstream failures are
raised as UpstreamError carrying the HTTP status to return to the caller.
Contact submissions are signed with HMAC-SHA256 when GHL_WEBHOOK_SECRET is set.
"""

import hashlib
import hmac
import json
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
import structlog

from app.config import settings
from app.exceptions import UpstreamError
from app.models import BookingRequest, ContactRequest, FunnelGiftRequest

logger = structlog.get_logger()


LEADCONNECTOR_URL = "https://services.leadconnectorhq.com"
CONTACTS_API_VERSION = "2021-07-28"
CALENDARS_API_VERSION = "2021-04-15"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def sign_payload(body: bytes, secret: str) -> str:
    """``X-Hub-Signature-256`` value: HMAC-SHA256 of the raw body."""
    return "sha256=" + hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


class CRMRelayService:
    """Relays form submissions and calendar calls to the CRM."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = httpx.Timeout(settings.http_timeout_seconds)
        self.transport = transport

    def _client(self, **kwargs) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport, **kwargs)

    # ========================================================================
    # Webhooks
    # ========================================================================

    async def forward_contact(self, form: ContactRequest) -> None:
        if not settings.ghl_webhook_url:
            logger.error("GHL_WEBHOOK_URL is not configured")
            raise UpstreamError(500, "Server configuration error")

        payload = form.model_dump(by_alias=True)
        payload["submittedAt"] = _now_iso()

        # Sign the exact bytes sent so the receiver can verify them
        body = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if settings.ghl_webhook_secret:
            headers["X-Hub-Signature-256"] = sign_payload(body, settings.ghl_webhook_secret)

        try:
            async with self._client() as client:
                response = await client.post(settings.ghl_webhook_url, content=body, headers=headers)
        except httpx.HTTPError as e:
            logger.error("Contact webhook exception", error=str(e))
            raise UpstreamError(502, str(e) or "Webhook failure") from e

        if not response.is_success:
            logger.error("Contact webhook error", status=response.status_code, body=response.text[:500])
            raise UpstreamError(502, "Webhook failure", response.text or None)

        logger.info("Contact form forwarded", topic=form.topic)

    async def forward_funnel_gift(self, form: FunnelGiftRequest) -> None:
        if not settings.ghl_gift_webhook:
            logger.error("GHL_GIFT_WEBHOOK is not configured")
            raise UpstreamError(500, "Webhook configuration error")

        payload = form.model_dump(by_alias=True)
        payload["timestamp"] = _now_iso()

        await self._post_webhook(settings.ghl_gift_webhook, payload, "Failed to send to webhook")
        logger.info("Funnel gift forwarded", clinic=form.clinic_name)

    async def forward_onboarding(self, payload: dict[str, Any]) -> None:
        if not settings.onboarding_webhook_url:
            logger.error("ONBOARDING_WEBHOOK_URL is not configured")
            raise UpstreamError(500, "Webhook configuration error")

        await self._post_webhook(settings.onboarding_webhook_url, payload, "Onboarding webhook failed")
        logger.info("Onboarding submission forwarded")

    async def _post_webhook(self, url: str, payload: dict[str, Any], error: str) -> None:
        try:
            async with self._client() as client:
                response = await client.post(url, json=payload)
        except httpx.HTTPError as e:
            logger.error("Webhook exception", error=str(e))
            raise UpstreamError(500, error, str(e)) from e

        if not response.is_success:
            logger.error("Webhook error", status=response.status_code, body=response.text[:500])
            raise UpstreamError(500, error, response.text or None)

    # ========================================================================
    # Calendar
    # ========================================================================

    def _calendar_headers(self, version: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {settings.ghl_api_key}",
            "Version": version,
            "Accept": "application/json",
        }

    def _require_calendar(self) -> str:
        if not settings.ghl_api_key or not settings.ghl_calendar_id:
            logger.error("GHL calendar credentials are not configured")
            raise UpstreamError(500, "Calendar configuration error")
        return settings.ghl_calendar_id

    async def free_slots(self, start_date: str, end_date: str, timezone_name: str) -> Any:
        """Open appointment slots between two dates."""
        calendar_id = self._require_calendar()

        try:
            async with self._client(base_url=LEADCONNECTOR_URL) as client:
                response = await client.get(
                    f"/calendars/{calendar_id}/free-slots",
                    params={"startDate": start_date, "endDate": end_date, "timezone": timezone_name},
                    headers=self._calendar_headers(CALENDARS_API_VERSION),
                )
        except httpx.HTTPError as e:
            logger.error("Free slots request failed", error=str(e))
            raise UpstreamError(500, "Internal server error", str(e)) from e

        if not response.is_success:
            logger.error("GHL API error", status=response.status_code, body=response.text[:500])
            raise UpstreamError(response.status_code, "Failed to fetch slots from GHL", response.text)

        return response.json()

    async def book_appointment(self, booking: BookingRequest) -> dict[str, Any]:
        """Upsert the contact, then book a confirmed appointment for it."""
        calendar_id = self._require_calendar()
        first_name, _, last_name = booking.name.partition(" ")

        try:
            async with self._client(base_url=LEADCONNECTOR_URL) as client:
                upsert = await client.post(
                    "/contacts/upsert",
                    headers=self._calendar_headers(CONTACTS_API_VERSION),
                    json={
                        "email": booking.email,
                        "phone": booking.phone,
                        "firstName": first_name,
                        "lastName": last_name,
                        "name": booking.name,
                        "tags": ["website-booking"],
                    },
                )
                if not upsert.is_success:
                    logger.error("Contact upsert error", status=upsert.status_code, body=upsert.text[:500])
                    raise UpstreamError(400, "Failed to create/update contact", upsert.text)

                contact_data = upsert.json()
                contact_id = (contact_data.get("contact") or {}).get("id") or contact_data.get("id")
                if not contact_id:
                    raise UpstreamError(500, "Could not retrieve contact ID")

                appointment = await client.post(
                    "/calendars/events/appointments",
                    headers=self._calendar_headers(CALENDARS_API_VERSION),
                    json={
                        "calendarId": calendar_id,
                        "contactId": contact_id,
                        "startTime": booking.start_time,
                        "title": booking.title or "New Appointment",
                        "appointmentStatus": "confirmed",
                        "ignoreDateRange": False,
                        "toNotify": True,
                    },
                )
                if not appointment.is_success:
                    logger.error("Booking error", status=appointment.status_code, body=appointment.text[:500])
                    raise UpstreamError(400, "Failed to book appointment", appointment.text)

        except httpx.HTTPError as e:
            logger.error("Booking request failed", error=str(e))
            raise UpstreamError(500, "Internal server error", str(e)) from e

        logger.info("Appointment booked", contact_id=contact_id)
        return appointment.json()
