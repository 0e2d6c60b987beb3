import hashlib
import hmac
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from app.config import settings
from app.exceptions import UpstreamError
from app.main import app, get_crm_service
from app.models import BookingRequest, ContactRequest, FunnelGiftRequest
from app.services.crm import CRMRelayService, sign_payload

CONTACT = {
    "name": "Jo Smith",
    "email": "jo@example.test",
    "phone": "555-0199",
    "topic": "Pricing",
    "additionalInfo": "Two locations",
    "consentNonMarketing": True,
}


@pytest.fixture
def crm_settings(monkeypatch):
    monkeypatch.setattr(settings, "ghl_webhook_url", "https://hooks.crm.test/contact")
    monkeypatch.setattr(settings, "ghl_gift_webhook", "https://hooks.crm.test/gift")
    monkeypatch.setattr(settings, "onboarding_webhook_url", "https://hooks.crm.test/onboarding")
    monkeypatch.setattr(settings, "ghl_api_key", "ghl-key")
    monkeypatch.setattr(settings, "ghl_calendar_id", "cal_1")


def recording_transport(requests, status=200, body=None):
    def handler(request):
        requests.append(request)
        return httpx.Response(status, json=body if body is not None else {"ok": True})

    return httpx.MockTransport(handler)


# ============================================================================
# Webhooks
# ============================================================================

async def test_contact_is_forwarded_with_timestamp(crm_settings):
    requests = []
    crm = CRMRelayService(transport=recording_transport(requests))

    await crm.forward_contact(ContactRequest.model_validate(CONTACT))

    sent = json.loads(requests[0].content)
    assert str(requests[0].url) == "https://hooks.crm.test/contact"
    assert sent["name"] == "Jo Smith"
    assert sent["additionalInfo"] == "Two locations"
    assert sent["consentMarketing"] is False
    assert "submittedAt" in sent


async def test_contact_without_webhook_is_configuration_error(crm_settings, monkeypatch):
    monkeypatch.setattr(settings, "ghl_webhook_url", None)

    with pytest.raises(UpstreamError) as exc_info:
        await CRMRelayService().forward_contact(ContactRequest.model_validate(CONTACT))

    assert exc_info.value.status_code == 500
    assert exc_info.value.error == "Server configuration error"


async def test_contact_webhook_failure_is_bad_gateway(crm_settings):
    crm = CRMRelayService(transport=recording_transport([], status=503))

    with pytest.raises(UpstreamError) as exc_info:
        await crm.forward_contact(ContactRequest.model_validate(CONTACT))

    assert exc_info.value.status_code == 502
    assert exc_info.value.error == "Webhook failure"


async def test_contact_is_signed_when_secret_is_set(crm_settings, monkeypatch):
    monkeypatch.setattr(settings, "ghl_webhook_secret", "s3cret")
    requests = []
    crm = CRMRelayService(transport=recording_transport(requests))

    await crm.forward_contact(ContactRequest.model_validate(CONTACT))

    signature = requests[0].headers["X-Hub-Signature-256"]
    expected = hmac.new(b"s3cret", requests[0].content, hashlib.sha256).hexdigest()
    assert signature == f"sha256={expected}"
    assert signature == sign_payload(requests[0].content, "s3cret")
    assert requests[0].headers["Content-Type"] == "application/json"


async def test_contact_is_unsigned_without_secret(crm_settings, monkeypatch):
    monkeypatch.setattr(settings, "ghl_webhook_secret", None)
    requests = []
    crm = CRMRelayService(transport=recording_transport(requests))

    await crm.forward_contact(ContactRequest.model_validate(CONTACT))

    assert "X-Hub-Signature-256" not in requests[0].headers


async def test_funnel_gift_is_forwarded(crm_settings):
    requests = []
    crm = CRMRelayService(transport=recording_transport(requests))

    await crm.forward_funnel_gift(
        FunnelGiftRequest(phone_number="555-0101", name="Dr. Lee", clinic_name="Smile Dental")
    )

    sent = json.loads(requests[0].content)
    assert sent["clinicName"] == "Smile Dental"
    assert sent["phoneNumber"] == "555-0101"
    assert "timestamp" in sent


async def test_funnel_gift_failure(crm_settings):
    crm = CRMRelayService(transport=recording_transport([], status=400))

    with pytest.raises(UpstreamError, match="Failed to send to webhook"):
        await crm.forward_funnel_gift(
            FunnelGiftRequest(phone_number="555-0101", name="Dr. Lee", clinic_name="Smile Dental")
        )


async def test_onboarding_payload_is_passed_through(crm_settings):
    requests = []
    crm = CRMRelayService(transport=recording_transport(requests))

    await crm.forward_onboarding({"business": "Acme", "answers": [1, 2, 3]})

    assert json.loads(requests[0].content) == {"business": "Acme", "answers": [1, 2, 3]}


# ============================================================================
# Calendar
# ============================================================================

async def test_free_slots(crm_settings):
    requests = []
    slots = {"2025-01-06": {"slots": ["2025-01-06T09:00:00-05:00"]}}
    crm = CRMRelayService(transport=recording_transport(requests, body=slots))

    result = await crm.free_slots("1736121600000", "1736726400000", "America/New_York")

    assert result == slots
    request = requests[0]
    assert request.url.path == "/calendars/cal_1/free-slots"
    assert request.url.params["timezone"] == "America/New_York"
    assert request.headers["Authorization"] == "Bearer ghl-key"
    assert request.headers["Version"] == "2021-04-15"


async def test_free_slots_passes_upstream_status(crm_settings):
    crm = CRMRelayService(transport=recording_transport([], status=422, body={"message": "bad range"}))

    with pytest.raises(UpstreamError) as exc_info:
        await crm.free_slots("a", "b", "UTC")

    assert exc_info.value.status_code == 422
    assert exc_info.value.error == "Failed to fetch slots from GHL"


async def test_calendar_requires_credentials(crm_settings, monkeypatch):
    monkeypatch.setattr(settings, "ghl_api_key", None)

    with pytest.raises(UpstreamError, match="Calendar configuration error"):
        await CRMRelayService().free_slots("a", "b", "UTC")


def booking_handler(requests, upsert_status=200, contact=None, appointment_status=201):
    def handler(request):
        requests.append(request)
        if request.url.path == "/contacts/upsert":
            body = {"contact": {"id": "contact_9"}} if contact is None else contact
            return httpx.Response(upsert_status, json=body)
        return httpx.Response(appointment_status, json={"id": "appt_1", "status": "confirmed"})

    return httpx.MockTransport(handler)


async def test_book_appointment(crm_settings):
    requests = []
    crm = CRMRelayService(transport=booking_handler(requests))
    booking = BookingRequest(name="Jo Ann Smith", email="jo@example.test", start_time="2025-01-06T09:00:00-05:00")

    appointment = await crm.book_appointment(booking)

    assert appointment == {"id": "appt_1", "status": "confirmed"}
    upsert, booked = (json.loads(r.content) for r in requests)
    assert (upsert["firstName"], upsert["lastName"]) == ("Jo", "Ann Smith")
    assert upsert["tags"] == ["website-booking"]
    assert booked["calendarId"] == "cal_1"
    assert booked["contactId"] == "contact_9"
    assert booked["title"] == "New Appointment"
    assert booked["appointmentStatus"] == "confirmed"


@pytest.mark.parametrize(
    "kwargs, status, error",
    [
        ({"upsert_status": 400}, 400, "Failed to create/update contact"),
        ({"contact": {"contact": {}}}, 500, "Could not retrieve contact ID"),
        ({"appointment_status": 409}, 400, "Failed to book appointment"),
    ],
)
async def test_booking_failures(crm_settings, kwargs, status, error):
    crm = CRMRelayService(transport=booking_handler([], **kwargs))
    booking = BookingRequest(name="Jo", phone="555-0199", start_time="2025-01-06T09:00:00-05:00")

    with pytest.raises(UpstreamError) as exc_info:
        await crm.book_appointment(booking)

    assert (exc_info.value.status_code, exc_info.value.error) == (status, error)


# ============================================================================
# Routes
# ============================================================================

@pytest.fixture
def relay_client(crm_settings):
    transport = recording_transport([], body={"slots": []})
    app.dependency_overrides[get_crm_service] = lambda: CRMRelayService(transport=transport)
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def test_contact_route(relay_client):
    response = relay_client.post("/api/contact", json=CONTACT)

    assert response.status_code == 200
    assert response.json() == {"success": True}


def test_contact_route_validates_fields(relay_client):
    response = relay_client.post("/api/contact", json={"name": "Jo"})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"


def test_funnel_route(relay_client):
    response = relay_client.post(
        "/api/funnel-webhook",
        json={"phoneNumber": "555-0101", "name": "Dr. Lee", "clinicName": "Smile Dental"},
    )

    assert response.json() == {"success": True, "message": "Data sent successfully"}


def test_slots_route_requires_parameters(relay_client):
    response = relay_client.get("/api/ghl/slots", params={"startDate": "1"})

    assert response.status_code == 400
    assert response.json()["error"] == "Missing required parameters"


def test_slots_route(relay_client):
    response = relay_client.get(
        "/api/ghl/slots",
        params={"startDate": "1", "endDate": "2", "timezone": "UTC"},
    )

    assert response.status_code == 200
    assert response.json() == {"slots": []}


def test_book_route_requires_email_or_phone(relay_client):
    response = relay_client.post("/api/ghl/book", json={"name": "Jo", "startTime": "2025-01-06T09:00:00Z"})

    assert response.status_code == 400
    assert response.json()["error"] == "Email or Phone is required"


def test_upstream_errors_keep_their_status(crm_settings, monkeypatch):
    monkeypatch.setattr(settings, "ghl_webhook_url", None)
    app.dependency_overrides[get_crm_service] = lambda: CRMRelayService()
    try:
        with TestClient(app) as client:
            response = client.post("/api/contact", json=CONTACT)
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Server configuration error"}


def test_contact_route_is_rate_limited(relay_client, monkeypatch):
    monkeypatch.setattr(settings, "rate_limit_contact", "2/minute")

    statuses = [relay_client.post("/api/contact", json=CONTACT).status_code for _ in range(3)]

    assert statuses == [200, 200, 429]
    response = relay_client.post("/api/contact", json=CONTACT)
    assert response.json() == {
        "success": False,
        "error": "Too many requests, please try again later.",
        "code": "429",
    }


def test_relay_routes_use_the_default_limit(relay_client, monkeypatch):
    monkeypatch.setattr(settings, "rate_limit_default", "1/minute")
    gift = {"phoneNumber": "555-0101", "name": "Dr. Lee", "clinicName": "Smile Dental"}

    assert relay_client.post("/api/funnel-webhook", json=gift).status_code == 200
    assert relay_client.post("/api/funnel-webhook", json=gift).status_code == 429
    # Limits are counted per route
    assert relay_client.post("/api/contact", json=CONTACT).status_code == 200
