import pytest
import requests

from planwise.core.config import settings as core_settings
from planwise.reminders.dispatcher import (
    CHANNEL_SMS,
    CHANNEL_WHATSAPP,
    TwilioError,
    TwilioGateway,
    ensure_e164_phone,
    is_valid_e164_phone_number,
)


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, data=None, auth=None, timeout=None):
        self.calls.append({"url": url, "data": data, "auth": auth, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def make_gateway(session, **overrides):
    values = {
        "account_sid": "AC123",
        "auth_token": "secret",
        "from_number": "+14155550100",
        "whatsapp_from": "+14155238886",
        "base_url": "https://twilio.test/2010-04-01/",
        "timeout": 5,
        "session": session,
    }
    values.update(overrides)
    return TwilioGateway(**values)


def test_phone_number_validation():
    assert is_valid_e164_phone_number("+491711234567")
    assert is_valid_e164_phone_number("whatsapp:+491711234567")
    assert not is_valid_e164_phone_number("01711234567")
    assert not is_valid_e164_phone_number("+0171123456")
    assert not is_valid_e164_phone_number("+49 171 1234567")
    assert not is_valid_e164_phone_number("")
    assert ensure_e164_phone(" whatsapp:+491711234567 ") == "+491711234567"


def test_whatsapp_send_posts_form_data():
    session = FakeSession(FakeResponse(201, {"sid": "SM42"}))
    result = make_gateway(session).send(CHANNEL_WHATSAPP, "+491711234567", "Hallo")

    assert result.message_sid == "SM42"
    call = session.calls[0]
    assert call["url"] == "https://twilio.test/2010-04-01/Accounts/AC123/Messages.json"
    assert call["data"] == {"To": "whatsapp:+491711234567", "From": "whatsapp:+14155238886", "Body": "Hallo"}
    assert call["auth"] == ("AC123", "secret")
    assert call["timeout"] == 5


def test_whatsapp_sender_keeps_existing_prefix():
    session = FakeSession(FakeResponse(201, {"sid": "SM1"}))
    make_gateway(session, whatsapp_from="whatsapp:+14155238886").send(CHANNEL_WHATSAPP, "+491711234567", "Hi")
    assert session.calls[0]["data"]["From"] == "whatsapp:+14155238886"


def test_sms_send_uses_plain_numbers():
    session = FakeSession(FakeResponse(201, {"sid": "SM7"}))
    make_gateway(session).send(CHANNEL_SMS, "+491711234567", "Hallo")
    assert session.calls[0]["data"]["To"] == "+491711234567"
    assert session.calls[0]["data"]["From"] == "+14155550100"


def test_sms_sender_with_whatsapp_prefix_is_rejected():
    session = FakeSession(FakeResponse(201, {"sid": "SM7"}))
    with pytest.raises(TwilioError) as excinfo:
        make_gateway(session, from_number="whatsapp:+14155550100").send(CHANNEL_SMS, "+491711234567", "Hi")
    assert excinfo.value.status == 500
    assert session.calls == []


def test_invalid_recipient_is_rejected_before_request():
    session = FakeSession(FakeResponse(201, {"sid": "SM1"}))
    with pytest.raises(TwilioError) as excinfo:
        make_gateway(session).send(CHANNEL_WHATSAPP, "0171 123", "Hi")
    assert excinfo.value.status == 400
    assert session.calls == []


def test_missing_credentials(monkeypatch):
    monkeypatch.setattr(core_settings, "TWILIO_ACCOUNT_SID", None)
    monkeypatch.setattr(core_settings, "TWILIO_AUTH_TOKEN", None)
    session = FakeSession(FakeResponse(201, {"sid": "SM1"}))
    with pytest.raises(TwilioError) as excinfo:
        make_gateway(session, account_sid=None, auth_token=None).send(CHANNEL_WHATSAPP, "+491711234567", "Hi")
    assert excinfo.value.status == 500
    assert "TWILIO_ACCOUNT_SID" in excinfo.value.message


def test_twilio_rejection_maps_message_and_status():
    session = FakeSession(FakeResponse(400, {"code": 21211, "message": "The 'To' number is not valid."}))
    with pytest.raises(TwilioError) as excinfo:
        make_gateway(session).send(CHANNEL_WHATSAPP, "+491711234567", "Hi")
    assert excinfo.value.status == 400
    assert excinfo.value.message == "The 'To' number is not valid."


def test_twilio_rejection_without_json_body():
    session = FakeSession(FakeResponse(503, ValueError("no json")))
    with pytest.raises(TwilioError) as excinfo:
        make_gateway(session).send(CHANNEL_WHATSAPP, "+491711234567", "Hi")
    assert excinfo.value.status == 503
    assert excinfo.value.message == "Twilio konnte die Nachricht nicht senden."


def test_transport_error_maps_to_bad_gateway():
    session = FakeSession(error=requests.ConnectionError("connection refused"))
    with pytest.raises(TwilioError) as excinfo:
        make_gateway(session).send(CHANNEL_WHATSAPP, "+491711234567", "Hi")
    assert excinfo.value.status == 502
