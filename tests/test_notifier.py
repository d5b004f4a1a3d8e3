"""
test_notifier.py — Tests for services/notifier.py

Covers: SendMessageResult.merge, RelayTransport, TemplateNotifier, build_notifier.
Relay traffic is captured with httpx.MockTransport.
"""

import json
from datetime import datetime, timezone

import httpx
import pytest

from connections_digest.config import Settings
from connections_digest.exceptions import DeliveryError
from connections_digest.models import CommunicationType, Person, SystemCommunication
from connections_digest.services.notifier import (
    OutboundMessage,
    RelayTransport,
    SendMessageResult,
    TemplateNotifier,
    build_notifier,
)

EMAIL = CommunicationType.EMAIL
SMS = CommunicationType.SMS
PUSH = CommunicationType.PUSH_NOTIFICATION


@pytest.fixture()
def sent():
    return []


@pytest.fixture()
def relay_client(sent):
    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(json.loads(request.content))
        return httpx.Response(202, json={"queued": True})

    return httpx.Client(transport=httpx.MockTransport(handler))


@pytest.fixture()
def person():
    return Person(id=7, first_name="Ann", last_name="Lee", email="ann@example.org", mobile_phone="+15550100")


@pytest.fixture()
def comm():
    return SystemCommunication(
        title="Digest",
        from_email="noreply@example.org",
        subject="{{ Requests | length }} open requests",
        body="<p>Hi {{ Person.first_name }} {{ Note }}</p>",
        sms_message="{{ Person.first_name }}: {{ Requests | length }} open",
        push_title="Connections",
        push_message="{{ Requests | length }} waiting",
    )


def _notifier(client, *mediums):
    return TemplateNotifier({m: RelayTransport(f"https://relay.test/{m.name}", client) for m in mediums})


def test_send_message_result_merge():
    total = SendMessageResult(messages_sent=1, warnings=["w1"])
    total.merge(SendMessageResult(messages_sent=2, errors=["e1"]))
    assert (total.messages_sent, total.warnings, total.errors) == (3, ["w1"], ["e1"])


# ── Email ────────────────────────────────────────────────────────────


def test_email_rendered_and_relayed(relay_client, sent, person, comm):
    notifier = _notifier(relay_client, EMAIL)
    fields = {"Person": person, "Requests": [1, 2, 3], "Note": "<b>soon</b>"}
    result = notifier.send(person, EMAIL, comm, fields)

    assert result.messages_sent == 1
    assert result.errors == [] and result.warnings == []
    assert sent[0]["to"] == "ann@example.org"
    assert sent[0]["subject"] == "3 open requests"
    assert sent[0]["body"] == "<p>Hi Ann &lt;b&gt;soon&lt;/b&gt;</p>"
    assert sent[0]["from"] == "noreply@example.org"
    assert sent[0]["medium"] == "email"


def test_email_without_address_warns(relay_client, sent, person, comm):
    person.email = None
    result = _notifier(relay_client, EMAIL).send(person, EMAIL, comm, {"Person": person, "Requests": []})
    assert result.messages_sent == 0
    assert result.warnings == ["Ann Lee does not have an active email address."]
    assert sent == []


def test_email_inactive_warns(relay_client, person, comm):
    person.is_email_active = False
    result = _notifier(relay_client, EMAIL).send(person, EMAIL, comm, {"Person": person, "Requests": []})
    assert result.messages_sent == 0
    assert len(result.warnings) == 1


def test_missing_transport_is_error(relay_client, person, comm):
    result = _notifier(relay_client, EMAIL).send(person, SMS, comm, {"Person": person, "Requests": []})
    assert result.messages_sent == 0
    assert result.errors == ["No active sms transport; Ann Lee was not notified."]


def test_template_error_is_error(relay_client, sent, person, comm):
    comm.body = "{% for x in %}"
    result = _notifier(relay_client, EMAIL).send(person, EMAIL, comm, {"Person": person, "Requests": []})
    assert result.messages_sent == 0
    assert result.errors and result.errors[0].startswith("Unable to render Digest for Ann Lee")
    assert sent == []


# ── SMS / Push ───────────────────────────────────────────────────────


def test_sms_rendered_as_plain_text(relay_client, sent, person, comm):
    result = _notifier(relay_client, SMS).send(person, SMS, comm, {"Person": person, "Requests": [1]})
    assert result.messages_sent == 1
    assert sent[0] == {
        "medium": "sms",
        "to": "+15550100",
        "from": "",
        "subject": "",
        "body": "Ann: 1 open",
        "person_id": 7,
    }


def test_sms_without_phone_warns(relay_client, person, comm):
    person.mobile_phone = None
    result = _notifier(relay_client, SMS).send(person, SMS, comm, {"Person": person, "Requests": []})
    assert result.warnings == ["Ann Lee does not have a mobile phone number."]


def test_push_rendered(relay_client, sent, person, comm):
    result = _notifier(relay_client, PUSH).send(person, PUSH, comm, {"Requests": [1, 2]})
    assert result.messages_sent == 1
    assert sent[0]["subject"] == "Connections"
    assert sent[0]["body"] == "2 waiting"
    assert sent[0]["to"] == "7"


def test_push_without_content_warns(relay_client, person, comm):
    comm.push_message = None
    result = _notifier(relay_client, PUSH).send(person, PUSH, comm, {"Requests": []})
    assert result.warnings == ["No push message found in system communication Digest."]


# ── RelayTransport failures ──────────────────────────────────────────


def test_relay_rejection_becomes_error(person, comm):
    client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(500, text="boom")))
    result = _notifier(client, EMAIL).send(person, EMAIL, comm, {"Person": person, "Requests": []})
    assert result.messages_sent == 0
    assert result.errors == ["Failed to send to Ann Lee: Relay rejected message: 500 — boom"]


def test_relay_connection_error_raises_delivery_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    transport = RelayTransport("https://relay.test/email", httpx.Client(transport=httpx.MockTransport(handler)))
    with pytest.raises(DeliveryError):
        transport.send(OutboundMessage(medium=EMAIL, to="a@b.c", body="x"))


# ── build_notifier ───────────────────────────────────────────────────


def test_build_notifier_registers_configured_relays(relay_client):
    settings = Settings(email_relay_url="https://relay.test/mail", sms_relay_url="", push_relay_url="")
    notifier = build_notifier(settings, client=relay_client)
    assert notifier.has_active_transport(EMAIL)
    assert not notifier.has_active_transport(SMS)
    assert not notifier.has_active_transport(PUSH)


def test_build_notifier_common_merge_fields(relay_client, sent, person, comm):
    settings = Settings(email_relay_url="https://relay.test/mail", app_url="https://crm.example.org")
    comm.body = "{{ PublicApplicationRoot }}"
    build_notifier(settings, client=relay_client).send(person, EMAIL, comm, {"Requests": []})
    assert sent[0]["body"] == "https://crm.example.org/"


def test_current_datetime_taken_from_merge_fields(relay_client, sent, person, comm):
    run_at = datetime(2026, 3, 10, 15, 0, tzinfo=timezone.utc)
    comm.body = "{{ CurrentDateTime.isoformat() }}"
    _notifier(relay_client, EMAIL).send(person, EMAIL, comm, {"CurrentDateTime": run_at})
    assert sent[0]["body"] == "2026-03-10T15:00:00+00:00"


def test_build_notifier_owns_and_closes_its_client():
    notifier = build_notifier(Settings(email_relay_url="https://relay.test/mail"))
    client = notifier.client
    assert isinstance(client, httpx.Client)
    notifier.close()
    assert client.is_closed
    notifier.close()


def test_build_notifier_leaves_injected_client_open(relay_client):
    notifier = build_notifier(Settings(email_relay_url="https://relay.test/mail"), client=relay_client)
    notifier.close()
    assert not relay_client.is_closed
