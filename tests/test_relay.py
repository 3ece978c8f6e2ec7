"""
HEMSAEUCC - Relay HTTP interface tests.
"""

import time

import pytest

from hemsaeucc import crypto
from hemsaeucc.packet import decode_packet, encode_packet
from hemsaeucc.relay import RelayService, StoredEnvelope
from hemsaeucc.errors import InvalidRequestError


@pytest.fixture
def hello_body(alice, bob):
    packet = crypto.seal(b"hello", alice, bob.public_key, bob.public_id)
    return {"to_id": bob.public_id, "from_id": alice.public_id, "packet": encode_packet(packet)}


def test_send_then_fetch(relay_http, hello_body, bob):
    """A stored packet comes back once, then the mailbox is empty."""
    before = int(time.time())
    response = relay_http.post("/send", json=hello_body)
    assert response.status_code == 200
    assert response.json() == {"ok": True}

    response = relay_http.get("/fetch", params={"id": bob.public_id})
    assert response.status_code == 200
    envelopes = response.json()
    assert len(envelopes) == 1

    envelope = envelopes[0]
    assert envelope["to_id"] == hello_body["to_id"]
    assert envelope["from_id"] == hello_body["from_id"]
    assert envelope["packet"] == hello_body["packet"]
    assert before <= envelope["ts"] <= int(time.time())

    assert crypto.open_packet(decode_packet(envelope["packet"]), bob) == b"hello"

    response = relay_http.get("/fetch", params={"id": bob.public_id})
    assert response.status_code == 200
    assert response.json() == []


def test_fetch_only_returns_own_mailbox(relay_http, hello_body, alice, bob):
    relay_http.post("/send", json=hello_body)

    assert relay_http.get("/fetch", params={"id": alice.public_id}).json() == []
    assert len(relay_http.get("/fetch", params={"id": bob.public_id}).json()) == 1


def test_fetch_returns_messages_in_order(relay_http, alice, bob):
    for text in (b"first", b"second", b"third"):
        packet = crypto.seal(text, alice, bob.public_key)
        relay_http.post(
            "/send",
            json={"to_id": bob.public_id, "from_id": alice.public_id, "packet": encode_packet(packet)},
        )

    envelopes = relay_http.get("/fetch", params={"id": bob.public_id}).json()
    texts = [crypto.open_packet(decode_packet(e["packet"]), bob) for e in envelopes]
    assert texts == [b"first", b"second", b"third"]


def test_send_accepts_uppercase_ids(relay_http, hello_body, bob):
    body = dict(hello_body, to_id=hello_body["to_id"].upper())
    assert relay_http.post("/send", json=body).status_code == 200
    assert len(relay_http.get("/fetch", params={"id": bob.public_id}).json()) == 1


def test_send_rejects_bad_json(relay_http, store):
    response = relay_http.post(
        "/send", content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400
    assert store.count() == 0


@pytest.mark.parametrize(
    "mutation",
    [
        {"to_id": ""},
        {"from_id": None},
        {"to_id": "not-hex"},
        {"packet": ""},
        {"packet": "***not base64***"},
        {"packet": 12},
    ],
)
def test_send_rejects_invalid_fields(relay_http, store, hello_body, mutation):
    body = dict(hello_body, **mutation)
    assert relay_http.post("/send", json=body).status_code == 400
    assert store.count() == 0


def test_send_rejects_non_object(relay_http):
    assert relay_http.post("/send", json=["a", "b"]).status_code == 400


def test_fetch_requires_id(relay_http):
    assert relay_http.get("/fetch").status_code == 400
    assert relay_http.get("/fetch", params={"id": "short"}).status_code == 400


def test_wrong_methods(relay_http):
    assert relay_http.get("/send").status_code == 405
    assert relay_http.post("/fetch", params={"id": "a" * 64}).status_code == 405


def test_storage_failure_is_500(relay_http, store, hello_body, bob):
    store.close()

    assert relay_http.post("/send", json=hello_body).status_code == 500
    assert relay_http.get("/fetch", params={"id": bob.public_id}).status_code == 500


def test_health(relay_http, hello_body):
    assert relay_http.get("/health").json() == {"status": "ok", "pending": 0}
    relay_http.post("/send", json=hello_body)
    assert relay_http.get("/health").json() == {"status": "ok", "pending": 1}


def test_service_skips_corrupt_rows(store):
    service = RelayService(store)
    recipient = "c" * 64
    store.append(recipient, b"\xff not json")
    store.append(recipient, StoredEnvelope(recipient, "d" * 64, "cGt0", 7).to_bytes())

    assert service.drain(recipient) == [
        {"to_id": recipient, "from_id": "d" * 64, "packet": "cGt0", "ts": 7}
    ]


def test_service_rejects_bad_recipient(store):
    with pytest.raises(InvalidRequestError):
        RelayService(store).drain("nope")
