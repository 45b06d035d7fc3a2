import json

import pytest

from synorb_common.errors import MissingCredentialsError
from synorb_mcp.dispatcher import ToolDispatcher, resolve_credentials
from synorb_mcp.models import Credentials, UpstreamResult

VALID_CALLS = [
    ("test-connection", {}),
    ("get-synorb-stream-meta", {}),
    ("get-synorb-stream-entity-types", {"feedid": "s1"}),
    ("get-synorb-stream-entity-values", {"feedid": "s1"}),
    ("get-synorb-stream-feed-content", {"feed_id": 12, "format": "json"}),
]


def _single_text(envelope: dict) -> str:
    content = envelope["content"]
    assert len(content) == 1
    assert content[0]["type"] == "text"
    return content[0]["text"]


@pytest.mark.parametrize("name,args", VALID_CALLS)
def test_valid_calls_yield_one_json_text_block(dispatcher, upstream, name, args):
    envelope = dispatcher.dispatch(name, args)

    json.loads(_single_text(envelope))
    assert "isError" not in envelope
    assert len(upstream.calls) == 1


def test_entity_values_end_to_end(dispatcher, upstream):
    body = {"entity_values": ["ai", "climate"], "count": 2}
    upstream.route("/content/entity-values/s1", body=body)

    envelope = dispatcher.dispatch("get-synorb-stream-entity-values", {"feedid": "s1", "entity_type": "topic"})

    assert upstream.last.method == "GET"
    assert upstream.last_path().endswith("/content/entity-values/s1")
    assert upstream.last_query() == {"entity_type": ["topic"]}
    assert json.loads(_single_text(envelope)) == body
    assert _single_text(envelope) == json.dumps(body, indent=2)


@pytest.mark.parametrize(
    "name,args",
    [
        ("get-synorb-stream-entity-types", {}),
        ("get-synorb-stream-entity-values", {"entity_type": "topic"}),
        ("get-synorb-stream-feed-content", {"format": "markdown"}),
    ],
)
def test_missing_required_argument_makes_no_upstream_call(dispatcher, upstream, name, args):
    envelope = dispatcher.dispatch(name, args)

    text = _single_text(envelope)
    assert text.startswith(f"Error: Invalid arguments for {name}:")
    assert "required field missing" in text
    assert envelope["isError"] is True
    assert upstream.calls == []


def test_no_credentials_anywhere_short_circuits(make_client, upstream):
    d = ToolDispatcher(client_factory=make_client)

    envelope = d.dispatch("test-connection", {})

    assert _single_text(envelope) == "Error: API credentials not configured"
    assert upstream.calls == []


def test_explicit_credentials_beat_defaults(dispatcher, upstream):
    explicit = Credentials(api_key="request-key", secret="request-secret")

    dispatcher.dispatch("get-synorb-stream-meta", {}, credentials=explicit)

    assert upstream.last.headers["x-api-key"] == "request-key"
    assert upstream.last.headers["x-api-secret"] == "request-secret"


def test_defaults_used_when_no_explicit_credentials(dispatcher, upstream):
    dispatcher.dispatch("get-synorb-stream-meta", {}, credentials=Credentials("", ""))
    assert upstream.last.headers["x-api-key"] == "key-1"


def test_shared_client_is_reused(creds, make_client):
    built = []

    def factory(c):
        built.append(c)
        return make_client(c)

    shared = make_client(creds)
    d = ToolDispatcher(default_credentials=creds, client=shared, client_factory=factory)
    d.dispatch("get-synorb-stream-meta", {})
    d.dispatch("get-synorb-stream-meta", {})
    assert built == []

    d.dispatch("get-synorb-stream-meta", {}, credentials=Credentials("other", "pair"))
    assert len(built) == 1


def test_repeated_reads_are_byte_identical(dispatcher, upstream):
    upstream.route("/content/meta", body={"streams": [{"id": 9, "title": "Café"}]})

    first = dispatcher.dispatch("get-synorb-stream-meta", {})
    second = dispatcher.dispatch("get-synorb-stream-meta", {})

    assert json.dumps(first).encode() == json.dumps(second).encode()


def test_page_size_capped_by_max_stories(dispatcher, upstream):
    dispatcher.dispatch("get-synorb-stream-feed-content", {"feed_id": 3, "max_stories": 500})
    assert upstream.last_query()["page_size"] == ["100"]


def test_body_sections_follow_format(dispatcher, upstream):
    args = {"feed_id": 3, "body_sections": ["summary", "body"]}

    dispatcher.dispatch("get-synorb-stream-feed-content", {**args, "format": "json"})
    assert "body_sections" not in upstream.last_query()

    dispatcher.dispatch("get-synorb-stream-feed-content", {**args, "format": "markdown"})
    assert upstream.last_query()["body_sections"] == ["summary", "body"]


def test_unknown_tool(dispatcher, upstream):
    envelope = dispatcher.dispatch("delete-everything", {})
    assert _single_text(envelope) == "Error: Unknown tool: delete-everything"
    assert upstream.calls == []


def test_legacy_prefixed_name_dispatches(dispatcher, upstream):
    envelope = dispatcher.dispatch("Synorb Streams:get-synorb-stream-entity-types", {"feedid": "s2"})
    assert "isError" not in envelope
    assert upstream.last_path().endswith("/content/entity-types/s2")


def test_upstream_failure_becomes_error_text(dispatcher, upstream):
    upstream.route("/content/entity-types/bad", status=404, body={"message": "Stream not found"})

    outcome = dispatcher.execute("get-synorb-stream-entity-types", {"feedid": "bad"})

    assert outcome.status == 502
    assert outcome.result == UpstreamResult.failure("Stream not found", status=404)
    assert _single_text(outcome.envelope) == "Error: Stream not found"


def test_test_connection_failure_is_reported_not_raised(dispatcher, upstream):
    upstream.route("/content/meta", status=403, body={"message": "Forbidden"})
    envelope = dispatcher.dispatch("test-connection", {})
    assert _single_text(envelope) == "Error: Authentication failed: Forbidden"


def test_huge_integer_argument_is_a_validation_error(dispatcher, upstream):
    outcome = dispatcher.execute("get-synorb-stream-feed-content", {"feed_id": 1, "page_num": -(10**400)})

    assert outcome.status == 400
    assert outcome.error["code"] == "validation_error"
    assert upstream.calls == []


def test_unexpected_exception_is_contained(creds):
    def broken_factory(c):
        raise RuntimeError("client construction failed")

    d = ToolDispatcher(default_credentials=creds, client_factory=broken_factory)
    outcome = d.execute("get-synorb-stream-meta", {})

    assert outcome.status == 500
    assert _single_text(outcome.envelope) == "Error: client construction failed"


def test_each_dispatch_writes_redacted_telemetry(dispatcher, telemetry_records):
    dispatcher.dispatch("get-synorb-stream-entity-types", {"feedid": "s1", "secret": "leak"})

    records = telemetry_records()
    assert len(records) == 1
    rec = records[0]
    assert rec["name"] == "get-synorb-stream-entity-types"
    assert rec["ok"] is False
    assert rec["args"]["args"]["secret"] == "***redacted***"
    assert rec["args"]["error"]["code"] == "validation_error"


def test_resolve_credentials_requires_both_halves():
    with pytest.raises(MissingCredentialsError):
        resolve_credentials(Credentials("key", ""), None)
    assert resolve_credentials(None, Credentials("k", "s")) == Credentials("k", "s")
