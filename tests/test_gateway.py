from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
import json
from types import SimpleNamespace

from fastapi.testclient import TestClient

from app.core.security import hash_api_key
from app.main import app
from app.models import ApiStatus
from app.services.gateway import GatewayHandler, extract_api_key, new_request_id
from app.services.invoker import ModelInvocationError, get_model_invoker
from app.services.store import get_credential_store


DEMO_KEY = "pak_demo123456789012345678901234"
OTHER_KEY = "pak_other12345678901234567890123"

SENTIMENT_PROMPT = "Analyze the sentiment. Respond with JSON {sentiment, confidence, explanation}."
SENTIMENT_CONFIG = {"model": "llama-3.3-70b-versatile", "temperature": 0.3, "maxTokens": 500}


class _FakeStore:
    def __init__(self, apis=(), keys=(), fail_writes=False):
        self.apis = {api.slug: api for api in apis}
        self.keys = list(keys)
        self.fail_writes = fail_writes
        self.key_lookups = []
        self.logs = []
        self.api_usage = {}
        self.key_usage = {}

    def find_api_by_slug(self, slug):
        return self.apis.get(slug)

    def find_active_key(self, api_id, key_hash):
        self.key_lookups.append(key_hash)
        for key in self.keys:
            if key.api_id == api_id and key.key_hash == key_hash and key.is_active:
                return key
        return None

    def append_usage_log(self, entry):
        if self.fail_writes:
            raise RuntimeError("database is gone")
        self.logs.append(entry)
        return entry

    def record_outcome(self, entry, *, api_id=None, key_id=None):
        if self.fail_writes:
            raise RuntimeError("database is gone")
        self.logs.append(entry)
        if api_id is not None:
            self.api_usage[api_id] = self.api_usage.get(api_id, 0) + 1
        if key_id is not None:
            self.key_usage[key_id] = self.key_usage.get(key_id, 0) + 1


class _FakeInvoker:
    def __init__(self, reply="{}", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def invoke(self, system_prompt, payload, configuration):
        self.calls.append((system_prompt, payload, configuration))
        if self.error is not None:
            raise self.error
        return self.reply


def _api(**overrides):
    fields = {
        "id": 7,
        "user_id": 3,
        "slug": "sentiment-analyzer",
        "name": "Sentiment Analyzer",
        "description": "Classifies text sentiment.",
        "status": ApiStatus.ACTIVE,
        "system_prompt": SENTIMENT_PROMPT,
        "input_schema": {
            "type": "object",
            "properties": {"text": {"type": "string"}},
            "required": ["text"],
        },
        "output_schema": {"type": "object", "properties": {"sentiment": {"type": "string"}}},
        "configuration": SENTIMENT_CONFIG,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


def _key(plaintext=DEMO_KEY, **overrides):
    fields = {
        "id": 11,
        "api_id": 7,
        "key_hash": hash_api_key(plaintext),
        "is_active": True,
        "expires_at": None,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


@contextmanager
def _client(store, invoker):
    app.dependency_overrides.clear()
    app.dependency_overrides[get_credential_store] = lambda: store
    app.dependency_overrides[get_model_invoker] = lambda: invoker
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.clear()


def _bearer(key=DEMO_KEY):
    return {"Authorization": f"Bearer {key}"}


def test_sentiment_call_returns_coerced_json():
    store = _FakeStore(apis=[_api()], keys=[_key()])
    reply = 'Here is the analysis:\n```json\n{"sentiment": "positive", "confidence": 0.95, "explanation": "Praise."}\n```'
    invoker = _FakeInvoker(reply=reply)

    with _client(store, invoker) as client:
        res = client.post("/api/v1/sentiment-analyzer", json={"text": "Product is great!"}, headers=_bearer())

    assert res.status_code == 200
    assert res.json()["sentiment"] == "positive"
    assert res.headers["X-Request-Id"].startswith("req_")
    assert int(res.headers["X-Latency-Ms"]) >= 0

    assert invoker.calls == [(SENTIMENT_PROMPT, {"text": "Product is great!"}, SENTIMENT_CONFIG)]
    assert store.api_usage == {7: 1}
    assert store.key_usage == {11: 1}
    assert len(store.logs) == 1
    log = store.logs[0]
    assert log.status_code == 200
    assert log.api_id == 7
    assert log.api_key_id == 11
    assert log.user_id == 3
    assert log.error_message is None
    assert json.loads(log.response_body)["sentiment"] == "positive"
    assert json.loads(log.request_body) == {"text": "Product is great!"}
    assert log.request_id == res.headers["X-Request-Id"]


def test_plain_model_text_is_wrapped():
    store = _FakeStore(apis=[_api()], keys=[_key()])
    with _client(store, _FakeInvoker(reply="It is positive.")) as client:
        res = client.post("/api/v1/sentiment-analyzer", json={"text": "ok"}, headers=_bearer())

    assert res.status_code == 200
    assert res.json() == {"response": "It is positive."}


def test_unknown_slug_is_404_and_logged():
    store = _FakeStore()
    invoker = _FakeInvoker()
    with _client(store, invoker) as client:
        res = client.post("/api/v1/nope", json={"text": "hi"}, headers=_bearer())

    assert res.status_code == 404
    assert res.json() == {"error": "API not found", "code": "API_NOT_FOUND"}
    assert store.key_lookups == []
    assert invoker.calls == []
    assert len(store.logs) == 1
    assert store.logs[0].api_id is None
    assert store.logs[0].slug == "nope"
    assert store.logs[0].status_code == 404


def test_inactive_api_is_403():
    store = _FakeStore(apis=[_api(status=ApiStatus.PAUSED)], keys=[_key()])
    with _client(store, _FakeInvoker()) as client:
        res = client.post("/api/v1/sentiment-analyzer", json={"text": "hi"}, headers=_bearer())

    assert res.status_code == 403
    assert res.json()["code"] == "API_INACTIVE"
    assert store.key_lookups == []
    assert store.logs[0].status_code == 403
    assert store.logs[0].error_message


def test_missing_key_never_touches_key_lookup():
    store = _FakeStore(apis=[_api()], keys=[_key()])
    with _client(store, _FakeInvoker()) as client:
        res = client.post("/api/v1/sentiment-analyzer", json={"text": "hi"})

    assert res.status_code == 401
    assert res.json() == {"error": "API key required", "code": "UNAUTHORIZED"}
    assert store.key_lookups == []
    assert len(store.logs) == 1
    assert store.logs[0].api_key_id is None


def test_empty_bearer_counts_as_missing():
    store = _FakeStore(apis=[_api()], keys=[_key()])
    with _client(store, _FakeInvoker()) as client:
        res = client.post("/api/v1/sentiment-analyzer", json={"text": "hi"}, headers={"Authorization": "Bearer "})

    assert res.status_code == 401
    assert res.json()["code"] == "UNAUTHORIZED"


def test_unknown_key_is_rejected():
    store = _FakeStore(apis=[_api()], keys=[_key()])
    with _client(store, _FakeInvoker()) as client:
        res = client.post("/api/v1/sentiment-analyzer", json={"text": "hi"}, headers=_bearer(OTHER_KEY))

    assert res.status_code == 401
    assert res.json() == {"error": "Invalid API key", "code": "INVALID_API_KEY"}
    assert store.key_lookups == [hash_api_key(OTHER_KEY)]


def test_inactive_key_is_rejected():
    store = _FakeStore(apis=[_api()], keys=[_key(is_active=False)])
    with _client(store, _FakeInvoker()) as client:
        res = client.post("/api/v1/sentiment-analyzer", json={"text": "hi"}, headers=_bearer())

    assert res.status_code == 401
    assert res.json()["code"] == "INVALID_API_KEY"


def test_key_of_another_api_is_rejected():
    store = _FakeStore(apis=[_api()], keys=[_key(api_id=99)])
    with _client(store, _FakeInvoker()) as client:
        res = client.post("/api/v1/sentiment-analyzer", json={"text": "hi"}, headers=_bearer())

    assert res.status_code == 401
    assert res.json()["code"] == "INVALID_API_KEY"


def test_expired_key_is_rejected_before_model_call():
    expired = _key(expires_at=datetime.now(timezone.utc) - timedelta(minutes=1))
    store = _FakeStore(apis=[_api()], keys=[expired])
    invoker = _FakeInvoker()
    with _client(store, invoker) as client:
        res = client.post("/api/v1/sentiment-analyzer", json={"text": "hi"}, headers=_bearer())

    assert res.status_code == 401
    assert res.json() == {"error": "API key has expired", "code": "API_KEY_EXPIRED"}
    assert invoker.calls == []
    assert store.logs[0].api_key_id == 11


def test_naive_future_expiry_is_accepted():
    future = _key(expires_at=datetime.utcnow() + timedelta(days=1))
    store = _FakeStore(apis=[_api()], keys=[future])
    with _client(store, _FakeInvoker(reply='{"ok": true}')) as client:
        res = client.post("/api/v1/sentiment-analyzer", json={"text": "hi"}, headers=_bearer())

    assert res.status_code == 200


def test_bearer_takes_precedence_over_header_key():
    store = _FakeStore(apis=[_api()], keys=[_key()])
    headers = {"Authorization": f"Bearer {OTHER_KEY}", "x-api-key": DEMO_KEY}
    with _client(store, _FakeInvoker()) as client:
        res = client.post("/api/v1/sentiment-analyzer", json={"text": "hi"}, headers=headers)

    assert res.status_code == 401
    assert res.json()["code"] == "INVALID_API_KEY"
    assert store.key_lookups == [hash_api_key(OTHER_KEY)]


def test_header_key_is_accepted():
    store = _FakeStore(apis=[_api()], keys=[_key()])
    with _client(store, _FakeInvoker(reply='{"ok": true}')) as client:
        res = client.post("/api/v1/sentiment-analyzer", json={"text": "hi"}, headers={"X-API-Key": DEMO_KEY})

    assert res.status_code == 200
    assert res.json() == {"ok": True}


def test_missing_required_field_is_400():
    store = _FakeStore(apis=[_api()], keys=[_key()])
    invoker = _FakeInvoker()
    with _client(store, invoker) as client:
        res = client.post("/api/v1/sentiment-analyzer", json={"message": "hi"}, headers=_bearer())

    assert res.status_code == 400
    assert res.json() == {"error": "Missing required field: text", "code": "INVALID_INPUT"}
    assert invoker.calls == []
    assert store.logs[0].status_code == 400
    assert store.logs[0].error_message == "Missing required field: text"
    assert store.api_usage == {}


def test_array_body_misses_required_field():
    store = _FakeStore(apis=[_api()], keys=[_key()])
    with _client(store, _FakeInvoker()) as client:
        res = client.post("/api/v1/sentiment-analyzer", json=["text"], headers=_bearer())

    assert res.status_code == 400
    assert res.json()["code"] == "INVALID_INPUT"


def test_invalid_json_body_is_500():
    store = _FakeStore(apis=[_api()], keys=[_key()])
    invoker = _FakeInvoker()
    with _client(store, invoker) as client:
        res = client.post("/api/v1/sentiment-analyzer", content=b"{not json", headers=_bearer())

    assert res.status_code == 500
    body = res.json()
    assert body["code"] == "INTERNAL_ERROR"
    assert body["error"] == "API request failed"
    assert body["message"].startswith("Invalid JSON body")
    assert invoker.calls == []
    assert store.logs[0].request_body == "{not json"


def test_model_failure_is_500_with_message():
    store = _FakeStore(apis=[_api()], keys=[_key()])
    invoker = _FakeInvoker(error=ModelInvocationError("Rate limit reached"))
    with _client(store, invoker) as client:
        res = client.post("/api/v1/sentiment-analyzer", json={"text": "hi"}, headers=_bearer())

    assert res.status_code == 500
    assert res.json() == {"error": "API request failed", "code": "INTERNAL_ERROR", "message": "Rate limit reached"}
    assert len(store.logs) == 1
    assert store.logs[0].status_code == 500
    assert store.logs[0].error_message == "Rate limit reached"
    assert store.logs[0].response_body is None
    assert store.api_usage == {}
    assert store.key_usage == {}


def test_usage_write_failure_does_not_change_response():
    store = _FakeStore(apis=[_api()], keys=[_key()], fail_writes=True)
    with _client(store, _FakeInvoker(reply='{"ok": true}')) as client:
        res = client.post("/api/v1/sentiment-analyzer", json={"text": "hi"}, headers=_bearer())

    assert res.status_code == 200
    assert res.json() == {"ok": True}


def test_describe_hides_prompt_and_keys():
    store = _FakeStore(apis=[_api(status=ApiStatus.PAUSED)])
    with _client(store, _FakeInvoker()) as client:
        res = client.get("/api/v1/sentiment-analyzer")

    assert res.status_code == 200
    assert res.json() == {
        "name": "Sentiment Analyzer",
        "description": "Classifies text sentiment.",
        "status": "paused",
        "inputSchema": _api().input_schema,
        "outputSchema": _api().output_schema,
    }
    assert store.logs == []


def test_describe_unknown_slug():
    with _client(_FakeStore(), _FakeInvoker()) as client:
        res = client.get("/api/v1/missing")

    assert res.status_code == 404
    assert res.json() == {"error": "API not found", "code": "API_NOT_FOUND"}


def test_extract_api_key_is_case_insensitive():
    assert extract_api_key({"AUTHORIZATION": "Bearer  pak_x "}) == "pak_x"
    assert extract_api_key({"X-Api-Key": " pak_y "}) == "pak_y"
    assert extract_api_key({"Authorization": "Basic abc", "x-api-key": "pak_z"}) == "pak_z"
    assert extract_api_key({"x-api-key": "  "}) is None
    assert extract_api_key({}) is None


def test_request_ids_are_unique():
    first, second = new_request_id(), new_request_id()
    assert first != second
    assert first.startswith("req_")
    assert len(first) == len("req_") + 16


def test_handler_produces_one_log_per_attempt():
    store = _FakeStore(apis=[_api()], keys=[_key()])
    handler = GatewayHandler(store, _FakeInvoker(reply='{"ok": true}'))

    handler.execute("sentiment-analyzer", _bearer(), b'{"text": "a"}')
    handler.execute("sentiment-analyzer", {}, b'{"text": "b"}')
    handler.execute("sentiment-analyzer", _bearer(), b"{}")

    assert [log.status_code for log in store.logs] == [200, 401, 400]
    assert store.api_usage == {7: 1}


def test_empty_bearer_does_not_fall_back_to_header_key():
    store = _FakeStore(apis=[_api()], keys=[_key()])
    headers = {"Authorization": "Bearer ", "x-api-key": DEMO_KEY}
    with _client(store, _FakeInvoker(reply='{"ok": true}')) as client:
        res = client.post("/api/v1/sentiment-analyzer", json={"text": "hi"}, headers=headers)

    assert res.status_code == 401
    assert res.json()["code"] == "UNAUTHORIZED"
    assert store.key_lookups == []


def test_nan_reply_is_wrapped_and_logged_with_returned_status():
    reply = '{"sentiment": "positive", "confidence": NaN}'
    store = _FakeStore(apis=[_api()], keys=[_key()])
    with _client(store, _FakeInvoker(reply=reply)) as client:
        res = client.post("/api/v1/sentiment-analyzer", json={"text": "hi"}, headers=_bearer())

    assert res.status_code == 200
    assert res.json() == {"response": reply}
    assert len(store.logs) == 1
    assert store.logs[0].status_code == res.status_code
    assert json.loads(store.logs[0].response_body) == {"response": reply}


def test_deeply_nested_reply_is_wrapped_not_500():
    reply = '{"a":' * 100000 + "1" + "}" * 100000
    store = _FakeStore(apis=[_api()], keys=[_key()])
    handler = GatewayHandler(store, _FakeInvoker(reply=reply))

    result = handler.execute("sentiment-analyzer", _bearer(), b'{"text": "hi"}')

    assert result.status_code == 200
    assert result.body == {"response": reply}
    assert [log.status_code for log in store.logs] == [200]
