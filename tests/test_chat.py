import pytest
import requests

from ems.core.config import settings
from ems.core.exceptions import AIKillSwitchError
from ems.core.prompts import CHAT_APOLOGY, CHAT_ASSISTANT_SYSTEM, CHAT_EMPTY_REPLY, CHAT_GREETING
from ems.schemas.functions import ChatRequest
from ems.services import chat_ai, llm_client
from ems.services.chat_assistant import ChatAssistant


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload if payload is not None else {}
        self.text = str(self._payload)

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    def raise_for_status(self):
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code} error")


def test_build_messages_prepends_system_prompt_and_images():
    request = ChatRequest.model_validate({
        "messages": [
            {"role": "user", "content": "What is this?",
             "files": [{"name": "a.png", "type": "image/png", "size": 10, "data": "aGVsbG8="},
                       {"name": "b.pdf", "type": "application/pdf", "size": 10, "data": "aGVsbG8="}]},
        ]
    })
    messages = chat_ai.build_messages(request)

    assert messages[0] == {"role": "system", "content": CHAT_ASSISTANT_SYSTEM}
    parts = messages[1]["content"]
    assert parts[0] == {"type": "text", "text": "What is this?"}
    assert parts[1] == {"type": "image_url", "image_url": {"url": "data:image/png;base64,aGVsbG8="}}
    assert len(parts) == 2


def test_call_chat_completion_posts_configured_model(monkeypatch):
    captured = {}

    def fake_post(url, json, headers, timeout):
        captured.update(url=url, json=json, headers=headers)
        return FakeResponse(payload={"choices": [{"message": {"content": "Hi there"}}]})

    monkeypatch.setattr(settings.ai, "api_key", "test-key")
    monkeypatch.setattr(llm_client.requests, "post", fake_post)

    assert llm_client.call_chat_completion([{"role": "user", "content": "Hi"}]) == "Hi there"
    assert captured["json"]["model"] == settings.ai.model_name
    assert captured["json"]["max_tokens"] == 1000
    assert captured["json"]["temperature"] == 0.7
    assert captured["headers"]["Authorization"] == "Bearer test-key"


def test_call_chat_completion_requires_key(monkeypatch):
    monkeypatch.setattr(settings.ai, "api_key", None)
    with pytest.raises(ValueError):
        llm_client.call_chat_completion([])


def test_kill_switch(monkeypatch):
    monkeypatch.setattr(settings.ai, "kill_switch", True)
    with pytest.raises(AIKillSwitchError):
        llm_client.call_chat_completion([])


def test_chat_endpoint_returns_generated_text(client, monkeypatch):
    monkeypatch.setattr(chat_ai, "call_chat_completion", lambda messages: "Leave requests live under Leave.")
    response = client.post("/api/functions/chat-with-ai", json={"messages": [{"role": "user", "content": "Where?"}]})
    assert response.status_code == 200
    assert response.json() == {"generatedText": "Leave requests live under Leave."}


def test_chat_endpoint_reports_upstream_failure(client, monkeypatch):
    def boom(messages):
        raise requests.HTTPError("502 Bad Gateway")

    monkeypatch.setattr(chat_ai, "call_chat_completion", boom)
    response = client.post("/api/functions/chat-with-ai", json={"messages": [{"role": "user", "content": "Hi"}]})
    assert response.status_code == 500
    assert response.json() == {"error": "502 Bad Gateway"}


def test_assistant_starts_with_greeting():
    assistant = ChatAssistant(transport=lambda payload: {"generatedText": "ok"})
    assert [m.text for m in assistant.messages] == [CHAT_GREETING]


def test_assistant_send_appends_reply_and_sends_history():
    sent = []

    def transport(payload):
        sent.append(payload)
        return {"generatedText": "Your balance is 5 days."}

    assistant = ChatAssistant(transport=transport)
    reply = assistant.send("How much sick leave do I have?")

    assert reply.text == "Your balance is 5 days."
    assert [m.sender for m in assistant.messages] == ["bot", "user", "bot"]
    roles = [m["role"] for m in sent[0]["messages"]]
    assert roles == ["assistant", "user"]
    assert assistant.is_loading is False


def test_assistant_empty_reply_and_failure():
    assistant = ChatAssistant(transport=lambda payload: {"generatedText": ""})
    assert assistant.send("Hello").text == CHAT_EMPTY_REPLY

    def failing(payload):
        raise RuntimeError("upstream exploded")

    assistant = ChatAssistant(transport=failing)
    reply = assistant.send("Hello")
    assert reply.text == CHAT_APOLOGY
    assert "exploded" not in reply.text
    assert assistant.notices[-1].variant == "destructive"


def test_assistant_ignores_empty_send():
    assistant = ChatAssistant(transport=lambda payload: {"generatedText": "ok"})
    assert assistant.send("   ") is None
    assert len(assistant.messages) == 1


def test_attachment_validation():
    assistant = ChatAssistant(transport=lambda payload: {"generatedText": "Looks like a receipt."})

    assert not assistant.attach("huge.png", "image/png", 21 * 1024 * 1024, "")
    assert assistant.notices[-1].title == "File too large"
    assert not assistant.attach("run.exe", "application/x-msdownload", 10, "")
    assert assistant.notices[-1].title == "Unsupported file type"

    assert assistant.attach("receipt.png", "image/png", 1024, "aGVsbG8=")
    reply = assistant.send()
    assert reply.text == "Looks like a receipt."
    assert assistant.messages[-2].text == "Sent file(s)"
    assert assistant.selected_files == []


def test_remove_file_drops_only_that_attachment():
    assistant = ChatAssistant(transport=lambda payload: {"generatedText": "ok"})
    assistant.attach("a.png", "image/png", 10, "YQ==")
    assistant.attach("b.txt", "text/plain", 10, "Yg==")
    assistant.remove_file(0)
    assistant.remove_file(5)
    assert [f.name for f in assistant.selected_files] == ["b.txt"]


def test_http_transport_raises_on_proxy_error(monkeypatch):
    from ems.services import chat_assistant

    monkeypatch.setattr(
        chat_assistant.requests, "post",
        lambda url, json, timeout: FakeResponse(500, {"error": "AI_API_KEY is not configured"}),
    )
    send = chat_assistant.http_transport("http://proxy.local/api/functions/chat-with-ai")
    with pytest.raises(RuntimeError, match="AI_API_KEY is not configured"):
        send({"messages": []})

    assistant = ChatAssistant(transport=send)
    assert assistant.send("Hi").text == CHAT_APOLOGY


def test_http_transport_reports_status_for_non_json_error(monkeypatch):
    from ems.services import chat_assistant

    monkeypatch.setattr(
        chat_assistant.requests, "post",
        lambda url, json, timeout: FakeResponse(502, ValueError("Expecting value: line 1 column 1")),
    )
    send = chat_assistant.http_transport("http://proxy.local/api/functions/chat-with-ai")
    with pytest.raises(RuntimeError, match="Chat proxy returned 502"):
        send({"messages": []})
