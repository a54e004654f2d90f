import httpx
import pytest

from chat import build_completion_request, complete_chat, parse_chat_request, to_upstream_message
from errors import APIError
from groq_client import GroqClient
from models import ChatMessage, ChatRequest


def message(**fields):
    return ChatMessage.model_validate(fields)


class TestParseChatRequest:
    def test_valid_payload(self):
        payload = parse_chat_request('{"model":"x","messages":[{"role":"user","content":"2+2"}]}')
        assert payload.model == "x"
        assert payload.messages[0].content == "2+2"

    @pytest.mark.parametrize("body", ["", "not json", "{\"model\":", "[" * 100000])
    def test_invalid_json(self, body):
        with pytest.raises(APIError) as exc_info:
            parse_chat_request(body)
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Invalid JSON body"

    @pytest.mark.parametrize("body", [
        '{"messages": []}',
        '{"model": "", "messages": []}',
        '{"model": null, "messages": []}',
        '{"model": "x"}',
        '{"model": "x", "messages": "hi"}',
        '{"model": "x", "messages": {"role": "user"}}',
        '["x", []]',
    ])
    def test_invalid_payload(self, body):
        with pytest.raises(APIError) as exc_info:
            parse_chat_request(body)
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Invalid payload. Expected { model, messages[] }"


class TestToUpstreamMessage:
    def test_plain_message_passes_through(self):
        assert to_upstream_message(message(role="user", content="2+2")) == {
            "role": "user",
            "content": "2+2",
        }

    def test_empty_image_list_is_plain(self):
        assert to_upstream_message(message(role="user", content="hi", images=[])) == {
            "role": "user",
            "content": "hi",
        }

    def test_text_then_images_in_order(self):
        result = to_upstream_message(message(
            role="user",
            content="solve this",
            images=[{"data": "AAA", "mime": "image/jpeg"}, "BBB"],
        ))

        assert result == {
            "role": "user",
            "content": [
                {"type": "text", "text": "solve this"},
                {"type": "image_url", "image_url": {"url": "data:image/jpeg;base64,AAA"}},
                {"type": "image_url", "image_url": {"url": "data:image/png;base64,BBB"}},
            ],
        }

    def test_no_text_block_when_content_empty(self):
        result = to_upstream_message(message(role="user", content="", images=["AAA"]))
        assert result["content"] == [
            {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAA"}},
        ]

    def test_mime_defaults_to_png(self):
        result = to_upstream_message(message(role="user", images=[{"data": "AAA"}]))
        assert result["content"][0]["image_url"]["url"] == "data:image/png;base64,AAA"

    def test_empty_attachments_are_skipped(self):
        result = to_upstream_message(message(
            role="user",
            content="look",
            images=["", {"data": ""}, {"mime": "image/gif"}, "CCC"],
        ))
        assert result["content"] == [
            {"type": "text", "text": "look"},
            {"type": "image_url", "image_url": {"url": "data:image/png;base64,CCC"}},
        ]

    @pytest.mark.parametrize("images", ["abc", {"data": "AAA"}, 7, None])
    def test_non_list_images_are_ignored(self, images):
        assert to_upstream_message(message(role="user", content="hi", images=images)) == {
            "role": "user",
            "content": "hi",
        }

    def test_attachment_fields_are_stringified(self):
        result = to_upstream_message(message(role="user", images=[{"data": 123, "mime": 5}, 42, None]))
        assert result["content"] == [
            {"type": "image_url", "image_url": {"url": "data:5;base64,123"}},
        ]

    def test_all_attachments_empty_falls_back_to_text(self):
        assert to_upstream_message(message(role="user", content="look", images=[""])) == {
            "role": "user",
            "content": "look",
        }
        assert to_upstream_message(message(role="user", images=[{"data": ""}])) == {
            "role": "user",
            "content": "",
        }


def test_completion_request_uses_fixed_sampling():
    payload = ChatRequest.model_validate({"model": "llama", "messages": [{"role": "user", "content": "hi"}]})

    body = build_completion_request(payload).model_dump()

    assert body == {
        "model": "llama",
        "messages": [{"role": "user", "content": "hi"}],
        "temperature": 0.4,
        "max_tokens": 1500,
        "stream": False,
    }


@pytest.mark.anyio
class TestCompleteChat:
    payload = ChatRequest.model_validate({"model": "x", "messages": [{"role": "user", "content": "2+2"}]})

    async def test_returns_first_choice_text(self, groq, upstream):
        upstream.respond(200, {"choices": [{"message": {"content": "4"}}]})

        assert await complete_chat(groq, self.payload) == "4"
        assert upstream.requests[0].url.path == "/openai/v1/chat/completions"
        assert upstream.last_json["messages"] == [{"role": "user", "content": "2+2"}]

    async def test_upstream_error_status_is_preserved(self, groq, upstream):
        upstream.respond(500, {"error": {"message": "boom"}})

        with pytest.raises(APIError) as exc_info:
            await complete_chat(groq, self.payload)

        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Groq error: boom"

    async def test_upstream_error_top_level_message(self, groq, upstream):
        upstream.respond(429, {"message": "rate limited"})

        with pytest.raises(APIError) as exc_info:
            await complete_chat(groq, self.payload)

        assert exc_info.value.status_code == 429
        assert exc_info.value.message == "Groq error: rate limited"

    async def test_upstream_error_without_message(self, groq, upstream):
        upstream.respond(403, {"detail": "nope"})

        with pytest.raises(APIError) as exc_info:
            await complete_chat(groq, self.payload)

        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "Groq error: Groq returned an error"

    async def test_non_json_body_is_502_with_preview(self, groq, upstream):
        upstream.respond(200, text="<html>" + "x" * 500)

        with pytest.raises(APIError) as exc_info:
            await complete_chat(groq, self.payload)

        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "Bad JSON from Groq: " + ("<html>" + "x" * 500)[:180]

    async def test_deeply_nested_reply_is_502(self, groq, upstream):
        upstream.respond(200, text="[" * 100000)

        with pytest.raises(APIError) as exc_info:
            await complete_chat(groq, self.payload)

        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "Bad JSON from Groq: " + "[" * 180

    async def test_non_json_error_body_is_502(self, groq, upstream):
        upstream.respond(503, text="Service Unavailable")

        with pytest.raises(APIError) as exc_info:
            await complete_chat(groq, self.payload)

        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "Bad JSON from Groq: Service Unavailable"

    @pytest.mark.parametrize("reply", [
        {"choices": []},
        {"choices": [{"message": {"content": ""}}]},
        {"choices": [{"message": {}}]},
        {"id": "abc", "object": "chat.completion"},
    ])
    async def test_missing_text_is_502_with_preview(self, groq, upstream, reply):
        upstream.respond(200, reply)

        with pytest.raises(APIError) as exc_info:
            await complete_chat(groq, self.payload)

        assert exc_info.value.status_code == 502
        assert exc_info.value.message.startswith("Groq returned empty content. Response preview: {")

    async def test_preview_is_truncated(self, groq, upstream):
        upstream.respond(200, {"choices": [], "padding": "y" * 1000})

        with pytest.raises(APIError) as exc_info:
            await complete_chat(groq, self.payload)

        preview = exc_info.value.message.split("Response preview: ", 1)[1]
        assert len(preview) == 280

    async def test_missing_key_is_401(self, upstream):
        client = GroqClient(api_key="", transport=httpx.MockTransport(upstream))

        with pytest.raises(APIError) as exc_info:
            await complete_chat(client, self.payload)

        assert exc_info.value.status_code == 401
        assert "GROQ_API_KEY" in exc_info.value.message
        assert upstream.requests == []

    async def test_transport_error_is_502(self, groq, upstream):
        upstream.fail(httpx.ConnectError("Connection refused"))

        with pytest.raises(APIError) as exc_info:
            await complete_chat(groq, self.payload)

        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "Groq request failed: Connection refused"
        assert exc_info.value.cause is not None

    async def test_timeout_is_502(self, groq, upstream):
        upstream.fail(httpx.ReadTimeout("read timed out"))

        with pytest.raises(APIError) as exc_info:
            await complete_chat(groq, self.payload)

        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "Groq request failed: Groq request timed out"
