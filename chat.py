"""
Chat proxy: validate the browser payload, reshape messages into the
OpenAI-compatible shape (multimodal when images are attached), call Groq and
extract the first completion's text.
"""

import json
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from errors import APIError
from groq_client import (
    CHAT_COMPLETIONS_PATH,
    GroqClient,
    MissingAPIKeyError,
    UpstreamError,
)
from logging_config import get_logger
from models import (
    ChatMessage,
    ChatRequest,
    CompletionRequest,
    ImageAttachment,
    ImageBlock,
    ImageURL,
    TextBlock,
)

logger = get_logger("mathsolver.chat")

DEFAULT_IMAGE_MIME = "image/png"
BAD_JSON_PREVIEW_CHARS = 180
EMPTY_CONTENT_PREVIEW_CHARS = 280


def parse_chat_request(raw_body: str) -> ChatRequest:
    try:
        parsed = json.loads(raw_body)
    except (ValueError, RecursionError):
        raise APIError(400, "Invalid JSON body")

    try:
        return ChatRequest.model_validate(parsed)
    except ValidationError:
        raise APIError(400, "Invalid payload. Expected { model, messages[] }")


def _image_url(image: ImageAttachment) -> Optional[ImageBlock]:
    if not image.data:
        return None
    mime = image.mime or DEFAULT_IMAGE_MIME
    return ImageBlock(image_url=ImageURL(url=f"data:{mime};base64,{image.data}"))


def to_upstream_message(message: ChatMessage) -> Dict[str, Any]:
    """
    Messages without images pass through as {role, content}. With images the
    content becomes a list: an optional text block, then one image block per
    non-empty attachment, in order.
    """
    if not message.has_images:
        return message.model_dump(include={"role", "content"}, exclude_none=True)

    blocks: List[Dict[str, Any]] = []
    if message.content:
        blocks.append(TextBlock(text=str(message.content)).model_dump())

    for image in message.attachments():
        block = _image_url(image)
        if block is not None:
            blocks.append(block.model_dump())

    if not blocks:
        return {"role": message.role, "content": message.content or ""}
    return {"role": message.role, "content": blocks}


def build_completion_request(payload: ChatRequest) -> CompletionRequest:
    return CompletionRequest(
        model=payload.model,
        messages=[to_upstream_message(m) for m in payload.messages],
    )


def _error_message(body: Any) -> str:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if body.get("message"):
            return str(body["message"])
    return "Groq returned an error"


def _completion_text(body: Any):
    try:
        return body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None


async def complete_chat(client: GroqClient, payload: ChatRequest) -> str:
    """Run one chat completion and return the reply text or raise APIError."""
    body = build_completion_request(payload)

    logger.info(f"Chat request -> Groq model={payload.model}", extra={"model": payload.model})

    try:
        upstream = await client.call("POST", CHAT_COMPLETIONS_PATH, body.model_dump())
    except MissingAPIKeyError as e:
        raise APIError(401, str(e), cause=e)
    except UpstreamError as e:
        raise APIError(502, f"Groq request failed: {e}", cause=e)

    try:
        data = json.loads(upstream.text)
    except (ValueError, RecursionError):
        raise APIError(502, f"Bad JSON from Groq: {upstream.text[:BAD_JSON_PREVIEW_CHARS]}")

    if upstream.status_code >= 400:
        raise APIError(upstream.status_code, f"Groq error: {_error_message(data)}")

    text = _completion_text(data)
    if not text:
        preview = json.dumps(data, separators=(",", ":"), ensure_ascii=False)[:EMPTY_CONTENT_PREVIEW_CHARS]
        raise APIError(502, f"Groq returned empty content. Response preview: {preview}")

    return text
