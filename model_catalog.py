"""
Model discovery for the UI's model picker.

Never fails: any problem talking to Groq degrades to FALLBACK_MODELS so the
frontend always has something to offer.
"""

import json
from typing import List

from groq_client import MODELS_PATH, GroqClient, UpstreamError
from logging_config import get_logger
from models import ModelDescriptor

logger = get_logger("mathsolver.models")

FALLBACK_MODELS = (
    "meta-llama/llama-4-maverick-17b-128e-instruct",
    "meta-llama/llama-4-scout-17b-16e-instruct",
    "llama-3.3-70b-versatile",
    "llama-3.1-8b-instant",
    "llama3-70b-8192",
    "llama3-8b-8192",
    "gemma2-9b-it",
    "mixtral-8x7b-32768",
)

# Audio, embedding and moderation models can't answer chat requests
NON_CHAT_MARKERS = ("whisper", "tts", "embed", "guard")


def fallback_models() -> List[ModelDescriptor]:
    return [ModelDescriptor(name=name) for name in FALLBACK_MODELS]


def is_chat_model(model_id) -> bool:
    if not isinstance(model_id, str) or not model_id:
        return False
    return not any(marker in model_id for marker in NON_CHAT_MARKERS)


def filter_chat_models(payload) -> List[ModelDescriptor]:
    """Pick chat-capable ids out of an OpenAI-style {"object": "list", "data": [...]}."""
    raw = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(raw, list):
        return []
    return [
        ModelDescriptor(name=entry["id"])
        for entry in raw
        if isinstance(entry, dict) and is_chat_model(entry.get("id"))
    ]


async def list_models(client: GroqClient) -> List[ModelDescriptor]:
    try:
        upstream = await client.call("GET", MODELS_PATH)
    except UpstreamError as e:
        logger.warning(f"Cannot fetch model list from Groq: {e}")
        return fallback_models()

    if upstream.status_code >= 400:
        logger.warning(f"Groq {MODELS_PATH} returned HTTP {upstream.status_code}")
        return fallback_models()

    try:
        payload = json.loads(upstream.text)
    except (ValueError, RecursionError):
        logger.warning(f"Groq {MODELS_PATH} returned non-JSON")
        return fallback_models()

    models = filter_chat_models(payload)
    if not models:
        logger.warning(f"Groq {MODELS_PATH} returned no chat models, using fallback list")
        return fallback_models()
    return models
