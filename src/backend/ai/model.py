# src/backend/ai/model.py
from __future__ import annotations

import logging
from typing import Optional, Protocol

import google.generativeai as genai

from src.backend.config import settings

logger = logging.getLogger(__name__)


class TextModel(Protocol):
    async def generate_json(self, prompt: str) -> str: ...


class GeminiModel:
    """Hosted Gemini model asked to answer with a JSON document."""

    def __init__(self, model_name: Optional[str] = None, api_key: Optional[str] = None) -> None:
        self.model_name = model_name or settings.GEMINI_MODEL
        genai.configure(api_key=api_key if api_key is not None else settings.GEMINI_API_KEY)
        self._model = genai.GenerativeModel(self.model_name)

    async def generate_json(self, prompt: str) -> str:
        response = await self._model.generate_content_async(
            prompt,
            generation_config={
                "response_mime_type": "application/json",
                "temperature": 0.4,
            },
        )
        # response.text raises ValueError when the candidate was blocked/empty
        return response.text


_model: Optional[TextModel] = None


def get_model() -> TextModel:
    global _model
    if _model is None:
        if not settings.GEMINI_API_KEY:
            logger.warning("GEMINI_API_KEY is not set; analysis requests will fail")
        _model = GeminiModel()
    return _model
