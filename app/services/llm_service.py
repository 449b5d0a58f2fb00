"""
Thin wrapper around the model provider used by the proxy endpoint.
"""
import logging
from typing import Optional

from openai import OpenAI

from app.core.config import settings
from app.core.exceptions import ConfigurationError
from app.schemas.data_ingestion import ProxyRequest
from app.services.prompts import (
    build_batch_prompt,
    build_generic_prompt,
    build_post_prompt,
    build_justification_prompt,
    build_report_prompt,
)

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "API key not found in environment."


class ModelClient:
    """Sends a prompt to the chat completion API and returns the raw text."""

    def __init__(self, api_key: str, model: str, temperature: float):
        self.model = model
        self.temperature = temperature
        self.client = OpenAI(api_key=api_key)

    def generate(self, prompt: str) -> str:
        logger.debug(f"Sending prompt ({len(prompt)} chars) to {self.model}")
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.temperature,
        )
        if not response.choices:
            raise ValueError("No completion choices returned")
        content = response.choices[0].message.content
        if not content:
            raise ValueError("Empty completion content")
        return content


def _clean_key(raw: Optional[str]) -> str:
    return (raw or "").strip().strip('"').strip("'")


def configured_api_key() -> str:
    """The model API key, or an empty string when none is set."""
    return _clean_key(settings.openai_api_key)


def get_model_client() -> ModelClient:
    """
    FastAPI dependency. Raises ConfigurationError when the key is missing.
    Bodies that fail to decode never reach it; the validation handler in
    app.main checks the key for those.
    """
    api_key = configured_api_key()
    if not api_key:
        raise ConfigurationError(MISSING_KEY_MESSAGE)
    return ModelClient(api_key, settings.llm_model, settings.llm_temperature)


def build_prompt(request: ProxyRequest) -> str:
    """Pick the prompt template matching the request shape."""
    if request.task == "analyze_post":
        return build_post_prompt(request.post.strip())
    if request.task == "justify_post":
        return build_justification_prompt(request.post.strip(), request.sentiment.strip())
    if request.task == "generate_report":
        return build_report_prompt(request.reportData)
    if request.analysisType and request.analysisType.lower() != "sentiment":
        return build_generic_prompt(request.posts, request.analysisType)
    return build_batch_prompt(request.posts)
