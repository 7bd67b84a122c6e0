"""Shared library helpers."""

from src.libs.gpt_client import (
    GPTClientError,
    GPTClientProtocol,
    GPTResponse,
    OpenAIClient,
    image_part,
)

__all__ = [
    "GPTClientError",
    "GPTClientProtocol",
    "GPTResponse",
    "OpenAIClient",
    "image_part",
]
