"""
OpenAI Images API client

Wraps the single endpoint dailywall needs: POST /v1/images/generations. The client returns the
URL of the generated image; downloading it is left to image_handler.download_image.

Every failure, whatever its cause, is raised as RemoteGenerationError. The pipeline treats them
all alike (retry, then fall back), so there is no finer classification here.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import requests

API_URL = "https://api.openai.com/v1/images/generations"


class RemoteGenerationError(Exception):
    """
    Raised when the generation service did not produce an image URL.
    """

    pass


@dataclass(frozen=True)
class GenerationRequest:
    prompt: str
    credential: str = field(repr=False)


class RemoteImageGenerator(ABC):
    """Something that turns a prompt into the URL of a freshly generated image."""

    @abstractmethod
    def generate(self, request: GenerationRequest) -> str:
        """Return an image URL or raise RemoteGenerationError."""


def _error_message(response: requests.Response) -> str:
    """Pull error.message out of an API error body, falling back to the raw text."""

    try:
        body = response.json()
    except ValueError:
        return response.text[:200]

    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return str(body["error"].get("message", ""))

    return str(body)[:200]


class OpenAIImageGenerator(RemoteImageGenerator):
    def __init__(
        self,
        model: str = "dall-e-3",
        size: str = "1024x1024",
        timeout: float = 60,
        api_url: str = API_URL,
    ):
        self.model = model
        self.size = size
        self.timeout = timeout
        self.api_url = api_url

    def generate(self, request: GenerationRequest) -> str:
        payload = {
            "model": self.model,
            "prompt": request.prompt,
            "size": self.size,
            "n": 1,
        }
        headers = {"Authorization": f"Bearer {request.credential}"}

        try:
            r = requests.post(
                self.api_url, json=payload, headers=headers, timeout=self.timeout
            )

        except requests.exceptions.Timeout as error:
            raise RemoteGenerationError(f"Network timeout: {error}") from error

        except requests.exceptions.RequestException as error:
            raise RemoteGenerationError(f"Connection error: {error}") from error

        except UnicodeError as error:
            # http.client sends headers as latin-1
            raise RemoteGenerationError(
                "The API key contains characters that can't be sent in an HTTP header."
            ) from error

        if not r.ok:
            raise RemoteGenerationError(
                f"Image generation failed (status code {r.status_code}): {_error_message(r)}"
            )

        try:
            body = r.json()
        except ValueError as error:
            raise RemoteGenerationError("Image generation returned a non-JSON body.") from error

        data = body.get("data") if isinstance(body, dict) else None
        if not data:
            raise RemoteGenerationError("Image generation returned no images.")

        url = data[0].get("url") if isinstance(data[0], dict) else None
        if not url:
            raise RemoteGenerationError("Image generation returned an image without a URL.")

        return url
