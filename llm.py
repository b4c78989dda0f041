import logging
from functools import lru_cache
from typing import AsyncIterator, Optional

from google import genai
from google.auth import default

import config
from errors import ModelInvocationError

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


def create_client(api_key: Optional[str] = None) -> genai.Client:
    api_key = api_key or config.GEMINI_API_KEY
    if api_key:
        return genai.Client(api_key=api_key)

    project_id = config.GOOGLE_CLOUD_PROJECT
    location = config.GOOGLE_CLOUD_LOCATION
    logging.info(f"Initializing Vertex AI for project '{project_id}' in '{location}'...")
    # Explicitly request the cloud-platform scope to call Vertex AI
    credentials, _ = default(scopes=[CLOUD_PLATFORM_SCOPE])
    return genai.Client(vertexai=True, project=project_id, location=location, credentials=credentials)


class GeminiTextModel:
    """
    Thin async wrapper around a Gemini model.

    `stream_text` is used by the generation stream, `complete` by the slide
    editor. Both raise ModelInvocationError when the call itself fails,
    including failure to set up the client, which happens on first use.
    """

    def __init__(self, client: Optional[genai.Client] = None, model_name: str = config.GEMINI_MODEL):
        self._client = client
        self.model_name = model_name

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = create_client()
        return self._client

    async def stream_text(self, prompt: str) -> AsyncIterator[str]:
        logging.info(f"Streaming content from {self.model_name}...")
        try:
            stream = await self.client.aio.models.generate_content_stream(
                model=self.model_name, contents=prompt
            )
            async for chunk in stream:
                if chunk.text:
                    yield chunk.text
        except Exception as e:
            logging.error(f"Streaming LLM call failed: {e}", exc_info=True)
            raise ModelInvocationError(f"Model call failed: {e}") from e

    async def complete(self, prompt: str) -> str:
        logging.info(f"Calling {self.model_name}...")
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_name, contents=prompt
            )
        except Exception as e:
            logging.error(f"LLM call failed: {e}", exc_info=True)
            raise ModelInvocationError(f"Model call failed: {e}") from e

        text = response.text or ""
        logging.debug(f"Received raw response from LLM: {text}")
        return text


@lru_cache(maxsize=1)
def get_text_model() -> GeminiTextModel:
    """FastAPI dependency: one model wrapper per process."""
    return GeminiTextModel()
