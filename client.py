import json
import logging
from typing import Any, Dict, Iterator, Optional

import requests

import config
from conversation_store import ConversationStore
from generation import DONE_SENTINEL
from models import ChatMessage, Presentation, ReasoningStep

DATA_PREFIX = "data: "


class SlidesServiceError(Exception):
    """The slides service rejected a request or reported a failure mid-stream."""


def iter_sse_data(chunks: Iterator[str]) -> Iterator[str]:
    """
    Yields the payload of every `data: ` line from a chunked text stream.

    Partial lines are buffered until their newline arrives; other lines are
    ignored. Stops at the [DONE] sentinel.
    """
    buffer = ""
    for chunk in chunks:
        buffer += chunk
        lines = buffer.split("\n")
        buffer = lines.pop()
        for line in lines:
            if not line.startswith(DATA_PREFIX):
                continue
            data = line[len(DATA_PREFIX):]
            if data == DONE_SENTINEL:
                return
            yield data
    if buffer.startswith(DATA_PREFIX) and buffer[len(DATA_PREFIX):] != DONE_SENTINEL:
        yield buffer[len(DATA_PREFIX):]


def _error_detail(response: requests.Response) -> str:
    try:
        return response.json().get("error") or response.text
    except ValueError:
        return response.text


class SlidesClient:
    """HTTP client for the generation, edit and export endpoints."""

    def __init__(self, base_url: Optional[str] = None, session: Optional[requests.Session] = None, timeout: float = 300):
        self.base_url = (base_url or config.SERVICE_URL).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _post(self, path: str, payload: Dict[str, Any], **kwargs) -> requests.Response:
        response = self.session.post(f"{self.base_url}{path}", json=payload, timeout=self.timeout, **kwargs)
        if not response.ok:
            detail = _error_detail(response)
            logging.error(f"The slides service returned an error. Status: {response.status_code}. Detail: {detail}")
            raise SlidesServiceError(detail)
        return response

    def stream_generation(self, prompt: str) -> Iterator[Dict[str, Any]]:
        """Yields decoded stream events until [DONE]. An error event raises SlidesServiceError."""
        response = self._post("/api/generate", {"prompt": prompt}, stream=True)
        if response.encoding is None:
            response.encoding = "utf-8"
        try:
            chunks = response.iter_content(chunk_size=None, decode_unicode=True)
            for data in iter_sse_data(chunks):
                try:
                    event = json.loads(data)
                except json.JSONDecodeError:
                    logging.warning(f"Skipping malformed stream frame: {data}")
                    continue
                if event.get("type") == "error":
                    raise SlidesServiceError(event.get("error") or "Failed to generate presentation")
                yield event
        finally:
            response.close()

    def edit_slide(self, presentation: Presentation, slide_index: int, instruction: str) -> Presentation:
        payload = {
            "presentation": presentation.model_dump(exclude_none=True),
            "slideIndex": slide_index,
            "instruction": instruction,
        }
        response = self._post("/api/edit-slide", payload)
        return Presentation.model_validate(response.json()["presentation"])

    def export_pptx(self, presentation: Presentation) -> bytes:
        response = self._post("/api/export", {"presentation": presentation.model_dump(exclude_none=True)})
        return response.content


class ChatSession:
    """
    Drives chat turns against the service and records them in the conversation store.

    Progress events are shown as `generating` reasoning steps. An edited deck
    is attached to a new assistant message, so earlier turns keep the
    pre-edit version.
    """

    def __init__(self, store: ConversationStore, client: Optional[SlidesClient] = None):
        self.store = store
        self.client = client or SlidesClient()

    def send(self, prompt: str) -> Optional[Presentation]:
        conversation_id = self.store.ensure_conversation_id()
        self.store.append_message(conversation_id, ChatMessage(role="user", content=prompt))
        assistant = self.store.append_message(
            conversation_id,
            ChatMessage(role="assistant", content="Generating presentation...", reasoning=[]),
        )

        presentation = None
        try:
            for event in self.client.stream_generation(prompt):
                event_type = event.get("type")
                if event_type == "reasoning":
                    step = ReasoningStep.model_validate(event["step"])
                    self.store.append_reasoning(conversation_id, assistant.id, step)
                elif event_type == "progress":
                    step = ReasoningStep(type="generating", title="", content=event.get("message", ""))
                    self.store.append_reasoning(conversation_id, assistant.id, step)
                elif event_type == "presentation":
                    presentation = Presentation.model_validate(event["presentation"])
                    self.store.attach_presentation(conversation_id, assistant.id, presentation)
        except (SlidesServiceError, requests.RequestException) as e:
            logging.error(f"Generation failed: {e}", exc_info=True)
            self.store.update_message(
                conversation_id, assistant.id,
                content=f"Sorry, I couldn't generate the presentation: {e}",
            )
            return None

        if presentation is None:
            logging.error("Generation stream ended without a presentation")
            self.store.update_message(
                conversation_id, assistant.id,
                content="Sorry, I couldn't generate the presentation: the stream ended before the deck arrived",
            )
        return presentation

    def edit(self, presentation: Presentation, slide_index: int, instruction: str) -> Optional[Presentation]:
        """Records an edit turn and attaches the edited deck to its reply. Returns None when the edit fails."""
        conversation_id = self.store.ensure_conversation_id()
        self.store.append_message(
            conversation_id,
            ChatMessage(role="user", content=f"Edit slide {slide_index + 1}: {instruction}"),
        )
        assistant = self.store.append_message(
            conversation_id,
            ChatMessage(
                role="assistant",
                content="Applying your slide edits...",
                reasoning=[ReasoningStep(type="generating", title="", content=f"Updating slide {slide_index + 1}...")],
            ),
        )

        try:
            updated = self.client.edit_slide(presentation, slide_index, instruction)
        except (SlidesServiceError, requests.RequestException) as e:
            logging.error(f"Slide edit failed: {e}", exc_info=True)
            self.store.update_message(
                conversation_id, assistant.id,
                content=f"Sorry, I could not apply that edit: {e}",
            )
            return None

        self.store.attach_presentation(
            conversation_id, assistant.id, updated, content=f"Updated slide {slide_index + 1}"
        )
        return updated
