import asyncio
import json
import logging
from typing import AsyncIterator, Optional

import config
from deck_assembler import assemble, has_slides
from errors import ExtractionError, ModelInvocationError
from extraction import extract
from models import (
    DoneEvent,
    ErrorEvent,
    PresentationEvent,
    ProgressEvent,
    ReasoningEvent,
    ReasoningStep,
    StreamEvent,
)
from prompts import build_generation_prompt

DONE_SENTINEL = "[DONE]"
SLIDES_ANCHOR = "slides"


def encode_event(event: StreamEvent) -> str:
    """Renders one event as a server-sent event frame."""
    if isinstance(event, DoneEvent):
        return f"data: {DONE_SENTINEL}\n\n"
    payload = event.model_dump(exclude_none=True)
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def _reasoning(step_type: str, content: str) -> ReasoningEvent:
    return ReasoningEvent(step=ReasoningStep(type=step_type, title="", content=content))


class GenerationOrchestrator:
    """
    Drives one "create presentation from topic" request as an ordered event stream.

    The narration (reasoning and progress events) is cosmetic framing around a
    single streamed model call. Raw model output is accumulated and never
    forwarded; only the assembled Presentation leaves the stream. Failures end
    the stream with an ErrorEvent instead of raising.
    """

    def __init__(self, model, pacing: Optional[float] = None):
        self.model = model
        self.pacing = config.STREAM_PACING if pacing is None else pacing

    async def _pause(self, seconds: float) -> None:
        if self.pacing > 0:
            await asyncio.sleep(seconds * self.pacing)

    async def _collect_model_text(self, prompt: str) -> str:
        chunks = []
        stream = self.model.stream_text(prompt)
        try:
            async for chunk in stream:
                chunks.append(chunk)
        finally:
            # Releases the model call when the client disconnects mid-stream.
            await stream.aclose()
        return "".join(chunks)

    async def generate(self, topic: str) -> AsyncIterator[StreamEvent]:
        logging.info(f"Starting presentation generation for topic: {topic}")
        try:
            yield _reasoning(
                "thinking",
                f"I will start by researching {topic} to gather comprehensive information for your presentation. "
                "I'll analyze key concepts, features, applications, and importance. After gathering enough "
                "information, I will structure it into a professional presentation with 5-8 slides.",
            )
            await self._pause(0.8)

            yield _reasoning(
                "searching",
                f'I\'ve completed the initial research for "{topic}". I\'ve gathered a good amount of information '
                "about its key aspects, features, and applications.\n\nNow, I will delve deeper by analyzing the "
                f"most relevant information to ensure a comprehensive understanding of {topic}. This will help me "
                "create a detailed and informative presentation.",
            )

            yield _reasoning(
                "generating",
                f"I have thoroughly researched {topic}, covering its key aspects, features, applications, and "
                "importance by analyzing comprehensive information. I am now ready to generate a professional "
                f"presentation for you.\n\nHere is your presentation on {topic}:",
            )
            await self._pause(0.3)

            yield ProgressEvent(message="Generating presentation content...")
            raw_text = await self._collect_model_text(build_generation_prompt(topic))
            logging.debug(f"Received raw response from LLM: {raw_text}")

            yield ProgressEvent(message="Processing AI response...")
            await self._pause(0.2)

            try:
                parsed = extract(raw_text, anchor=SLIDES_ANCHOR)
            except ExtractionError as e:
                logging.warning(f"Failed to extract slides JSON for '{topic}': {e}")
                parsed = None

            presentation = assemble(parsed, topic, raw_text)

            if has_slides(parsed):
                total = len(presentation.slides)
                yield ProgressEvent(message=f"Creating {total} slides...")
                await self._pause(0.3)

                for index in range(0, total, 2):
                    yield ProgressEvent(message=f"Generating slide {index + 1}/{total}...")

                yield ProgressEvent(message="Generating layouts...")
                await self._pause(0.3)
                yield ProgressEvent(message="Finalizing presentation...")
                await self._pause(0.2)

            logging.info(f"Generated presentation '{presentation.title}' with {len(presentation.slides)} slides")
            yield PresentationEvent(presentation=presentation)
            yield DoneEvent()

        except ModelInvocationError as e:
            logging.error(f"Error generating presentation: {e}", exc_info=True)
            yield ErrorEvent(error=e.message)
        except Exception as e:
            logging.error(f"Error generating presentation: {e}", exc_info=True)
            yield ErrorEvent(error=str(e) or "Failed to generate presentation")

    async def stream_frames(self, topic: str) -> AsyncIterator[str]:
        """SSE frames for the HTTP response body."""
        events = self.generate(topic)
        try:
            async for event in events:
                yield encode_event(event)
        finally:
            await events.aclose()
