import logging
from typing import Optional

from deck_assembler import normalize_bullets, now_iso
from errors import EmptyContentError, RequestValidationError
from extraction import extract
from models import Presentation
from prompts import build_edit_prompt


def validate_edit_request(presentation: Optional[Presentation], slide_index, instruction) -> str:
    """Checks an edit request before any model call. Returns the stripped instruction."""
    if presentation is None or presentation.slides is None:
        raise RequestValidationError("Valid presentation with slides is required")

    if (
        not isinstance(slide_index, int)
        or isinstance(slide_index, bool)
        or slide_index < 0
        or slide_index >= len(presentation.slides)
    ):
        raise RequestValidationError("slideIndex must reference an existing slide")

    if not isinstance(instruction, str) or not instruction.strip():
        raise RequestValidationError("instruction is required")

    return instruction.strip()


async def edit_slide(model, presentation: Presentation, slide_index: int, instruction: str) -> Presentation:
    """
    Rewrites one slide of a deck following a natural-language instruction.

    The model sees an outline of the whole deck plus the target slide and is
    asked for `{title, content}` only. The result is merged into a copy of the
    deck: the target slide gets the new title, bullets and updated_at, the deck
    gets a new updated_at, and every other slide object is carried over as is.
    The input presentation is never mutated.

    Raises:
        RequestValidationError: bad index, empty instruction or missing slides.
        ModelInvocationError: the model call failed.
        ExtractionError: the answer held no parseable JSON object.
        EmptyContentError: the answer held no usable bullet points.
    """
    instruction = validate_edit_request(presentation, slide_index, instruction)
    target = presentation.slides[slide_index]

    logging.info(f"Editing slide {slide_index + 1} of '{presentation.title}': {instruction}")
    raw_text = await model.complete(build_edit_prompt(presentation, slide_index, instruction))

    parsed = extract(raw_text)

    title = parsed.get("title")
    updated_title = title.strip() if isinstance(title, str) and title.strip() else target.title

    updated_content = normalize_bullets(parsed.get("content"))
    if not updated_content:
        raise EmptyContentError("Model did not return valid bullet points")

    now = now_iso()
    updated_slide = target.model_copy(
        update={"title": updated_title, "content": updated_content, "updated_at": now}
    )
    slides = list(presentation.slides)
    slides[slide_index] = updated_slide

    return presentation.model_copy(update={"slides": slides, "updated_at": now})
