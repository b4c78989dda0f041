import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from models import Presentation, Slide, SLIDE_LAYOUTS

DEGRADED_DESCRIPTION = "AI Generated Presentation"
DEGRADED_LINE_LIMIT = 5

# Leading bullet glyphs, "- " / "* " markers and "1." / "2)" numbering.
# "**bold**" at the start of a bullet is emphasis, not a marker.
BULLET_PREFIX = re.compile(r"^\s*(?:[•–—]\s*|[-*]\s+|\d+[.)]\s+)")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


def strip_bullet(line: str) -> str:
    return BULLET_PREFIX.sub("", line).strip()


def normalize_bullets(content: Any) -> List[str]:
    """
    Coerces model-supplied slide content into a list of clean bullet strings.

    Accepts a list (non-text items are dropped) or a single string, which is
    split on newlines. List markers are stripped and blank entries removed.
    """
    if isinstance(content, str):
        lines = content.split("\n")
    elif isinstance(content, list):
        lines = [str(item) for item in content if isinstance(item, (str, int, float)) and not isinstance(item, bool)]
    else:
        return []

    bullets = []
    for line in lines:
        bullet = strip_bullet(line)
        if bullet:
            bullets.append(bullet)
    return bullets


def has_slides(parsed: Optional[Dict[str, Any]]) -> bool:
    return isinstance(parsed, dict) and isinstance(parsed.get("slides"), list) and len(parsed["slides"]) > 0


def _text_field(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def build_degraded_presentation(topic: str, raw_text: str = "") -> Presentation:
    """Single-slide deck built from the first lines of unparseable model output."""
    timestamp = now_iso()
    presentation_id = new_id()

    lines = [strip_bullet(line) for line in (raw_text or "").split("\n")]
    bullets = [line for line in lines if line][:DEGRADED_LINE_LIMIT]
    if not bullets:
        bullets = [topic]

    return Presentation(
        id=presentation_id,
        title=topic,
        description=DEGRADED_DESCRIPTION,
        slides=[
            Slide(
                id=new_id(),
                presentation_id=presentation_id,
                title=topic,
                content=bullets,
                layout="content",
                order=0,
                created_at=timestamp,
            )
        ],
        created_at=timestamp,
    )


def assemble(parsed: Optional[Dict[str, Any]], fallback_topic: str, raw_text: str = "") -> Presentation:
    """
    Turns extracted model data into a complete Presentation. Never raises.

    Every slide gets a fresh id, its positional order and a valid layout; the
    deck gets its id and created_at here, once. Entries that are not objects
    or carry no usable bullets are skipped. When nothing usable remains the
    degraded single-slide deck is returned instead.
    """
    if not has_slides(parsed):
        logging.warning(f"No slides in model output for '{fallback_topic}'. Building degraded presentation.")
        return build_degraded_presentation(fallback_topic, raw_text)

    timestamp = now_iso()
    presentation_id = new_id()

    slides = []
    for entry in parsed["slides"]:
        if not isinstance(entry, dict):
            logging.warning(f"Skipping non-object slide entry: {entry!r}")
            continue

        content = normalize_bullets(entry.get("content"))
        if not content:
            logging.warning(f"Skipping slide without bullet points: {entry.get('title')!r}")
            continue

        layout = entry.get("layout")
        if layout not in SLIDE_LAYOUTS:
            layout = "content"

        slides.append(
            Slide(
                id=new_id(),
                presentation_id=presentation_id,
                title=_text_field(entry.get("title")) or f"Slide {len(slides) + 1}",
                content=content,
                layout=layout,
                order=len(slides),
                created_at=timestamp,
            )
        )

    if not slides:
        logging.warning(f"Model slides for '{fallback_topic}' were all unusable. Building degraded presentation.")
        return build_degraded_presentation(fallback_topic, raw_text)

    return Presentation(
        id=presentation_id,
        title=_text_field(parsed.get("title")) or fallback_topic,
        description=_text_field(parsed.get("description")),
        slides=slides,
        created_at=timestamp,
    )
