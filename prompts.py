import json

from models import Presentation

GENERATION_SYSTEM_PROMPT = """You are an expert presentation creator. Your task is to create professional, informative presentations based on user topics.

When given a topic, you should:
1. Research and gather information about the topic
2. Structure the content into logical slides
3. Create engaging titles and bullet points
4. Return the presentation in JSON format

Return your response in this exact JSON format:
{
  "title": "Presentation Title",
  "description": "Brief description",
  "slides": [
    {
      "title": "Slide Title",
      "content": ["Bullet point 1", "Bullet point 2", "Bullet point 3"],
      "layout": "content",
      "order": 0
    }
  ]
}

Guidelines:
- Create 5-8 slides
- Use clear, concise language
- Include an introduction slide, content slides, and a conclusion slide
- Each content slide should have 3-5 bullet points
- "layout" is one of "title", "content", "two-column", "image-text"
- Make it professional and informative"""

EDIT_SYSTEM_PROMPT = """You are an expert presentation copywriter. Edit the target slide to follow the user's instruction while keeping tone and format consistent with the rest of the presentation.
- Maintain clear, concise bullet points (3-5 bullets preferred).
- Bullets should be sentence fragments, not full paragraphs.
- Avoid markdown or numbering; plain text only.
- Return only JSON. Do not include explanations."""

EDIT_OUTPUT_SHAPE = """Return JSON in this shape:
{
  "title": "Updated slide title",
  "content": ["Bullet point one", "Bullet point two"]
}"""


def build_generation_prompt(topic: str) -> str:
    return (
        f"{GENERATION_SYSTEM_PROMPT}\n\n"
        f"User's topic: {topic}\n\n"
        "Please create a comprehensive presentation about this topic."
    )


def build_deck_outline(presentation: Presentation) -> str:
    """Per-slide outline of the whole deck, used as context when editing one slide."""
    sections = []
    for index, slide in enumerate(presentation.slides):
        bullets = "\n".join(f"  - {point}" for point in slide.content)
        sections.append(f"Slide {index + 1}: {slide.title}\n{bullets}")
    return "\n\n".join(sections)


def build_edit_prompt(presentation: Presentation, slide_index: int, instruction: str) -> str:
    target = presentation.slides[slide_index]
    target_json = json.dumps(
        {
            "title": target.title,
            "content": target.content,
            "layout": target.layout,
            "order": target.order,
        },
        indent=2,
        ensure_ascii=False,
    )
    user_prompt = f"""Presentation title: {presentation.title}
Presentation description: {presentation.description or "(none)"}

Current presentation overview:
{build_deck_outline(presentation)}

Target slide (Slide {slide_index + 1}):
{target_json}

Instruction: {instruction}

{EDIT_OUTPUT_SHAPE}"""
    return f"{EDIT_SYSTEM_PROMPT}\n\n{user_prompt}"
