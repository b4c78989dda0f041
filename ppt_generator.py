import io
import logging
import re
from datetime import datetime
from typing import List

from google.cloud import storage
from pptx import Presentation as PptxPresentation
from pptx.dml.color import RGBColor
from pptx.enum.shapes import MSO_SHAPE
from pptx.enum.text import MSO_ANCHOR, PP_ALIGN
from pptx.oxml.xmlchemy import OxmlElement
from pptx.util import Emu, Inches, Pt

import config
from errors import RequestValidationError
from models import Presentation, Slide

PPTX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"

# --- 1. Design Constants ---
# Colors
PRIMARY = RGBColor(0x5B, 0x21, 0xB6)  # Purple
TEXT_COLOR = RGBColor(0x1F, 0x29, 0x37)
SUBTITLE_COLOR = RGBColor(0x6B, 0x72, 0x80)
SLIDE_NUMBER_COLOR = RGBColor(0x9C, 0xA3, 0xAF)
WHITE = RGBColor(255, 255, 255)
# Slide Dimensions (16:9)
SLIDE_WIDTH = Inches(16)
SLIDE_HEIGHT = Inches(9)
# Margins
MARGIN_LEFT = Inches(0.8)
MARGIN_RIGHT = Inches(0.8)
MARGIN_BOTTOM = Inches(0.8)
# Bars
TITLE_BAND_HEIGHT = Inches(2.4)
HEADER_BAR_HEIGHT = Inches(1.3)
# Fonts
FONT_HEADLINE = 'Arial'
FONT_BODY = 'Arial'
TITLE_FONT_SIZE = Pt(60)
SUBTITLE_FONT_SIZE = Pt(28)
SLIDE_TITLE_FONT_SIZE = Pt(36)
BODY_FONT_SIZE = Pt(26)
SLIDE_NUMBER_FONT_SIZE = Pt(16)
# python-pptx has trouble with very long names/texts
MAX_TEXT_LENGTH = 1000

EMPHASIS = re.compile(r"\*\*(.+?)\*\*")


# --- 2. Helper Functions ---

def strip_emphasis(text: str) -> str:
    """Removes **bold** markers; emphasis is only rendered in the chat view."""
    return EMPHASIS.sub(r"\1", text or "")


def _truncate(text: str) -> str:
    if len(text) > MAX_TEXT_LENGTH:
        return text[:MAX_TEXT_LENGTH] + "..."
    return text


def add_run(p, text, size, color=TEXT_COLOR, bold=False, font_name=FONT_BODY):
    run = p.add_run()
    run.text = _truncate(strip_emphasis(text))
    run.font.size = size
    run.font.name = font_name
    run.font.bold = bold
    run.font.color.rgb = color
    return run


def enable_bullet(p, char="•"):
    """Turns a text box paragraph into a hanging-indent bullet."""
    pPr = p._p.get_or_add_pPr()
    pPr.set("marL", str(Inches(0.4)))
    pPr.set("indent", str(-Inches(0.4)))
    bullet = OxmlElement("a:buChar")
    bullet.set("char", char)
    pPr.insert_element_before(bullet, "a:tabLst", "a:defRPr", "a:extLst")


def fill_bullets(text_frame, bullets: List[str]):
    text_frame.clear()
    text_frame.word_wrap = True
    for i, point in enumerate(bullets):
        p = text_frame.paragraphs[0] if i == 0 else text_frame.add_paragraph()
        enable_bullet(p)
        p.space_after = Pt(12)
        add_run(p, point, BODY_FONT_SIZE)


def add_bar(slide, top, height, color=PRIMARY):
    bar = slide.shapes.add_shape(MSO_SHAPE.RECTANGLE, 0, top, SLIDE_WIDTH, height)
    bar.fill.solid()
    bar.fill.fore_color.rgb = color
    bar.line.fill.background()  # No border
    return bar


# --- 3. Slide Drawing Functions ---

def draw_title_slide(slide, data: Slide):
    """Draws the opening slide: accent band, centred headline, optional subtitle."""
    add_bar(slide, 0, TITLE_BAND_HEIGHT)

    title_shape = slide.shapes.add_textbox(
        Inches(1), Inches(3.4), SLIDE_WIDTH - Inches(2), Inches(2)
    )
    title_tf = title_shape.text_frame
    title_tf.word_wrap = True
    title_tf.vertical_anchor = MSO_ANCHOR.MIDDLE
    p = title_tf.paragraphs[0]
    p.alignment = PP_ALIGN.CENTER
    add_run(p, data.title, TITLE_FONT_SIZE, bold=True, font_name=FONT_HEADLINE)

    # Subtitle from the first bullet
    if data.content:
        subtitle_shape = slide.shapes.add_textbox(
            Inches(1), Inches(5.6), SLIDE_WIDTH - Inches(2), Inches(1.2)
        )
        subtitle_tf = subtitle_shape.text_frame
        subtitle_tf.word_wrap = True
        p = subtitle_tf.paragraphs[0]
        p.alignment = PP_ALIGN.CENTER
        add_run(p, data.content[0], SUBTITLE_FONT_SIZE, color=SUBTITLE_COLOR)

    logging.debug(f"  - Drawing Title Slide: {data.title}")


def draw_content_slide(slide, data: Slide, number: int):
    """Draws a header bar with the slide title and a bulleted body (two columns for 'two-column')."""
    add_bar(slide, 0, HEADER_BAR_HEIGHT)

    title_shape = slide.shapes.add_textbox(
        MARGIN_LEFT, Inches(0.2), SLIDE_WIDTH - MARGIN_LEFT - MARGIN_RIGHT, HEADER_BAR_HEIGHT - Inches(0.4)
    )
    title_tf = title_shape.text_frame
    title_tf.word_wrap = True
    title_tf.vertical_anchor = MSO_ANCHOR.MIDDLE
    add_run(title_tf.paragraphs[0], data.title, SLIDE_TITLE_FONT_SIZE, color=WHITE, bold=True, font_name=FONT_HEADLINE)

    body_top = HEADER_BAR_HEIGHT + Inches(0.8)
    body_width = SLIDE_WIDTH - MARGIN_LEFT - MARGIN_RIGHT
    body_height = SLIDE_HEIGHT - body_top - MARGIN_BOTTOM - Inches(0.4)

    if data.layout == "two-column" and len(data.content) > 1:
        half = (len(data.content) + 1) // 2
        gap = Inches(0.5)
        column_width = Emu(int((body_width - gap) / 2))
        columns = [data.content[:half], data.content[half:]]
        for col_idx, items in enumerate(columns):
            left = MARGIN_LEFT + col_idx * (column_width + gap)
            body_shape = slide.shapes.add_textbox(left, body_top, column_width, body_height)
            fill_bullets(body_shape.text_frame, items)
    else:
        body_shape = slide.shapes.add_textbox(MARGIN_LEFT, body_top, body_width, body_height)
        fill_bullets(body_shape.text_frame, data.content)

    # Slide number
    number_shape = slide.shapes.add_textbox(
        SLIDE_WIDTH - MARGIN_RIGHT - Inches(1), SLIDE_HEIGHT - MARGIN_BOTTOM, Inches(1), Inches(0.5)
    )
    p = number_shape.text_frame.paragraphs[0]
    p.alignment = PP_ALIGN.RIGHT
    add_run(p, str(number), SLIDE_NUMBER_FONT_SIZE, color=SLIDE_NUMBER_COLOR)

    logging.debug(f"  - Drawing Content Slide: {data.title}")


# --- 4. Main Execution Logic ---

def create_presentation(presentation: Presentation) -> PptxPresentation:
    """Creates a python-pptx presentation from a deck. The first slide is always drawn as a title slide."""
    prs = PptxPresentation()
    prs.slide_width = SLIDE_WIDTH
    prs.slide_height = SLIDE_HEIGHT

    prs.core_properties.title = _truncate(presentation.title)
    prs.core_properties.subject = _truncate(presentation.description or "")
    prs.core_properties.author = "AI Presentation Generator"

    logging.info(f"Exporting presentation '{presentation.title}' ({len(presentation.slides)} slides)")
    blank_layout = prs.slide_layouts[6]
    for i, slide_data in enumerate(presentation.slides):
        slide = prs.slides.add_slide(blank_layout)
        slide.name = f"Slide_{i + 1}_{slide_data.layout}"

        if i == 0:
            draw_title_slide(slide, slide_data)
        else:
            draw_content_slide(slide, slide_data, i + 1)

    return prs


def presentation_to_bytes(presentation: Presentation) -> bytes:
    buffer = io.BytesIO()
    create_presentation(presentation).save(buffer)
    return buffer.getvalue()


def safe_file_stem(title: str) -> str:
    # ASCII only: the stem also goes into a Content-Disposition header
    safe_title = "".join(c for c in (title or "") if (c.isascii() and c.isalnum()) or c in (' ', '_', '-')).strip()
    if not safe_title:
        safe_title = "Untitled_Presentation"
    return safe_title.replace(' ', '_')


def upload_presentation(presentation: Presentation, bucket_name: str = None) -> str:
    """Renders the deck, uploads it to Cloud Storage and returns the blob's public URL."""
    bucket_name = bucket_name or config.BUCKET_NAME
    if not bucket_name:
        raise RequestValidationError("GCS_BUCKET_NAME is not configured")

    data = presentation_to_bytes(presentation)

    storage_client = storage.Client()
    bucket = storage_client.bucket(bucket_name)
    file_name = f"{safe_file_stem(presentation.title)}_{datetime.now().strftime('%Y%m%d%H%M%S')}.pptx"
    blob = bucket.blob(file_name)

    logging.info(f"Uploading presentation to gs://{bucket_name}/{file_name}")
    blob.upload_from_string(data, content_type=PPTX_MEDIA_TYPE)
    logging.info(f"File uploaded. Public URL: {blob.public_url}")
    return blob.public_url
