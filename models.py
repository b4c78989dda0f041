from typing import List, Optional, Literal, Union

from pydantic import BaseModel, Field

SlideLayout = Literal["title", "content", "two-column", "image-text"]
ReasoningType = Literal["thinking", "searching", "reading", "analyzing", "generating"]

SLIDE_LAYOUTS = ("title", "content", "two-column", "image-text")


# --- Deck ---
class Slide(BaseModel):
    id: Optional[str] = None
    presentation_id: Optional[str] = None
    title: str
    content: List[str]
    layout: SlideLayout = "content"
    order: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Presentation(BaseModel):
    id: Optional[str] = None
    title: str
    description: Optional[str] = None
    slides: List[Slide]
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


# --- Chat ---
class ReasoningStep(BaseModel):
    id: Optional[str] = None
    type: ReasoningType
    title: str = ""
    content: str
    timestamp: Optional[str] = None


class ChatMessage(BaseModel):
    id: Optional[str] = None
    conversation_id: Optional[str] = None
    role: Literal["user", "assistant"]
    content: str
    reasoning: Optional[List[ReasoningStep]] = None
    presentation: Optional[Presentation] = None
    created_at: Optional[str] = None


class Conversation(BaseModel):
    id: Optional[str] = None
    title: Optional[str] = None
    messages: List[ChatMessage] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


# --- Stream events (one per SSE frame) ---
class ReasoningEvent(BaseModel):
    type: Literal["reasoning"] = "reasoning"
    step: ReasoningStep


class ProgressEvent(BaseModel):
    type: Literal["progress"] = "progress"
    message: str


class PresentationEvent(BaseModel):
    type: Literal["presentation"] = "presentation"
    presentation: Presentation


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    error: str


class DoneEvent(BaseModel):
    type: Literal["done"] = "done"


StreamEvent = Union[ReasoningEvent, ProgressEvent, PresentationEvent, ErrorEvent, DoneEvent]


# --- API payloads ---
class GenerateRequest(BaseModel):
    prompt: Optional[str] = None


class EditSlideRequest(BaseModel):
    presentation: Presentation
    slideIndex: int
    instruction: str


class EditSlideResponse(BaseModel):
    presentation: Presentation


class ExportRequest(BaseModel):
    presentation: Presentation
