import json

import pytest

from client import ChatSession, SlidesClient, SlidesServiceError, iter_sse_data
from conversation_store import ConversationStore


def frame(payload):
    return f"data: {json.dumps(payload)}\n\n"


def test_partial_frames_are_buffered_until_newline():
    body = frame({"type": "progress", "message": "one"}) + ": comment\n" + frame({"type": "progress", "message": "two"}) + "data: [DONE]\n\n"
    chunks = [body[i:i + 7] for i in range(0, len(body), 7)]
    payloads = [json.loads(data) for data in iter_sse_data(iter(chunks))]
    assert [p["message"] for p in payloads] == ["one", "two"]


def test_reader_stops_at_done_sentinel():
    body = frame({"type": "progress", "message": "one"}) + "data: [DONE]\n\n" + frame({"type": "progress", "message": "late"})
    assert len(list(iter_sse_data(iter([body])))) == 1


class FakeResponse:
    def __init__(self, status_code=200, body="", payload=None, content=b""):
        self.status_code = status_code
        self.ok = status_code < 400
        self.body = body
        self.payload = payload
        self.content = content
        self.encoding = None
        self.text = body or json.dumps(payload)
        self.closed = False

    def json(self):
        if self.payload is None:
            raise ValueError("no json")
        return self.payload

    def iter_content(self, chunk_size=None, decode_unicode=False):
        for i in range(0, len(self.body), 16):
            yield self.body[i:i + 16]

    def close(self):
        self.closed = True


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def post(self, url, json=None, timeout=None, **kwargs):
        self.calls.append((url, json, kwargs))
        return self.response


def test_stream_generation_decodes_events(solar_presentation):
    body = (
        frame({"type": "reasoning", "step": {"type": "thinking", "title": "", "content": "Researching"}})
        + frame({"type": "presentation", "presentation": solar_presentation.model_dump(exclude_none=True)})
        + "data: [DONE]\n\n"
    )
    response = FakeResponse(body=body)
    session = FakeSession(response)
    client = SlidesClient("http://slides.test/", session=session)

    events = list(client.stream_generation("Solar energy"))

    assert [e["type"] for e in events] == ["reasoning", "presentation"]
    assert session.calls[0][0] == "http://slides.test/api/generate"
    assert session.calls[0][1] == {"prompt": "Solar energy"}
    assert session.calls[0][2] == {"stream": True}
    assert response.closed


def test_stream_error_event_raises():
    body = frame({"type": "progress", "message": "Generating presentation content..."}) + frame({"type": "error", "error": "quota"})
    client = SlidesClient("http://slides.test", session=FakeSession(FakeResponse(body=body)))
    with pytest.raises(SlidesServiceError, match="quota"):
        list(client.stream_generation("Solar energy"))


def test_http_error_uses_error_body(solar_presentation):
    response = FakeResponse(status_code=400, payload={"error": "slideIndex must reference an existing slide"})
    client = SlidesClient("http://slides.test", session=FakeSession(response))
    with pytest.raises(SlidesServiceError, match="slideIndex"):
        client.edit_slide(solar_presentation, 9, "shorter")


class FakeSlidesClient:
    def __init__(self, events=None, error=None, edited=None, edit_error=None):
        self.events = events or []
        self.error = error
        self.edited = edited
        self.edit_error = edit_error

    def stream_generation(self, prompt):
        for event in self.events:
            yield event
        if self.error:
            raise self.error

    def edit_slide(self, presentation, slide_index, instruction):
        if self.edit_error:
            raise self.edit_error
        return self.edited


def test_chat_session_records_a_full_turn(tmp_path, solar_presentation):
    events = [
        {"type": "reasoning", "step": {"type": "thinking", "title": "", "content": "Researching"}},
        {"type": "progress", "message": "Creating 6 slides..."},
        {"type": "presentation", "presentation": solar_presentation.model_dump(exclude_none=True)},
    ]
    store = ConversationStore(str(tmp_path / "storage.json"))
    session = ChatSession(store, FakeSlidesClient(events=events))

    result = session.send("Solar energy")

    assert result == solar_presentation
    conversation = store.active_conversation
    assert conversation.title == "Solar energy"
    user, assistant = conversation.messages
    assert user.content == "Solar energy"
    assert assistant.content == "Generated presentation"
    assert [(s.type, s.content) for s in assistant.reasoning] == [
        ("thinking", "Researching"),
        ("generating", "Creating 6 slides..."),
    ]
    assert assistant.presentation == solar_presentation


def test_chat_session_records_failures(tmp_path):
    store = ConversationStore(str(tmp_path / "storage.json"))
    session = ChatSession(store, FakeSlidesClient(error=SlidesServiceError("quota")))

    assert session.send("Solar energy") is None
    assistant = store.active_conversation.messages[-1]
    assert "quota" in assistant.content
    assert assistant.presentation is None


def test_edit_keeps_previous_version_in_history(tmp_path, solar_presentation):
    slides = list(solar_presentation.slides)
    slides[0] = slides[0].model_copy(update={"title": "Solar 101"})
    edited = solar_presentation.model_copy(update={"slides": slides})

    store = ConversationStore(str(tmp_path / "storage.json"))
    session = ChatSession(store, FakeSlidesClient(events=[
        {"type": "presentation", "presentation": solar_presentation.model_dump(exclude_none=True)},
    ], edited=edited))
    original = session.send("Solar energy")
    session.edit(original, 0, "make the title shorter")

    messages = store.active_conversation.messages
    assert messages[1].presentation.slides[0].title == "Introduction"
    assert messages[2].role == "user"
    assert messages[2].content == "Edit slide 1: make the title shorter"
    assert messages[3].content == "Updated slide 1"
    assert [s.type for s in messages[3].reasoning] == ["generating"]
    assert messages[3].presentation.slides[0].title == "Solar 101"


def test_failed_edit_is_recorded_in_history(tmp_path, solar_presentation):
    store = ConversationStore(str(tmp_path / "storage.json"))
    session = ChatSession(store, FakeSlidesClient(edit_error=SlidesServiceError("Model did not return valid bullet points")))

    assert session.edit(solar_presentation, 2, "add statistics") is None

    user, assistant = store.active_conversation.messages
    assert user.role == "user"
    assert user.content == "Edit slide 3: add statistics"
    assert assistant.content == "Sorry, I could not apply that edit: Model did not return valid bullet points"
    assert assistant.presentation is None


def test_stream_ending_without_deck_marks_turn_failed(tmp_path):
    store = ConversationStore(str(tmp_path / "storage.json"))
    session = ChatSession(store, FakeSlidesClient(events=[{"type": "progress", "message": "Processing AI response..."}]))

    assert session.send("Solar energy") is None
    assistant = store.active_conversation.messages[-1]
    assert assistant.content.startswith("Sorry, I couldn't generate the presentation")
    assert assistant.presentation is None
