import json
import logging
import os
import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

import config
from models import ChatMessage, Conversation, Presentation, ReasoningStep

HISTORY_STORAGE_KEY = "ai-slides.conversations"
UNTITLED_CONVERSATION = "Untitled conversation"
MAX_TITLE_LENGTH = 60


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_time(value: Optional[str]) -> float:
    if not value:
        return 0.0
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
    except ValueError:
        return 0.0


def create_empty_conversation() -> Conversation:
    timestamp = _now()
    return Conversation(
        id=str(uuid.uuid4()),
        title=UNTITLED_CONVERSATION,
        messages=[],
        created_at=timestamp,
        updated_at=timestamp,
    )


def derive_conversation_title(messages: List[ChatMessage]) -> str:
    """Title from the first non-blank user message, capped at 60 characters."""
    for message in messages:
        if message.role == "user" and message.content.strip():
            trimmed = message.content.strip()
            if len(trimmed) <= MAX_TITLE_LENGTH:
                return trimmed
            return f"{trimmed[:MAX_TITLE_LENGTH - 3]}…"
    return UNTITLED_CONVERSATION


def sort_conversations(items: List[Conversation]) -> List[Conversation]:
    """Most recent activity first."""
    return sorted(items, key=lambda c: _parse_time(c.updated_at or c.created_at), reverse=True)


class ConversationStore:
    """
    Client-side chat history persisted as JSON under a single storage key.

    Loaded once on construction and written back after every mutation. A
    missing or corrupt file is discarded and replaced by one empty
    conversation. All mutations go through one lock, so concurrent writers
    (e.g. a generation stream and a slide edit) are applied one at a time.
    """

    def __init__(self, path: str = None):
        self.path = path or config.CONVERSATION_STORE_PATH
        self._lock = threading.RLock()
        self.conversations: List[Conversation] = []
        self.active_conversation_id: Optional[str] = None
        self._load()

    # --- Persistence ---
    def _read_storage(self) -> Dict[str, str]:
        with open(self.path, "r", encoding="utf-8") as f:
            storage = json.load(f)
        if not isinstance(storage, dict):
            raise ValueError("storage file is not a keyed collection")
        return storage

    def _load(self) -> None:
        conversations = []
        try:
            storage = self._read_storage()
            stored = storage.get(HISTORY_STORAGE_KEY)
            if stored:
                parsed = json.loads(stored)
                if isinstance(parsed, list):
                    conversations = [Conversation.model_validate(item) for item in parsed]
        except FileNotFoundError:
            logging.info(f"No conversation history at {self.path}. Starting fresh.")
        except (OSError, ValueError, ValidationError) as e:
            logging.error(f"Failed to load conversation history: {e}", exc_info=True)
            conversations = []

        if conversations:
            self.conversations = sort_conversations(conversations)
        else:
            self.conversations = [create_empty_conversation()]
        self.active_conversation_id = self.conversations[0].id
        self._save()

    def _save(self) -> None:
        try:
            try:
                storage = self._read_storage()
            except (OSError, ValueError):
                storage = {}
            storage[HISTORY_STORAGE_KEY] = json.dumps(
                [c.model_dump(exclude_none=True) for c in self.conversations], ensure_ascii=False
            )
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            tmp_path = f"{self.path}.tmp"
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(storage, f, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logging.error(f"Failed to persist conversation history: {e}", exc_info=True)

    # --- Queries ---
    def get(self, conversation_id: str) -> Optional[Conversation]:
        for conversation in self.conversations:
            if conversation.id == conversation_id:
                return conversation
        return None

    @property
    def active_conversation(self) -> Optional[Conversation]:
        return self.get(self.active_conversation_id) if self.active_conversation_id else None

    # --- Mutations ---
    def _update(self, conversation_id: str, updater: Callable[[Conversation], Conversation]) -> Conversation:
        with self._lock:
            updated = None
            conversations = []
            for conversation in self.conversations:
                if conversation.id == conversation_id:
                    updated = updater(conversation)
                    conversations.append(updated)
                else:
                    conversations.append(conversation)
            if updated is None:
                raise KeyError(f"Unknown conversation: {conversation_id}")
            self.conversations = sort_conversations(conversations)
            self._save()
            return updated

    def new_conversation(self) -> Conversation:
        with self._lock:
            conversation = create_empty_conversation()
            self.conversations = sort_conversations([conversation] + self.conversations)
            self.active_conversation_id = conversation.id
            self._save()
            return conversation

    def ensure_conversation_id(self) -> str:
        if self.active_conversation_id and self.get(self.active_conversation_id):
            return self.active_conversation_id
        return self.new_conversation().id

    def select(self, conversation_id: str) -> Conversation:
        conversation = self.get(conversation_id)
        if conversation is None:
            raise KeyError(f"Unknown conversation: {conversation_id}")
        self.active_conversation_id = conversation_id
        return conversation

    def delete(self, conversation_id: str) -> None:
        with self._lock:
            self.conversations = [c for c in self.conversations if c.id != conversation_id]
            if not self.conversations:
                self.conversations = [create_empty_conversation()]
            if self.active_conversation_id == conversation_id or self.get(self.active_conversation_id) is None:
                self.active_conversation_id = self.conversations[0].id
            self._save()

    def append_message(self, conversation_id: str, message: ChatMessage) -> ChatMessage:
        if message.id is None:
            message = message.model_copy(update={"id": str(uuid.uuid4())})
        if message.created_at is None:
            message = message.model_copy(update={"created_at": _now()})
        message = message.model_copy(update={"conversation_id": conversation_id})

        def updater(conversation: Conversation) -> Conversation:
            messages = conversation.messages + [message]
            title = conversation.title
            if not title or title == UNTITLED_CONVERSATION:
                title = derive_conversation_title(messages)
            return conversation.model_copy(update={"messages": messages, "title": title, "updated_at": _now()})

        self._update(conversation_id, updater)
        return message

    def update_message(self, conversation_id: str, message_id: str, **changes) -> None:
        def updater(conversation: Conversation) -> Conversation:
            messages = [
                m.model_copy(update=changes) if m.id == message_id else m
                for m in conversation.messages
            ]
            return conversation.model_copy(update={"messages": messages, "updated_at": _now()})

        self._update(conversation_id, updater)

    def append_reasoning(self, conversation_id: str, message_id: str, step: ReasoningStep) -> None:
        def updater(conversation: Conversation) -> Conversation:
            messages = [
                m.model_copy(update={"reasoning": (m.reasoning or []) + [step]}) if m.id == message_id else m
                for m in conversation.messages
            ]
            return conversation.model_copy(update={"messages": messages, "updated_at": _now()})

        self._update(conversation_id, updater)

    def attach_presentation(self, conversation_id: str, message_id: str, presentation: Presentation,
                            content: str = "Generated presentation") -> None:
        self.update_message(conversation_id, message_id, presentation=presentation, content=content)
