"""
Chat Session

Keeps the assistant conversation in the chat_history table.

Flow for one message:
1. Save the user's message
2. Ask the assistant, with the current finance snapshot
3. Save the assistant's reply

The user's message is kept even when saving the reply fails. Once the
session is reset (sign-out), replies still in flight are dropped.
"""

from typing import Optional
from uuid import UUID

from finance_sync.assistant.agent import FinanceAssistant
from finance_sync.audit import AuditLogger
from finance_sync.models.records import ChatMessage, ChatMessageCreate, MessageSender
from finance_sync.models.results import ErrorKind, Result, Success, failure
from finance_sync.repositories import ChatRepository


class ChatSession:
    """One user's conversation with the finance assistant."""

    def __init__(
        self,
        repository: ChatRepository,
        assistant: FinanceAssistant,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._repo = repository
        self._assistant = assistant
        self._audit = audit_logger or AuditLogger()
        self._user_id: Optional[UUID] = None
        self._messages: list[ChatMessage] = []

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    def reset(self) -> None:
        """Forget the conversation, e.g. on sign-out."""
        self._user_id = None
        self._messages = []

    def _closed(self) -> Result:
        return failure("The conversation was closed", ErrorKind.SUPERSEDED)

    async def load(self, user_id: UUID) -> Result:
        """Load the user's history, oldest first."""
        self._user_id = user_id
        result = await self._repo.list_for_user(user_id)
        if self._user_id != user_id:
            return self._closed()
        if not result.ok:
            self._messages = []
            self._audit.log_load_failed(self._repo.table, user_id, result.error)
            return result

        self._messages = list(result.value)
        self._audit.log_loaded(self._repo.table, user_id, len(self._messages))
        return Success(value=self.messages)

    async def _save(
        self,
        user_id: UUID,
        sender: MessageSender,
        text: str,
        metadata: Optional[dict] = None,
    ) -> Result:
        result = await self._repo.create(
            user_id,
            ChatMessageCreate(sender=sender, message=text, metadata=metadata),
        )
        if self._user_id != user_id:
            return self._closed()
        if result.ok:
            self._messages.append(result.value)
        else:
            self._audit.log_mutation_failed(self._repo.table, "create", result.error)
        return result

    async def send_message(self, text: str, snapshot: str) -> Result:
        """
        Send a message and store the reply.

        Returns:
            Success(ChatMessage) with the assistant's reply, or Failure
        """
        user_id = self._user_id
        if user_id is None:
            return failure("Not signed in", ErrorKind.NOT_READY)

        text = (text or "").strip()
        if not text:
            return failure("Message cannot be empty", ErrorKind.VALIDATION)
        if len(text) > 4000:
            return failure("Message is too long (4000 characters max)", ErrorKind.VALIDATION)

        sent = await self._save(user_id, MessageSender.USER, text)
        if not sent.ok:
            return sent

        reply = await self._assistant.reply(text, snapshot)
        if self._user_id != user_id:
            return self._closed()
        saved = await self._save(user_id, MessageSender.AI, reply.text, {"used_model": reply.used_model})
        if saved.ok:
            self._audit.log_chat_replied(user_id, reply.used_model)
        return saved
