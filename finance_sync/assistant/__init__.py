"""Finance assistant package."""

from finance_sync.assistant.agent import AssistantReply, FinanceAssistant, build_snapshot
from finance_sync.assistant.chat import ChatSession

__all__ = ["AssistantReply", "ChatSession", "FinanceAssistant", "build_snapshot"]
