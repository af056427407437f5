"""Realtime subscription package."""

from finance_sync.realtime.registry import ChannelRegistry, Handler, Unsubscribe, channel_key

__all__ = ["ChannelRegistry", "Handler", "Unsubscribe", "channel_key"]
