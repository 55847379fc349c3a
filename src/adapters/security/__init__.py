"""Security adapters - Anti-forgery tokens."""

from .action_tokens import ActionFamily, ActionTokens

__all__ = ["ActionFamily", "ActionTokens"]
