"""LLM chat client and the storyboard system prompt."""

from .chat import ChatClient, ChatConfigurationError
from . import prompts

__all__ = ["ChatClient", "ChatConfigurationError", "prompts"]
