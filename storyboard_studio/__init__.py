"""
Storyboard Studio: chat-driven shot planning with Runway video generation.

Provides the storyboard parser and timing engine, the in-memory storyboard
store, the Runway client and generation status controller, and the FastAPI
application that ties them together.
"""

__all__ = ["api", "cli", "config", "generation", "llm", "models", "runway_client", "storyboard", "store", "utils"]
