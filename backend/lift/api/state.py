from typing import Optional

from lift.llm.base import BaseCompletionClient
from lift.llm.openai_client import OpenAICompletionClient

# One completion client per process; it holds the concurrency limit for upstream calls
_CLIENT: Optional[BaseCompletionClient] = None


def get_completion_client() -> BaseCompletionClient:
    """FastAPI dependency returning the shared client (overridden in tests)."""
    global _CLIENT
    if _CLIENT is None:
        _CLIENT = OpenAICompletionClient()
    return _CLIENT
