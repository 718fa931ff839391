from abc import ABC, abstractmethod


class BaseCompletionClient(ABC):
    """Blueprint for adapters around a text-completion service.

    An adapter turns one prompt into one raw text response. It does not parse or
    validate the text: callers treat every response as an untrusted blob.
    Methods:
        complete(prompt, json_mode=False) -> str:
            Blocking call; returns the raw completion text.
        acomplete(prompt, json_mode=False) -> str:
            Asynchronous variant used by the HTTP pipelines.
    Both raise ``lift.errors.UpstreamError`` when the service fails, times out or
    returns no content.
    """

    def __init__(self, model: str, temperature: float) -> None:
        self.model = model
        self.temperature = temperature

    @abstractmethod
    def complete(self, prompt: str, json_mode: bool = False) -> str:
        """Send a prompt and return the raw response text."""
        pass

    @abstractmethod
    async def acomplete(self, prompt: str, json_mode: bool = False) -> str:
        """Asynchronously send a prompt and return the raw response text."""
        pass
