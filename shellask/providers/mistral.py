"""Mistral chat-completion client."""

import logging
from typing import List, Optional, TYPE_CHECKING

from shellask.core.client_cache import get_cached_client
from shellask.core.errors import UpstreamError

if TYPE_CHECKING:
    from mistralai import Mistral

logger = logging.getLogger(__name__)

SYSTEM_MESSAGE = (
    "You are a helpful assistant. The user might ask about commands or actions as if you "
    "could run them, but you cannot. Do not refuse by stating inability to execute commands. "
    "Instead, provide instructions, examples, or guidance as if the user will run them themselves."
)


class MistralChat:
    """
    Single-shot completion: one system message, one user message, one answer.

    No conversation state is kept on either side; every call carries the
    full prompt.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "mistral-small-latest",
        use_cache: bool = True,
        client: Optional["Mistral"] = None,
    ):
        """
        Args:
            api_key: Mistral API key (not needed if client is provided)
            model: Model identifier
            use_cache: Reuse a process-wide client for this key/model
            client: Pre-built client (tests)
        """
        if client is not None:
            self.client = client
        elif use_cache and api_key:
            self.client = get_cached_client(api_key, model)
        elif api_key:
            from mistralai import Mistral
            self.client = Mistral(api_key=api_key)
        else:
            raise ValueError("Either api_key or client must be provided")

        self.model = model

    def complete(self, prompt: str) -> str:
        """
        Send `prompt` and return the stripped answer text.

        Raises:
            UpstreamError: On any API failure or an empty answer
        """
        logger.debug("Sending prompt using model '%s' (%d chars)", self.model, len(prompt))
        try:
            response = self.client.chat.complete(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_MESSAGE},
                    {"role": "user", "content": prompt},
                ],
            )
        except Exception as e:
            raise UpstreamError(f"completion request failed: {e}") from e

        choices = getattr(response, "choices", None) or []
        if not choices:
            raise UpstreamError("no response from model")

        content = getattr(choices[0].message, "content", None)
        if isinstance(content, list):
            content = "\n".join(str(getattr(part, "text", part)) for part in content)

        text = ("" if content is None else str(content)).strip()
        if not text:
            raise UpstreamError("empty response from model")
        return text

    def list_models(self) -> List[str]:
        """Model identifiers available to this API key."""
        try:
            response = self.client.models.list()
        except Exception as e:
            raise UpstreamError(f"listing models failed: {e}") from e

        data = getattr(response, "data", None) or []
        return [model.id for model in data]
