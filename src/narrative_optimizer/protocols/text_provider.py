"""Text provider protocol.

The remote generative text provider is an external collaborator; this
package only consumes it through this interface.
"""

from typing import Any, Protocol, runtime_checkable

from narrative_optimizer.models import ProviderResult


@runtime_checkable
class TextProvider(Protocol):
    """Protocol for text-generation providers.

    Implementations raise ``ProviderError`` for network, auth or quota
    failures. Retry and backoff are the implementation's concern.
    """

    async def generate(self, prompt: str, context: dict[str, Any]) -> ProviderResult:
        """Generate narrative content for a prompt.

        Args:
            prompt: The (possibly compressed) prompt
            context: Request context (preferences, choice limit, caller data)

        Returns:
            Content, raw choices and token usage
        """
        ...
