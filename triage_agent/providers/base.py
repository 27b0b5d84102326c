"""
Abstract base class for LLM completion providers.

The agent treats the model as a black box with two capabilities: free-text
completion and schema-constrained structured completion.
"""

from abc import ABC, abstractmethod
from typing import TypeVar

from pydantic import BaseModel

ModelT = TypeVar("ModelT", bound=BaseModel)


class LLMProvider(ABC):
    """Abstract base class for LLM completion providers."""

    @abstractmethod
    async def complete(self, system_prompt: str, prompt: str) -> str:
        """Generate free-form text.

        Args:
            system_prompt: Instructions establishing the model's role
            prompt: User prompt with the material to work on

        Returns:
            The model's reply as plain text.
        """
        pass

    @abstractmethod
    async def complete_structured(
        self,
        system_prompt: str,
        prompt: str,
        schema: type[ModelT],
    ) -> ModelT:
        """Generate a value conforming to ``schema``.

        Args:
            system_prompt: Instructions establishing the model's role
            prompt: User prompt with the material to work on
            schema: Pydantic model describing the required result shape

        Returns:
            An instance of ``schema``.

        Raises:
            InvalidGenerationError: If the reply does not validate against the schema.
        """
        pass
