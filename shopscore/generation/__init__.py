from shopscore.generation.client import (
    GenerationClient, GenerationError, MissingCredentialError, OpenAIGenerationClient, fetch_headline,
)

__all__ = [
    "GenerationClient", "GenerationError", "MissingCredentialError",
    "OpenAIGenerationClient", "fetch_headline",
]
