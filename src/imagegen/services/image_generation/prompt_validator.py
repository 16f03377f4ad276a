"""Prompt validation for image generation.

Validates text prompts before a generation record is created.
"""

DEFAULT_MAX_PROMPT_LENGTH = 2000


def validate_prompt(prompt: str, max_length: int = DEFAULT_MAX_PROMPT_LENGTH) -> str:
    """Validate prompt text for image generation.

    Args:
        prompt: Text prompt from the client
        max_length: Maximum accepted length after stripping whitespace

    Returns:
        Prompt with surrounding whitespace removed

    Raises:
        ValueError: If prompt is not a string, empty, whitespace-only, or too long
    """
    if not isinstance(prompt, str):
        raise ValueError(f"Prompt must be a string, got {type(prompt).__name__}")

    prompt = prompt.strip()
    if not prompt:
        raise ValueError("Prompt cannot be empty")

    if len(prompt) > max_length:
        raise ValueError(
            f"Prompt exceeds maximum length of {max_length} characters (got {len(prompt)})"
        )

    return prompt
