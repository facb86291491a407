"""Utility functions."""


def truncate_text(text: str, max_length: int = 1000, suffix: str = "...") -> str:
    """Truncate text to maximum length with suffix."""
    if len(text) <= max_length:
        return text
    return text[: max_length - len(suffix)] + suffix


def plural(count: int, word: str) -> str:
    """`1 package`, `3 packages`."""
    return f"{count} {word}" if count == 1 else f"{count} {word}s"
