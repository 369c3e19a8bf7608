"""
Message chunking for the outbound chat channel.

Telegram rejects messages longer than 4096 characters, so every outbound
text is cut into fixed-width fragments first.  Slicing is purely positional:
no attempt is made to break on words or lines, and nothing is trimmed, so
joining the fragments gives back the original text exactly.
"""

from typing import List

MAX_MESSAGE_LENGTH = 4096


def split_message(text: str, max_length: int = MAX_MESSAGE_LENGTH) -> List[str]:
    """Split ``text`` into ordered fragments of at most ``max_length`` characters.

    Args:
        text: The message to split.  An empty string yields no fragments.
        max_length: Upper bound on the length of each fragment.

    Returns:
        The fragments in order.

    Raises:
        ValueError: If ``max_length`` is not positive.
    """
    if max_length <= 0:
        raise ValueError(f"max_length must be positive, got {max_length}")
    return [text[i:i + max_length] for i in range(0, len(text), max_length)]
