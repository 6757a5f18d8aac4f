"""
Key utility functions for displaying provider credentials safely.
"""

VISIBLE_SUFFIX_LEN = 4


def mask_key(raw: str) -> str:
    """
    Mask an API key for display, keeping only the last 4 characters.

    Keys of 4 characters or fewer are masked entirely so that short values are
    never shown in full.
    """
    if not raw:
        return ""
    if len(raw) <= VISIBLE_SUFFIX_LEN:
        return "*" * len(raw)
    return "*" * (len(raw) - VISIBLE_SUFFIX_LEN) + raw[-VISIBLE_SUFFIX_LEN:]
