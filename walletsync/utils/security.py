"""
Security utilities for masking sensitive data in logs.

Provides functions to safely mask sensitive information like:
- Descriptors and seed phrases
- Passwords and cookies
- Host error messages that may echo key material
"""

import re
from collections.abc import Iterable


REDACTED = "***"

# Separators inside descriptors around key expressions
_DESCRIPTOR_SEPARATORS = re.compile(r"[()\[\],/#]")


def mask_sensitive(value: str | None, show_chars: int = 4) -> str:
    """
    Mask sensitive string (keys, passwords, etc).

    Args:
        value: Sensitive value to mask
        show_chars: Number of characters to show at start and end

    Returns:
        Masked value or '***' if too short

    Examples:
        >>> mask_sensitive("my_secret_key_1234567890", show_chars=4)
        'my_s...7890'
        >>> mask_sensitive("short")
        '***'
        >>> mask_sensitive(None)
        '***'
    """
    if not value or len(value) <= show_chars * 2:
        return REDACTED
    return f"{value[:show_chars]}...{value[-show_chars:]}"


def mask_descriptor(descriptor: str | None) -> str:
    """
    Mask descriptor for logging, keeping only the script function.

    Examples:
        >>> mask_descriptor("wpkh(tprv8ZgxMBicQKsPd.../84h/1h/0h/0/*)#abcdefgh")
        'wpkh(***)'
        >>> mask_descriptor(None)
        '***'
    """
    if not descriptor or "(" not in descriptor:
        return REDACTED
    return f"{descriptor.split('(', 1)[0]}({REDACTED})"


def redact_secrets(message: str, secrets: Iterable[str | None]) -> str:
    """
    Remove every occurrence of the given secrets from a message.

    Host error messages can echo request parameters, so anything built
    from host text goes through here before it is logged or raised.
    Each secret is also redacted without its '#checksum' suffix and word
    by word for mnemonics.

    Args:
        message: Message to clean
        secrets: Secret values (None and empty values are ignored)

    Returns:
        Message with secrets replaced by '***'
    """
    fragments: set[str] = set()
    for secret in secrets:
        if not secret:
            continue
        fragments.add(secret)
        if "#" in secret:
            fragments.add(secret.rsplit("#", 1)[0])
        if "(" in secret:
            # Key expressions inside descriptors
            for part in _DESCRIPTOR_SEPARATORS.split(secret):
                if len(part) >= 16:
                    fragments.add(part)
        words = secret.split()
        if len(words) > 1:
            fragments.update(words)

    # Longest first so a fragment never leaves part of a longer one behind
    for fragment in sorted(fragments, key=len, reverse=True):
        message = message.replace(fragment, REDACTED)
    return message
