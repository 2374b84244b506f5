"""
Descriptor Normalizer.

Pure functions for Bitcoin output descriptor checksums (BIP-380).
A descriptor handed to Bitcoin Core's importdescriptors must carry its
8-character checksum suffix: normalize() appends one when absent and
leaves an already valid one untouched.
"""

from walletsync.utils.exceptions import InvalidDescriptorError


INPUT_CHARSET = (
    "0123456789()[],'/*abcdefgh@:$%{}"
    "IJKLMNOPQRSTUVWXYZ&+-.;<=>?!^_|~"
    "ijklmnopqrstuvwxyzABCDEFGH`#\"\\ "
)
CHECKSUM_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
CHECKSUM_LENGTH = 8

_GENERATOR = (0xF5DEE51989, 0xA9FDCA3312, 0x1BAB10E32D, 0x3706B1677A, 0x644D626FFD)
_BRACKETS = {")": "(", "]": "[", "}": "{"}


def _polymod(symbols: list[int]) -> int:
    chk = 1
    for value in symbols:
        top = chk >> 35
        chk = ((chk & 0x7FFFFFFFF) << 5) ^ value
        for i in range(5):
            if (top >> i) & 1:
                chk ^= _GENERATOR[i]
    return chk


def _expand(descriptor: str) -> list[int]:
    """Map descriptor characters to checksum symbols."""
    symbols: list[int] = []
    groups: list[int] = []
    for position, char in enumerate(descriptor):
        value = INPUT_CHARSET.find(char)
        if value < 0:
            # Never echo the character: it sits inside key material
            raise InvalidDescriptorError(
                f"Descriptor contains an invalid character at position {position}"
            )
        symbols.append(value & 31)
        groups.append(value >> 5)
        if len(groups) == 3:
            symbols.append(groups[0] * 9 + groups[1] * 3 + groups[2])
            groups = []
    if len(groups) == 1:
        symbols.append(groups[0])
    elif len(groups) == 2:
        symbols.append(groups[0] * 3 + groups[1])
    return symbols


def descriptor_checksum(descriptor: str) -> str:
    """
    Compute the checksum of a descriptor without a '#' suffix.

    Args:
        descriptor: Descriptor body

    Returns:
        8-character checksum

    Raises:
        InvalidDescriptorError: If the descriptor has characters outside the charset
    """
    symbols = _expand(descriptor) + [0] * CHECKSUM_LENGTH
    checksum = _polymod(symbols) ^ 1
    return "".join(
        CHECKSUM_CHARSET[(checksum >> (5 * (CHECKSUM_LENGTH - 1 - i))) & 31]
        for i in range(CHECKSUM_LENGTH)
    )


def split_checksum(descriptor: str) -> tuple[str, str | None]:
    """
    Split a descriptor into body and checksum.

    Examples:
        >>> split_checksum("raw(deadbeef)#89f8spxm")
        ('raw(deadbeef)', '89f8spxm')
        >>> split_checksum("raw(deadbeef)")
        ('raw(deadbeef)', None)
    """
    if "#" not in descriptor:
        return descriptor, None
    body, checksum = descriptor.rsplit("#", 1)
    return body, checksum


def has_valid_checksum(descriptor: str) -> bool:
    """
    Check whether a descriptor ends in a valid checksum suffix.

    Args:
        descriptor: Descriptor, possibly with '#checksum'

    Returns:
        True if the suffix is present and matches the body
    """
    body, checksum = split_checksum(descriptor)
    if checksum is None or len(checksum) != CHECKSUM_LENGTH:
        return False
    if any(c not in CHECKSUM_CHARSET for c in checksum):
        return False
    try:
        symbols = _expand(body)
    except InvalidDescriptorError:
        return False
    symbols += [CHECKSUM_CHARSET.find(c) for c in checksum]
    return _polymod(symbols) == 1


def _check_syntax(body: str) -> None:
    if not body or not body.strip():
        raise InvalidDescriptorError("Descriptor is empty")

    head, sep, _ = body.partition("(")
    # multi_a / sortedmulti_a carry an underscore
    if not sep or not head.replace("_", "").isalnum() or not body.endswith(")"):
        raise InvalidDescriptorError(
            "Descriptor must have the form function(...), e.g. wpkh(...)"
        )

    stack: list[str] = []
    for char in body:
        if char in "([{":
            stack.append(char)
        elif char in _BRACKETS:
            if not stack or stack.pop() != _BRACKETS[char]:
                raise InvalidDescriptorError("Descriptor has unbalanced brackets")
    if stack:
        raise InvalidDescriptorError("Descriptor has unbalanced brackets")


def normalize(raw: str) -> str:
    """
    Ensure a descriptor carries a valid checksum suffix.

    Deterministic and idempotent: normalize(normalize(d)) == normalize(d).

    Args:
        raw: Descriptor with or without '#checksum'

    Returns:
        Descriptor in canonical 'descriptor#checksum' form

    Raises:
        InvalidDescriptorError: Malformed syntax, invalid characters, or a
            '#' suffix that is not a valid checksum
    """
    raw = raw.strip() if raw else ""
    body, checksum = split_checksum(raw)
    _check_syntax(body)

    if checksum is not None:
        if has_valid_checksum(raw):
            return raw
        raise InvalidDescriptorError("Descriptor checksum does not match its body")

    return f"{body}#{descriptor_checksum(body)}"
