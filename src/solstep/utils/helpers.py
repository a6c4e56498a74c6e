"""
Miscellaneous helper functions for solstep.
"""

from typing import Iterable, List, Optional

from eth_utils import remove_0x_prefix, to_checksum_address
from hexbytes import HexBytes

WORD_SIZE = 32
WORD_HEX_LENGTH = WORD_SIZE * 2
ADDRESS_HEX_LENGTH = 40


def normalize_word(value) -> str:
    """
    Bring a stack word to its fixed-width form: 64 lowercase hex chars, no prefix.

    Geth returns stack entries either zero-padded or minimal (``0x1``); web3
    sometimes hands them over as HexBytes or ints.
    """
    if isinstance(value, int):
        return format(value, 'x').zfill(WORD_HEX_LENGTH)
    if isinstance(value, (bytes, bytearray, HexBytes)):
        value = HexBytes(value).hex()
    value = remove_0x_prefix(str(value)).lower()
    return value.zfill(WORD_HEX_LENGTH)


def extract_address_from_word(word: str, checksum: bool = False) -> str:
    """
    Extract an address from a stack word: its low 20 bytes.

    Args:
        word: Stack word as a hex string (with or without 0x prefix)
        checksum: Return the EIP-55 checksummed form instead of lowercase

    Returns:
        ``0x`` followed by the last 40 hex characters of the word
    """
    address = '0x' + normalize_word(word)[-ADDRESS_HEX_LENGTH:]
    if checksum:
        return to_checksum_address(address)
    return address


def dedupe(values: Iterable[str]) -> List[str]:
    """Drop repeated values, keeping first-seen order."""
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def format_address_display(address: Optional[str], short: bool = True) -> str:
    """Format an address for log output."""
    if not address:
        return "<unknown>"
    if short and len(address) > 10:
        # 0x1234...5678
        return f"{address[:6]}...{address[-4:]}"
    return address
