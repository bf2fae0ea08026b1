"""
Link code derivation and verification.

Codes are derived from ``world|username|secret`` with a djb2-style hash and
mapped onto an unambiguous alphabet. The Discord bot runs the same derivation,
so a code can be checked here without any round trip to the bot and without
storing per-code secrets.
"""

from typing import Optional

CODE_LENGTH = 6
CHARSET = "123456789ABCDEFGHJKMNPQRSTUVWXYZ"
SEPARATOR = "|"

_HASH_SEED = 5381
_UINT32_MASK = 0xFFFFFFFF


def _code_units(text: str):
    """Yield the UTF-16 code units of ``text``.

    The bot hashes JavaScript string code units, so characters outside the
    BMP must contribute their surrogate pair rather than one code point.
    """
    raw = text.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(raw), 2):
        yield raw[i] | (raw[i + 1] << 8)


def simple_hash(text: str) -> int:
    """Return the unsigned 32-bit djb2 (xor variant) hash of ``text``."""
    value = _HASH_SEED
    for unit in _code_units(text):
        value = ((value * 33) ^ unit) & _UINT32_MASK
    return value


def build_message(world_name: str, username: str, secret_key: str) -> str:
    return SEPARATOR.join((world_name, username, secret_key))


def derive_code(world_name: str, username: str, secret_key: str) -> str:
    """
    Derive the link code a player must enter.

    Args:
        world_name: World identifier shared with the bot
        username: Player's in-world username
        secret_key: Secret key shared with the bot

    Returns:
        Uppercase code of ``CODE_LENGTH`` characters from ``CHARSET``
    """
    value = simple_hash(build_message(world_name, username, secret_key))
    symbols = []
    for _ in range(CODE_LENGTH):
        symbols.append(CHARSET[value % len(CHARSET)])
        value //= len(CHARSET)
    return "".join(symbols)


def normalize_code(code: Optional[str]) -> str:
    """Uppercase a submitted code for comparison and ledger keys."""
    if not code:
        return ""
    return str(code).upper()


def verify_code(input_code: Optional[str], username: str, world_name: str, secret_key: str) -> bool:
    """Check a submitted code against the expected one (case-insensitive)."""
    return normalize_code(input_code) == derive_code(world_name, username, secret_key)


__all__ = [
    "CHARSET",
    "CODE_LENGTH",
    "derive_code",
    "normalize_code",
    "simple_hash",
    "verify_code",
]
