"""
Decoding of percent-encoded names in the public map feeds.
"""

from __future__ import annotations

from urllib.parse import unquote_plus

# Applied in order when strict decoding fails (e.g. truncated UTF-8)
_MANUAL_REPLACEMENTS: tuple[tuple[str, str], ...] = (
    ("%7C", "|"),
    ("%7E", "~"),
    ("%5B", "["),
    ("%5D", "]"),
    ("%20", " "),
    ("%3A", ":"),
    ("%2C", ","),
    ("%2F", "/"),
    ("%3F", "?"),
    ("%23", "#"),
    ("%26", "&"),
    ("%3D", "="),
    ("%21", "!"),
    ("%C3%A1", "á"),
    ("%C3%A9", "é"),
    ("%C3%AD", "í"),
    ("%C3%B3", "ó"),
    ("%C3%BA", "ú"),
    ("%C3%B1", "ñ"),
    ("%C3%A0", "à"),
    ("%C3%A8", "è"),
    ("%C3%AC", "ì"),
    ("%C3%B2", "ò"),
    ("%C3%B9", "ù"),
    ("%C3%A7", "ç"),
)


def decode_game_text(text: str) -> str:
    """
    Decode a feed name field.

    Names are form-encoded: "+" is a space and everything else is
    percent-encoded UTF-8. If the bytes do not decode, a table of common
    punctuation and accented characters is substituted instead.

    Examples:
        >>> decode_game_text("Los+Conquistadores")
        'Los Conquistadores'
        >>> decode_game_text("%5BTAG%5D+Jos%C3%A9")
        '[TAG] José'
    """
    if not text:
        return text

    try:
        return unquote_plus(text, errors="strict")
    except UnicodeDecodeError:
        pass

    decoded = text.replace("+", " ")
    for encoded, char in _MANUAL_REPLACEMENTS:
        decoded = decoded.replace(encoded, char)
    # %2B last so a literal plus is not turned into a space above
    return decoded.replace("%2B", "+")
