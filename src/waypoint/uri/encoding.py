"""Percent-encoding for expanded template values.

Uses stdlib ``urllib.parse.quote``. Encoding is done with
``errors="surrogatepass"`` so lone surrogates and other malformed text
are escaped byte-for-byte instead of raising.
"""

from urllib.parse import quote

# RFC 3986 section 2.2. Unreserved characters (ALPHA / DIGIT / "-._~")
# are always kept by ``quote``.
RESERVED = ":/?#[]@!$&'()*+,;="


def encode_component(value: str) -> str:
    """Encode everything except unreserved characters."""
    return quote(value, safe="", errors="surrogatepass")


def encode_reserved(value: str) -> str:
    """Encode everything except unreserved and reserved characters."""
    return quote(value, safe=RESERVED, errors="surrogatepass")


def encode_value(value: str, *, allow_reserved: bool) -> str:
    if allow_reserved:
        return encode_reserved(value)
    return encode_component(value)
