"""
Referrer reduction for privacy.

Only the hostname of a referrer is ever stored. Scheme, port, path,
query string and fragment are dropped, so a referrer like

    https://example.com/search?q=private+terms

is recorded as "example.com".
"""

import re
from urllib.parse import urlparse

_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")


def referrer_host(referrer: str | None) -> str:
    """
    Reduce a referrer URL to its hostname.

    Args:
        referrer: Raw referrer value (usually document.referrer or the Referer header)

    Returns:
        Lowercased hostname, or "" for empty or malformed input

    Examples:
        >>> referrer_host("https://example.com/foo?x=1")
        'example.com'
        >>> referrer_host("not a url")
        ''
        >>> referrer_host("about:blank")
        ''
    """
    if not referrer or not referrer.strip():
        return ""

    value = referrer.strip()
    scheme = _SCHEME.match(value)
    if scheme:
        # about:, javascript:, mailto:, data: and friends have no host
        if not value[scheme.end():].startswith("//"):
            return ""
    elif not value.startswith("//"):
        # Bare "host/path" values still carry a hostname
        value = "//" + value

    try:
        hostname = urlparse(value).hostname
    except ValueError:
        return ""

    if not hostname or " " in hostname:
        return ""
    return hostname
