"""
User-Agent reduction to a browser summary.

Raw User-Agent strings are never stored. A view keeps only
"{browser} {version}", e.g. "Firefox 121.0" or "Chrome 120.0.0.0".

User-Agents are notoriously messy (Chrome claims to be Mozilla, Safari,
and Chrome all at once), so specific browsers are checked before the
generic ones they imitate.
"""

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class BrowserInfo:
    """
    Parsed browser information.

    Attributes:
        name: Browser family name (Chrome, Firefox, Safari, etc.), "" if unknown
        version: Version string as reported by the agent (or None)
    """
    name: str = ""
    version: str | None = None

    @property
    def summary(self) -> str:
        """Collapse to the stored "{name} {version}" form."""
        if not self.name:
            return ""
        if not self.version:
            return self.name
        return f"{self.name} {self.version}"


# =============================================================================
# BROWSER DETECTION PATTERNS
# =============================================================================
# Order matters! Check specific browsers before generic ones.
# Each tuple: (pattern with optional version group, browser_name)

_VERSION = r"(\d+(?:\.\d+)*)"

BROWSER_PATTERNS = [
    # Chromium-based browsers (check before Chrome)
    (rf"Edg(?:e|A|iOS)?/{_VERSION}", "Edge"),
    (rf"OPR/{_VERSION}", "Opera"),
    (rf"Opera.*Version/{_VERSION}", "Opera"),
    (rf"Vivaldi/{_VERSION}", "Vivaldi"),
    (rf"SamsungBrowser/{_VERSION}", "Samsung Internet"),
    (rf"YaBrowser/{_VERSION}", "Yandex"),
    (rf"UCBrowser/{_VERSION}", "UC Browser"),

    # Firefox variants
    (rf"Firefox/{_VERSION}", "Firefox"),
    (rf"FxiOS/{_VERSION}", "Firefox"),

    # Chrome variants (after other Chromium browsers)
    (rf"CriOS/{_VERSION}", "Chrome"),
    (rf"Chromium/{_VERSION}", "Chromium"),
    (rf"Chrome/{_VERSION}", "Chrome"),

    # Safari (must come after Chrome which also contains Safari)
    (rf"Version/{_VERSION}.*Safari", "Safari"),
    (rf"Safari/{_VERSION}", "Safari"),

    # IE and legacy
    (rf"MSIE {_VERSION}", "Internet Explorer"),
    (rf"Trident.*rv:{_VERSION}", "Internet Explorer"),

    # Crawlers and tools still count as agents
    (rf"Googlebot/{_VERSION}", "Googlebot"),
    (rf"bingbot/{_VERSION}", "Bingbot"),
    (rf"curl/{_VERSION}", "curl"),
    (rf"Wget/{_VERSION}", "Wget"),
]


def parse_browser(user_agent: str | None) -> BrowserInfo:
    """
    Detect browser name and version from a User-Agent string.

    Unrecognised agents give an empty BrowserInfo; this never raises.
    """
    if not user_agent or not user_agent.strip():
        return BrowserInfo()

    for pattern, browser_name in BROWSER_PATTERNS:
        match = re.search(pattern, user_agent, re.IGNORECASE)
        if match:
            return BrowserInfo(name=browser_name, version=match.group(1))

    return BrowserInfo()


def summarize_user_agent(user_agent: str | None) -> str:
    """
    Reduce a User-Agent header to the stored summary.

    Examples:
        >>> summarize_user_agent("Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0")
        'Firefox 121.0'
        >>> summarize_user_agent("")
        ''
    """
    return parse_browser(user_agent).summary
