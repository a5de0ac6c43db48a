"""
Builds reply messages from template bodies and link placeholders.
"""

import re
from typing import Optional

URL_PLACEHOLDER = "{url}"
SITE_PLACEHOLDER = "{site}"
SITE_FALLBACK_PHRASE = "our website"

_TRAILING_URL = re.compile(r"https?://\S+$")


def resolve_url(template_url: Optional[str], default_url: Optional[str]) -> str:
    """
    Pick the link for a suggestion; the template's own URL wins over the default.
    """
    return (template_url or default_url or "").strip()


def ends_with_url(text: str) -> bool:
    return bool(_TRAILING_URL.search(text.strip()))


def build_reply(text: str, url: str = "") -> str:
    """
    Render a suggestion by resolving link placeholders.

    Only the first applicable step runs:
        1) replace every {url} with the URL;
        2) otherwise replace every {site} with the URL, or a generic phrase
           when no URL is available;
        3) otherwise append the URL after a single space unless the text
           already contains it or ends with another URL.

    Args:
        text: Template body or variant text.
        url: Resolved link (see `resolve_url`); may be empty.

    Returns:
        The rendered text. Rendering already-resolved text again is a no-op.
    """
    if URL_PLACEHOLDER in text:
        return text.replace(URL_PLACEHOLDER, url)

    if SITE_PLACEHOLDER in text:
        return text.replace(SITE_PLACEHOLDER, url or SITE_FALLBACK_PHRASE)

    if url and url not in text and not ends_with_url(text):
        return f"{text.strip()} {url}"

    return text
