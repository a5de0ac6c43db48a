"""
Helpers for deriving the usage-tracking group id from the page a post was read on.
"""

import re
from urllib.parse import urlsplit

DEFAULT_GROUP_ID = "facebook.com"

_GROUP_PATH = re.compile(r"/groups/([^/?#]+)")


def resolve_group_id(page_url: str) -> str:
    """
    Map a page URL to the group id used to scope usage recency.

    Args:
        page_url: URL of the page the post was read from; may be empty.

    Returns:
        "facebook.com/groups/<id>" for group pages, the URL without its query
        string for other facebook.com pages, and "facebook.com" otherwise.
    """
    url = (page_url or "").strip()
    if "facebook.com" not in url:
        return DEFAULT_GROUP_ID

    match = _GROUP_PATH.search(url)
    if match:
        return f"facebook.com/groups/{match.group(1)}"

    parts = urlsplit(url)
    if not parts.scheme:
        return url.split("?", 1)[0]
    return f"{parts.scheme}://{parts.netloc}{parts.path}"
