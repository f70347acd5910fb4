"""Citation URL helpers: domain extraction and normalization."""

from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

# Query parameters that only carry tracking information
_TRACKING_PARAMS = {"ref", "fbclid", "gclid"}


def extract_domain(url: str) -> str:
    """Extract domain from URL, stripping www. prefix."""
    try:
        domain = urlparse(url.strip()).hostname or ""
    except ValueError:
        return ""
    domain = domain.lower()
    if domain.startswith("www."):
        domain = domain[4:]
    return domain


def normalize_url(url: str) -> str:
    """Canonical form used to key citation URLs.

    Lowercases scheme and host, drops the fragment and tracking parameters
    (utm_*, ref, fbclid, gclid) and strips a trailing slash. The path keeps
    its case. Unparseable input is returned stripped.
    """
    raw = url.strip()
    try:
        parsed = urlparse(raw)
    except ValueError:
        return raw
    if not parsed.scheme or not parsed.netloc:
        return raw

    query = [
        (k, v)
        for k, v in parse_qsl(parsed.query, keep_blank_values=True)
        if not k.lower().startswith("utm_") and k.lower() not in _TRACKING_PARAMS
    ]
    path = parsed.path
    if len(path) > 1 and path.endswith("/"):
        path = path.rstrip("/")
    if not path:
        path = "/"

    return urlunparse((parsed.scheme.lower(), parsed.netloc.lower(), path, parsed.params, urlencode(query), ""))


def unique_urls(citations: list | None) -> list[str]:
    """Deduplicate a citation list, keeping first-seen order.

    Entries may be plain URL strings or dicts with a ``url``/``link`` key.
    """
    seen: set[str] = set()
    urls: list[str] = []
    for item in citations or []:
        if isinstance(item, dict):
            item = item.get("url") or item.get("link") or ""
        if not isinstance(item, str):
            continue
        url = item.strip()
        if url.startswith(("http://", "https://")) and url not in seen:
            seen.add(url)
            urls.append(url)
    return urls


def normalized_citation_urls(citations: list | None) -> list[str]:
    """Like ``unique_urls`` but deduplicated on the normalized form."""
    seen: set[str] = set()
    urls: list[str] = []
    for url in unique_urls(citations):
        key = normalize_url(url)
        if key not in seen:
            seen.add(key)
            urls.append(key)
    return urls
