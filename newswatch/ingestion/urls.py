"""URL canonicalization for dedup keys."""

from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

TRACKING_PARAMS = frozenset(
    {
        "gclid",
        "fbclid",
        "mc_cid",
        "mc_eid",
        "igshid",
        "ref",
        "ref_src",
    }
)

DEFAULT_PORTS = {"http": 80, "https": 443}


def _is_tracker(name: str) -> bool:
    return name.startswith("utm_") or name in TRACKING_PARAMS


def normalize_url(raw: str) -> str:
    """
    Canonicalize an article URL.

    Lower-cases the host, strips default ports, removes tracking parameters,
    sorts the remaining query parameters by name, drops the fragment and every
    trailing slash on a non-root path, so ``/a//`` and ``/a/`` both become
    ``/a``. Anything that does not parse as an http(s) URL with a host is
    returned unchanged.
    """
    try:
        parts = urlsplit(raw.strip())
        scheme = parts.scheme.lower()
        host = parts.hostname
        port = parts.port
    except (AttributeError, ValueError):
        return raw

    if scheme not in DEFAULT_PORTS or not host:
        return raw

    if ":" in host:
        host = f"[{host}]"
    netloc = host
    if port is not None and port != DEFAULT_PORTS[scheme]:
        netloc = f"{host}:{port}"
    if "@" in parts.netloc:
        userinfo = parts.netloc.rpartition("@")[0]
        netloc = f"{userinfo}@{netloc}"

    params = [
        (name, value)
        for name, value in parse_qsl(parts.query, keep_blank_values=True)
        if not _is_tracker(name)
    ]
    # sorted() is stable, so repeated names keep their relative order
    query = urlencode(sorted(params, key=lambda kv: kv[0]))

    path = parts.path.rstrip("/") or "/"

    return urlunsplit((scheme, netloc, path, query, ""))


def amp_variant(url: str) -> Optional[str]:
    """Return the ``/amp`` path variant of ``url``, or None if it already is one."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None

    path = parts.path.rstrip("/")
    if path.endswith("/amp"):
        return None
    return urlunsplit((parts.scheme, parts.netloc, f"{path}/amp", parts.query, ""))


def host_of(url: str) -> Optional[str]:
    """Lower-cased host without a leading ``www.``, or None."""
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return None
    if not host:
        return None
    if host.startswith("www."):
        host = host[4:]
    return host
