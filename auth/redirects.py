"""Post sign-in/sign-out redirect validation."""

from __future__ import annotations

from urllib.parse import urljoin, urlsplit

_DEFAULT_PORTS = {"http": 80, "https": 443}


def _origin(url: str) -> tuple[str, str, int | None] | None:
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        return None
    scheme = parts.scheme.lower()
    if scheme not in _DEFAULT_PORTS or not parts.hostname:
        return None
    return scheme, parts.hostname.lower(), port or _DEFAULT_PORTS[scheme]


def _has_control_chars(url: str) -> bool:
    # urlsplit drops tab/CR/LF before parsing, so "/\t/host" would become "//host"
    return any(ord(char) < 0x20 or ord(char) == 0x7F for char in url)


def _is_path_relative(url: str) -> bool:
    # "//host" and "/\host" are treated by browsers as protocol-relative
    return url.startswith("/") and not url.startswith(("//", "/\\"))


def resolve_redirect(requested_url: str | None, base_url: str, allowed_app_url: str) -> str:
    """Pick a safe destination for a post-authentication redirect.

    Same-origin absolute URLs pass through, path-relative URLs are resolved
    against ``base_url`` and everything else falls back to the app URL.
    URLs containing control characters are never followed.
    """
    if not requested_url or _has_control_chars(requested_url):
        return allowed_app_url

    allowed_origin = _origin(allowed_app_url)
    requested_origin = _origin(requested_url)
    if requested_origin is not None and requested_origin == allowed_origin:
        return requested_url

    if _is_path_relative(requested_url):
        resolved = urljoin(base_url, requested_url)
        if _origin(resolved) is not None and _origin(resolved) == _origin(base_url):
            return resolved

    return allowed_app_url
