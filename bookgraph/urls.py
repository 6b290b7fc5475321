# -*- coding: utf-8 -*-
"""Canonical URL forms used as deduplication keys."""
from dataclasses import dataclass
from typing import Optional, Tuple
from urllib.parse import urlsplit, urlunsplit

DEFAULT_PORTS = {"http": "80", "https": "443"}


class UrlError(ValueError):
    """Raised when a string is not an absolute URL with a scheme and a host."""


@dataclass
class NormalizationPolicy:
    ignore_protocol: bool = True
    ignore_www: bool = True
    normalize_path: bool = True
    ignore_query_params: bool = True
    ignore_fragment: bool = True
    case_sensitive: bool = False


def split_netloc(netloc: str) -> Tuple[str, str, str]:
    userinfo = ""
    hostport = netloc
    if "@" in hostport:
        userinfo, hostport = hostport.rsplit("@", 1)
    port = ""
    if hostport.startswith("["):
        end = hostport.find("]")
        if end != -1 and hostport[end + 1 :].startswith(":"):
            hostport, port = hostport[: end + 1], hostport[end + 2 :]
    elif ":" in hostport:
        hostport, port = hostport.rsplit(":", 1)
    return userinfo, hostport.lower(), port


def canonicalize(url: str, policy: Optional[NormalizationPolicy] = None) -> str:
    if policy is None:
        policy = NormalizationPolicy()
    try:
        parsed = urlsplit((url or "").strip())
    except ValueError as exc:
        raise UrlError(f"cannot parse {url!r}: {exc}") from exc
    scheme = parsed.scheme.lower()
    if not scheme or not parsed.netloc:
        raise UrlError(f"not an absolute URL: {url!r}")
    userinfo, host, port = split_netloc(parsed.netloc)
    if not host:
        raise UrlError(f"missing host: {url!r}")
    if port and DEFAULT_PORTS.get(scheme) == port:
        port = ""

    if policy.ignore_protocol:
        scheme = "http"
    # Default ports of the forced scheme go too.
    if port and DEFAULT_PORTS.get(scheme) == port:
        port = ""
    while policy.ignore_www and host.startswith("www.") and len(host) > 4:
        host = host[4:]

    path = parsed.path
    if policy.normalize_path:
        path = path.rstrip("/")
    if not path:
        path = "/"

    query = "" if policy.ignore_query_params else parsed.query
    fragment = "" if policy.ignore_fragment else parsed.fragment

    netloc = host
    if port:
        netloc = f"{netloc}:{port}"
    if userinfo:
        netloc = f"{userinfo}@{netloc}"
    canonical = urlunsplit((scheme, netloc, path, query, fragment))
    if not policy.case_sensitive:
        canonical = canonical.lower()
    return canonical
