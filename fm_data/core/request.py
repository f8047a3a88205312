"""
fm_data.core.request - Request description consumed by the client
==================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import quote

JSON_CONTENT_TYPE = "application/json"

DATA_API_PREFIX = "fmi/data"


def path_segment(value: Any) -> str:
    """Percent-encode one URL path segment (slashes included)."""
    return quote(str(value), safe="")


def api_path(version: str, *segments: Any) -> str:
    """
    Build a versioned Data API path.

    >>> api_path("vLatest", "databases", "My DB", "sessions")
    'fmi/data/vLatest/databases/My%20DB/sessions'
    """
    parts = [DATA_API_PREFIX, path_segment(version)]
    parts.extend(path_segment(s) for s in segments)
    return "/".join(parts)


def bearer_header(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@dataclass(frozen=True)
class RequestSpec:
    """
    One HTTP call to make against the Data API.

    Parameters
    ----------
    method : str
        HTTP method
    path : str
        Path relative to the client's base URL, e.g. from ``api_path``
    params : dict, optional
        Query parameters
    headers : dict, optional
        Extra headers; merged over the client's defaults
    body : Any, optional
        ``str``/``bytes`` sent as-is, anything else JSON-encoded
    content_type : str
        Content-Type for ``body`` (ignored for multipart ``files``)
    auth : tuple, optional
        ``(username, password)`` for HTTP Basic
    files : dict, optional
        Multipart parts, passed through to ``requests``
    """
    method: str
    path: str
    params: Mapping[str, str] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Any = None
    content_type: str = JSON_CONTENT_TYPE
    auth: Optional[Tuple[str, str]] = None
    files: Optional[Mapping[str, Any]] = None

    def with_headers(self, **headers: str) -> "RequestSpec":
        merged = dict(self.headers)
        merged.update(headers)
        return replace(self, headers=merged)

    def with_bearer(self, token: str) -> "RequestSpec":
        merged = dict(self.headers)
        merged.update(bearer_header(token))
        return replace(self, headers=merged)

    def __repr__(self) -> str:
        # never echo credentials
        auth = "basic" if self.auth else None
        return (
            f"RequestSpec(method={self.method!r}, path={self.path!r}, "
            f"params={dict(self.params)!r}, auth={auth!r})"
        )
