"""HTTP helpers with cross-platform TLS guidance."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import requests


DEFAULT_USER_AGENT = "typsmith-package-fetcher"


class TLSCertificateError(requests.exceptions.SSLError):
    """Raised when TLS certificate verification fails during downloads."""


def _tls_help(url: str) -> str:
    return (
        "TLS certificate verification failed while downloading "
        f"'{url}'. On macOS run the Python 'Install Certificates.command' "
        "(from the python.org installer). On Windows run 'py -m pip install --upgrade certifi'. "
        "On Linux install your 'ca-certificates' package (apt/yum/apk). "
        "Also check system date/time and any proxy or corporate SSL inspection."
    )


def create_session(user_agent: str | None = None) -> requests.Session:
    """Return a session carrying the typsmith user agent."""
    session = requests.Session()
    session.headers["User-Agent"] = user_agent or DEFAULT_USER_AGENT
    return session


def fetch_bytes(
    session: Any,
    url: str,
    *,
    headers: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> bytes:
    """Download ``url`` fully into memory.

    Non-2xx responses raise :class:`requests.HTTPError`; certificate failures
    are re-raised as :class:`TLSCertificateError` with platform guidance.
    """
    try:
        response = session.get(url, headers=dict(headers or {}), timeout=timeout)
        response.raise_for_status()
        return response.content
    except requests.exceptions.SSLError as exc:
        raise TLSCertificateError(_tls_help(url)) from exc


__all__ = ["DEFAULT_USER_AGENT", "TLSCertificateError", "create_session", "fetch_bytes"]
