"""Resolution of Typst packages into a local on-disk cache."""

from __future__ import annotations

from dataclasses import dataclass
import gzip
import io
from pathlib import Path
import re
import shutil
import tarfile
from threading import Lock
from typing import Any
import zlib

import requests

from .diagnostics import DiagnosticEmitter, NullEmitter
from .exceptions import MalformedArchiveError, NetworkFailedError
from .http import create_session, fetch_bytes


DEFAULT_REGISTRY = "https://packages.typst.org"

_SPEC_PATTERN = re.compile(
    r"^@(?P<namespace>[A-Za-z0-9_-]+)/(?P<name>[A-Za-z0-9_-]+):(?P<version>\d+\.\d+\.\d+)$"
)


@dataclass(frozen=True, slots=True)
class PackageSpec:
    """Identify a versioned package such as ``@preview/cetz:0.2.2``."""

    namespace: str
    name: str
    version: str

    @classmethod
    def parse(cls, value: str) -> PackageSpec:
        """Parse the ``@namespace/name:version`` notation used by Typst imports."""
        match = _SPEC_PATTERN.match(value.strip())
        if match is None:
            raise ValueError(f"invalid package specification: {value!r}")
        return cls(match["namespace"], match["name"], match["version"])

    @property
    def subdir(self) -> Path:
        return Path(self.namespace) / self.name / self.version

    @property
    def archive_name(self) -> str:
        return f"{self.name}-{self.version}.tar.gz"

    def __str__(self) -> str:
        return f"@{self.namespace}/{self.name}:{self.version}"


class PackageCache:
    """Download and unpack Typst packages on first use.

    Packages live under ``root/<namespace>/<name>/<version>``. Once that
    directory exists, resolving the package is a plain existence check.
    """

    def __init__(
        self,
        root: Path | str = "",
        *,
        registry: str = DEFAULT_REGISTRY,
        session: Any | None = None,
        timeout: float = 30.0,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.root = Path(root)
        self.registry = registry.rstrip("/")
        self._session = session
        self._timeout = timeout
        self._emitter = emitter or NullEmitter()
        self._lock = Lock()

    def package_dir(self, spec: PackageSpec) -> Path:
        """Return the directory a package resolves to, whether or not it exists."""
        return self.root / spec.subdir

    def url_for(self, spec: PackageSpec) -> str:
        return f"{self.registry}/{spec.namespace}/{spec.archive_name}"

    def resolve(self, spec: PackageSpec) -> Path:
        """Return the local directory of ``spec``, downloading it when missing."""
        path = self.package_dir(spec)
        if path.exists():
            return path

        with self._lock:
            if path.exists():
                return path
            url = self.url_for(spec)
            self._emitter.event("package_fetch", {"package": str(spec), "url": url})
            payload = self._download(spec, url)
            self._unpack(spec, payload, path)

        self._emitter.event("package_cached", {"package": str(spec), "path": str(path)})
        return path

    def _download(self, spec: PackageSpec, url: str) -> bytes:
        try:
            return fetch_bytes(self._ensure_session(), url, timeout=self._timeout)
        except requests.RequestException as exc:
            raise NetworkFailedError(f"Failed to download package {spec}: {exc}") from exc

    def _unpack(self, spec: PackageSpec, payload: bytes, path: Path) -> None:
        try:
            data = gzip.decompress(payload)
        except (OSError, EOFError, zlib.error) as exc:
            raise MalformedArchiveError(f"Failed to decompress package {spec}: {exc}") from exc

        try:
            with tarfile.open(fileobj=io.BytesIO(data), mode="r:") as archive:
                archive.extractall(path, filter="data")
        except (OSError, tarfile.TarError) as exc:
            shutil.rmtree(path, ignore_errors=True)
            raise MalformedArchiveError(f"Failed to unpack package {spec}: {exc}") from exc

    def _ensure_session(self) -> Any:
        if self._session is None:
            self._session = create_session()
        return self._session


__all__ = ["DEFAULT_REGISTRY", "PackageCache", "PackageSpec"]
