"""
Go module proxy client.

Implements the read side of the GOPROXY protocol:

    GET {base}/{escaped path}/@latest             -> {"Version": ..., "Time": ...}
    GET {base}/{escaped path}/@v/list             -> newline separated versions
    GET {base}/{escaped path}/@v/{version}.info   -> {"Version": ..., "Time": ...}
    GET {base}/{escaped path}/@v/{version}.mod    -> raw go.mod bytes

Every lookup consults the cache first and stores its result afterwards. The
number of requests on the wire is bounded by an admission gate shared by all
threads using the client; logical lookups beyond the limit wait for a slot.

Cancellation:
    Each operation takes an optional ``threading.Event``. A token that is
    already set, or becomes set while the caller waits for a slot, raises
    AdmissionCancelled and no request is sent. A token set while the request
    is in flight abandons it at once (TransportFailure), so a cancelled
    lookup never writes to the cache.

Timeout:
    The timeout bounds the whole call, from sending the request to the last
    byte of the body. The transfer runs on a worker thread; the caller stops
    waiting as soon as the deadline passes or its token is set, whichever
    comes first. An abandoned transfer is closed at its next chunk and keeps
    its slot until then, so the number of requests on the wire stays bounded.

Concurrent misses for the same key are not coalesced; both requests go out and
the last one to finish wins the cache slot.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import TYPE_CHECKING, Any, List, Optional

import requests
from pydantic import ValidationError

from modinspect.cache import MemoryCache
from modinspect.constants import (
    DEFAULT_MAX_CONCURRENT,
    DEFAULT_PROXY_URL,
    DEFAULT_TIMEOUT,
    LONG_TTL,
    SHORT_TTL,
)
from .exceptions import (
    AdmissionCancelled,
    DecodeFailure,
    TransportFailure,
    UpstreamStatus,
)
from .models import CachedResponse, ResponseKind, VersionInfo

if TYPE_CHECKING:
    from modinspect.config import Config

logger = logging.getLogger(__name__)

CancelToken = threading.Event

_CHUNK_SIZE = 16 * 1024


def escape_path(path: str) -> str:
    """
    Escape a module path for use in a proxy URL.

    Upper-case ASCII letters are replaced by ``!`` followed by the lower-case
    letter so that paths stay unique on case-insensitive file systems.

    Examples:
        github.com/BurntSushi/toml -> github.com/!burnt!sushi/toml
    """
    escaped = []
    for char in path:
        if "A" <= char <= "Z":
            escaped.append("!" + char.lower())
        else:
            escaped.append(char)
    return "".join(escaped)


class RegistryClient:
    """Caching, concurrency-bounded client for a Go module proxy."""

    def __init__(
        self,
        base_url: str = "",
        cache: Optional[MemoryCache] = None,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
        short_ttl: float = SHORT_TTL,
        long_ttl: float = LONG_TTL,
        poll_interval: float = 0.05,
    ):
        """
        Args:
            base_url: Proxy origin. Empty means the public proxy.golang.org.
            cache: Cache shared with other clients. When omitted the client
                creates and owns one, and stops it on close().
            max_concurrent: Maximum number of requests in flight.
            timeout: Overall timeout of one request in seconds, body included.
            session: requests session to send requests with.
            short_ttl: Lifetime of ``@latest`` and ``@v/list`` results.
            long_ttl: Lifetime of ``.info`` and ``.mod`` results.
            poll_interval: How often a waiting caller checks its cancellation
                token and the request deadline.
        """
        base_url = base_url or DEFAULT_PROXY_URL
        if base_url.endswith("/"):
            base_url = base_url[:-1]
        self.base_url = base_url

        self._owns_cache = cache is None
        self.cache: MemoryCache = cache if cache is not None else MemoryCache().start()

        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()

        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")

        self.max_concurrent = max(1, max_concurrent)
        self.timeout = timeout
        self.short_ttl = short_ttl
        self.long_ttl = long_ttl
        self._poll_interval = poll_interval
        self._gate = threading.BoundedSemaphore(self.max_concurrent)
        self._workers = ThreadPoolExecutor(
            max_workers=self.max_concurrent, thread_name_prefix="modinspect-proxy"
        )

    @classmethod
    def from_config(cls, config: "Config", **kwargs: Any) -> "RegistryClient":
        """Create a client from the loaded user configuration."""
        return cls(
            base_url=config.proxy_url,
            max_concurrent=config.max_concurrent,
            timeout=config.timeout,
            short_ttl=config.cache_ttl,
            **kwargs,
        )

    def with_cache(self, cache: MemoryCache) -> "RegistryClient":
        """Replace the cache. The previous cache is stopped if the client owned it."""
        if self._owns_cache:
            self.cache.stop()
        self.cache = cache
        self._owns_cache = False
        return self

    def close(self) -> None:
        self._workers.shutdown(wait=False)
        if self._owns_cache:
            self.cache.stop()
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "RegistryClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # Proxy endpoints

    def latest(
        self, module_path: str, cancel: Optional[CancelToken] = None
    ) -> VersionInfo:
        """Fetch the latest known version of a module."""
        cache_key = f"{module_path}@latest"
        cached = self._cached(cache_key, ResponseKind.latest)
        if cached is not None:
            return cached

        url = f"{self.base_url}/{escape_path(module_path)}/@latest"
        info = self._decode_info(url, self._get(url, cancel))

        self._store(cache_key, ResponseKind.latest, info, self.short_ttl)
        return info

    def versions(
        self, module_path: str, cancel: Optional[CancelToken] = None
    ) -> List[str]:
        """
        Fetch the list of published versions of a module.

        The list is returned in the order the proxy serves it. An empty body
        gives ``[""]``, mirroring a plain split of the response text.
        """
        cache_key = f"{module_path}@list"
        cached = self._cached(cache_key, ResponseKind.versions)
        if cached is not None:
            return list(cached)

        url = f"{self.base_url}/{escape_path(module_path)}/@v/list"
        body = self._get(url, cancel)

        versions = body.decode("utf-8", errors="replace").strip().split("\n")
        self._store(cache_key, ResponseKind.versions, tuple(versions), self.short_ttl)
        return versions

    def info(
        self, module_path: str, version: str, cancel: Optional[CancelToken] = None
    ) -> VersionInfo:
        """Fetch the metadata of one specific module version."""
        cache_key = f"{module_path}@{version}"
        cached = self._cached(cache_key, ResponseKind.info)
        if cached is not None:
            return cached

        url = f"{self.base_url}/{escape_path(module_path)}/@v/{version}.info"
        info = self._decode_info(url, self._get(url, cancel))

        self._store(cache_key, ResponseKind.info, info, self.long_ttl)
        return info

    def get_mod_file(
        self, module_path: str, version: str, cancel: Optional[CancelToken] = None
    ) -> bytes:
        """Fetch the go.mod file of one specific module version."""
        cache_key = f"{module_path}@{version}.mod"
        cached = self._cached(cache_key, ResponseKind.mod)
        if cached is not None:
            return cached

        url = f"{self.base_url}/{escape_path(module_path)}/@v/{version}.mod"
        data = self._get(url, cancel)

        self._store(cache_key, ResponseKind.mod, data, self.long_ttl)
        return data

    # Internals

    def _cached(self, key: str, kind: ResponseKind) -> Any:
        entry, found = self.cache.get(key)
        if not found:
            return None
        if not isinstance(entry, CachedResponse) or entry.kind is not kind:
            logger.debug(f"Ignoring cache entry {key}: not a {kind.value} response")
            return None
        return entry.payload

    def _store(self, key: str, kind: ResponseKind, payload: Any, ttl: float) -> None:
        self.cache.set(key, CachedResponse(kind=kind, payload=payload), ttl)

    @staticmethod
    def _decode_info(url: str, body: bytes) -> VersionInfo:
        try:
            return VersionInfo.model_validate_json(body)
        except ValidationError as e:
            raise DecodeFailure(url, e) from e

    def _acquire(self, url: str, cancel: Optional[CancelToken]) -> None:
        # Cancellation wins over a free slot
        if cancel is None:
            self._gate.acquire()
            return
        if cancel.is_set():
            raise AdmissionCancelled(url)

        while not self._gate.acquire(timeout=self._poll_interval):
            if cancel.is_set():
                raise AdmissionCancelled(url)

        if cancel.is_set():
            self._gate.release()
            raise AdmissionCancelled(url)

    def _get(self, url: str, cancel: Optional[CancelToken]) -> bytes:
        self._acquire(url, cancel)
        deadline = time.monotonic() + self.timeout
        abandon = threading.Event()
        try:
            future = self._workers.submit(self._fetch, url, deadline, abandon)
        except RuntimeError:
            self._gate.release()
            raise
        # The slot is held until the transfer itself has finished
        future.add_done_callback(lambda _: self._gate.release())

        while True:
            remaining = deadline - time.monotonic()
            try:
                data = future.result(timeout=max(0.0, min(self._poll_interval, remaining)))
            except FutureTimeout:
                pass
            else:
                if cancel is not None and cancel.is_set():
                    raise TransportFailure(url, InterruptedError("request cancelled"))
                return data

            if cancel is not None and cancel.is_set():
                abandon.set()
                raise TransportFailure(url, InterruptedError("request cancelled"))
            if time.monotonic() >= deadline:
                abandon.set()
                raise TransportFailure(
                    url, TimeoutError(f"no complete response within {self.timeout}s")
                )

    def _fetch(self, url: str, deadline: float, abandon: threading.Event) -> bytes:
        logger.debug(f"GET {url}")
        try:
            with self.session.get(url, timeout=self.timeout, stream=True) as response:
                if not 200 <= response.status_code < 300:
                    raise UpstreamStatus(url, response.status_code, response.text)

                chunks = []
                for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                    if abandon.is_set():
                        raise TransportFailure(url, InterruptedError("request abandoned"))
                    if time.monotonic() >= deadline:
                        raise TransportFailure(
                            url,
                            TimeoutError(f"no complete response within {self.timeout}s"),
                        )
                    chunks.append(chunk)
                return b"".join(chunks)
        except requests.RequestException as e:
            raise TransportFailure(url, e) from e
