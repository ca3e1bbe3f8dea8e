"""Tests for the module proxy client against a local HTTP server."""

import threading
import time
from datetime import datetime, timezone

import pytest
import requests

from modinspect.cache import MemoryCache
from modinspect.config import Config
from modinspect.registry import (
    AdmissionCancelled,
    DecodeFailure,
    RegistryClient,
    TransportFailure,
    UpstreamStatus,
    VersionInfo,
    escape_path,
)
from modinspect.registry.models import CachedResponse, ResponseKind


@pytest.fixture
def client(fake_proxy, clock):
    cache = MemoryCache(clock=clock)
    c = RegistryClient(base_url=fake_proxy.url + "/", cache=cache)
    yield c
    c.close()


@pytest.mark.short
class TestEscapePath:
    def test_lowercase_unchanged(self):
        assert escape_path("golang.org/x/mod") == "golang.org/x/mod"

    def test_uppercase_escaped(self):
        assert escape_path("github.com/BurntSushi/toml") == "github.com/!burnt!sushi/toml"

    def test_all_uppercase(self):
        assert escape_path("ABC") == "!a!b!c"


@pytest.mark.short
class TestRegistryClient:
    def test_latest_cached_until_ttl_expires(self, fake_proxy, client, clock):
        fake_proxy.serve_latest("example.com/m", "v2.0.0")
        path = "/example.com/m/@latest"

        first = client.latest("example.com/m")
        assert first == VersionInfo(
            version="v2.0.0", time=datetime(2024, 1, 1, tzinfo=timezone.utc)
        )
        assert fake_proxy.count(path) == 1

        second = client.latest("example.com/m")
        assert second == first
        assert fake_proxy.count(path) == 1

        clock.advance(client.short_ttl + 1)
        client.latest("example.com/m")
        assert fake_proxy.count(path) == 2

    def test_versions(self, fake_proxy, client):
        fake_proxy.serve("/example.com/m/@v/list", "v1.0.0\nv1.1.0\nv1.2.0\n")

        assert client.versions("example.com/m") == ["v1.0.0", "v1.1.0", "v1.2.0"]
        assert client.versions("example.com/m") == ["v1.0.0", "v1.1.0", "v1.2.0"]
        assert fake_proxy.count("/example.com/m/@v/list") == 1

    def test_versions_empty_body(self, fake_proxy, client):
        fake_proxy.serve("/example.com/m/@v/list", "")
        assert client.versions("example.com/m") == [""]

    def test_info_uses_long_ttl(self, fake_proxy, client, clock):
        fake_proxy.serve(
            "/example.com/m/@v/v1.0.0.info",
            '{"Version":"v1.0.0","Time":"2023-05-01T10:00:00Z"}',
        )
        info = client.info("example.com/m", "v1.0.0")
        assert info.version == "v1.0.0"

        clock.advance(client.short_ttl + 1)
        client.info("example.com/m", "v1.0.0")
        assert fake_proxy.count("/example.com/m/@v/v1.0.0.info") == 1

    def test_get_mod_file(self, fake_proxy, client):
        fake_proxy.serve_mod("example.com/m", "v1.0.0", ["example.com/dep v0.1.0"])

        data = client.get_mod_file("example.com/m", "v1.0.0")
        assert b"module example.com/m" in data
        assert client.get_mod_file("example.com/m", "v1.0.0") == data
        assert fake_proxy.count("/example.com/m/@v/v1.0.0.mod") == 1

    def test_escaped_path_in_url(self, fake_proxy, client):
        fake_proxy.serve_latest("github.com/!burnt!sushi/toml", "v1.3.2")
        assert client.latest("github.com/BurntSushi/toml").version == "v1.3.2"

    def test_non_success_status_contains_code(self, client):
        with pytest.raises(UpstreamStatus) as exc_info:
            client.latest("example.com/missing")
        assert "404" in str(exc_info.value)
        assert exc_info.value.status_code == 404

    def test_errors_are_not_cached(self, fake_proxy, client):
        with pytest.raises(UpstreamStatus):
            client.latest("example.com/m")

        fake_proxy.serve_latest("example.com/m", "v1.0.0")
        assert client.latest("example.com/m").version == "v1.0.0"

    def test_invalid_json_is_decode_failure(self, fake_proxy, client):
        fake_proxy.serve("/example.com/m/@latest", "not json")
        with pytest.raises(DecodeFailure):
            client.latest("example.com/m")

    def test_transport_failure(self, clock):
        # Nothing listens on port 9 of localhost
        c = RegistryClient(
            base_url="http://127.0.0.1:9", cache=MemoryCache(clock=clock), timeout=2
        )
        with pytest.raises(TransportFailure) as exc_info:
            c.latest("example.com/m")
        assert isinstance(exc_info.value.cause, requests.RequestException)
        c.close()

    def test_other_success_codes_are_accepted(self, fake_proxy, client):
        fake_proxy.serve(
            "/example.com/m/@latest",
            '{"Version":"v1.0.0","Time":"2024-01-01T00:00:00Z"}',
            status=203,
        )
        assert client.latest("example.com/m").version == "v1.0.0"

    def test_cancel_in_flight_discards_response(self, fake_proxy, client):
        fake_proxy.serve_latest("example.com/m", "v1.0.0")
        fake_proxy.release.clear()
        cancel = threading.Event()
        timer = threading.Timer(0.2, cancel.set)
        timer.start()

        started = time.monotonic()
        with pytest.raises(TransportFailure) as exc_info:
            client.latest("example.com/m", cancel=cancel)
        elapsed = time.monotonic() - started
        timer.cancel()
        fake_proxy.release.set()

        assert isinstance(exc_info.value.cause, InterruptedError)
        assert elapsed < 2
        assert client.cache.get("example.com/m@latest") == (None, False)

    def test_slow_body_hits_overall_timeout(self, fake_proxy, clock):
        fake_proxy.serve_latest("example.com/m", "v1.0.0")
        fake_proxy.drip("/example.com/m/@latest", 0.1)
        c = RegistryClient(
            base_url=fake_proxy.url, cache=MemoryCache(clock=clock), timeout=0.5
        )

        started = time.monotonic()
        with pytest.raises(TransportFailure) as exc_info:
            c.latest("example.com/m")
        elapsed = time.monotonic() - started
        c.close()

        assert isinstance(exc_info.value.cause, TimeoutError)
        assert elapsed < 1.0
        assert c.cache.get("example.com/m@latest") == (None, False)

    def test_cancelled_before_admission_sends_nothing(self, fake_proxy, client):
        fake_proxy.serve_latest("example.com/m", "v1.0.0")
        cancel = threading.Event()
        cancel.set()

        for call in (
            lambda: client.latest("example.com/m", cancel=cancel),
            lambda: client.versions("example.com/m", cancel=cancel),
            lambda: client.info("example.com/m", "v1.0.0", cancel=cancel),
            lambda: client.get_mod_file("example.com/m", "v1.0.0", cancel=cancel),
        ):
            with pytest.raises(AdmissionCancelled):
                call()

        assert fake_proxy.requests == []

    def test_cancel_while_waiting_for_slot(self, fake_proxy, clock):
        fake_proxy.serve_latest("example.com/a", "v1.0.0")
        fake_proxy.release.clear()
        c = RegistryClient(
            base_url=fake_proxy.url,
            cache=MemoryCache(clock=clock),
            max_concurrent=1,
            poll_interval=0.01,
        )

        holder = threading.Thread(target=c.latest, args=("example.com/a",))
        holder.start()
        while fake_proxy.count("/example.com/a/@latest") == 0:
            threading.Event().wait(0.01)

        cancel = threading.Event()
        result = {}

        def waiter():
            try:
                c.latest("example.com/b", cancel=cancel)
            except AdmissionCancelled as e:
                result["error"] = e

        t = threading.Thread(target=waiter)
        t.start()
        cancel.set()
        t.join(2)

        fake_proxy.release.set()
        holder.join(2)
        c.close()

        assert isinstance(result.get("error"), AdmissionCancelled)
        assert fake_proxy.count("/example.com/b/@latest") == 0

    def test_concurrency_is_bounded(self, fake_proxy, clock):
        modules = [f"example.com/m{i}" for i in range(6)]
        for m in modules:
            fake_proxy.serve_latest(m, "v1.0.0")
        fake_proxy.release.clear()

        c = RegistryClient(
            base_url=fake_proxy.url, cache=MemoryCache(clock=clock), max_concurrent=2
        )
        threads = [threading.Thread(target=c.latest, args=(m,)) for m in modules]
        for t in threads:
            t.start()

        threading.Event().wait(0.2)
        fake_proxy.release.set()
        for t in threads:
            t.join(5)
        c.close()

        assert fake_proxy.max_in_flight <= 2
        assert len(fake_proxy.requests) == 6

    def test_mismatched_cache_entry_is_ignored(self, fake_proxy, client):
        fake_proxy.serve_latest("example.com/m", "v1.0.0")
        client.cache.set(
            "example.com/m@latest",
            CachedResponse(kind=ResponseKind.mod, payload=b"module x"),
            ttl=60,
        )

        assert client.latest("example.com/m").version == "v1.0.0"
        assert fake_proxy.count("/example.com/m/@latest") == 1

    def test_shared_cache_between_clients(self, fake_proxy, clock):
        fake_proxy.serve_latest("example.com/m", "v1.0.0")
        cache = MemoryCache(clock=clock)

        RegistryClient(base_url=fake_proxy.url, cache=cache).latest("example.com/m")
        other = RegistryClient(base_url=fake_proxy.url).with_cache(cache)
        other.latest("example.com/m")
        other.close()

        assert fake_proxy.count("/example.com/m/@latest") == 1


@pytest.mark.short
class TestRegistryClientSetup:
    def test_default_base_url(self):
        with RegistryClient() as c:
            assert c.base_url == "https://proxy.golang.org"

    def test_owned_cache_is_started_and_stopped(self):
        c = RegistryClient()
        assert c.cache.running
        c.close()
        assert not c.cache.running

    def test_shared_cache_is_left_running(self):
        cache = MemoryCache().start()
        with RegistryClient(cache=cache):
            pass
        assert cache.running
        cache.stop()

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValueError):
            RegistryClient(timeout=0)

    def test_from_config(self):
        config = Config(
            proxy_url="https://goproxy.example.com/",
            timeout=5,
            cache_ttl=42,
            max_concurrent=3,
        )
        with RegistryClient.from_config(config) as c:
            assert c.base_url == "https://goproxy.example.com"
            assert c.timeout == 5
            assert c.short_ttl == 42
            assert c.max_concurrent == 3
