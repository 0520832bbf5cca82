"""Tests for the checksum pipeline."""

import hashlib
import logging
from concurrent.futures import Future

import httpx
import pytest

from g2.checksum import algorithms as algorithms_module
from g2.checksum.algorithms import DEFAULT_ALGORITHMS, HashAlgorithm, parse_algorithms
from g2.checksum.pipeline import ChecksumResult, copy_to_sinks, fetch_and_hash
from g2.checksum.progress import DownloadProgress
from g2.errors import DigestInitError, TransportError

PAYLOAD = b"hello world" * 10000


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


class _BrokenStream(httpx.SyncByteStream):
    def __iter__(self):
        yield b"partial"
        raise httpx.ReadError("connection reset")


class FakeClock:
    """Manually advanced clock."""

    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


class TestHashAlgorithm:
    """Tests for the algorithm enumeration."""

    def test_all_algorithms_construct_or_report(self):
        """Every member should build an accumulator or raise DigestInitError."""
        for algorithm in HashAlgorithm:
            try:
                hasher = algorithm.new()
            except DigestInitError as e:
                assert e.algorithm == algorithm.value
                continue
            hasher.update(b"x")
            assert hasher.hexdigest()

    def test_digest_sizes(self):
        """BLAKE2 variants should use the Manifest digest sizes."""
        assert len(HashAlgorithm.BLAKE2B.new().hexdigest()) == 128
        assert len(HashAlgorithm.BLAKE2S.new().hexdigest()) == 64

    def test_parse_case_insensitive(self):
        """Tags should parse regardless of case."""
        assert HashAlgorithm.parse("sha512") is HashAlgorithm.SHA512
        assert HashAlgorithm.parse(" Blake2b ") is HashAlgorithm.BLAKE2B
        assert HashAlgorithm.parse(HashAlgorithm.MD5) is HashAlgorithm.MD5

    def test_parse_unknown(self):
        """Unknown names should raise ValueError."""
        with pytest.raises(ValueError, match="Unsupported hash algorithm"):
            HashAlgorithm.parse("CRC32")

    def test_parse_algorithms_dedupes(self):
        """Duplicates should be dropped, order kept."""
        assert parse_algorithms(["sha512", "BLAKE2B", "SHA512"]) == [
            HashAlgorithm.SHA512,
            HashAlgorithm.BLAKE2B,
        ]

    def test_defaults(self):
        """Default set should be BLAKE2B then SHA512."""
        assert DEFAULT_ALGORITHMS == (HashAlgorithm.BLAKE2B, HashAlgorithm.SHA512)

    def test_init_failure(self, monkeypatch):
        """Constructor ValueError should surface as DigestInitError."""

        def broken():
            raise ValueError("unsupported hash type ripemd160")

        monkeypatch.setitem(algorithms_module._CONSTRUCTORS, HashAlgorithm.RMD160, broken)
        with pytest.raises(DigestInitError) as ei:
            HashAlgorithm.RMD160.new()
        assert ei.value.algorithm == "RMD160"


class TestFetchAndHash:
    """Tests for fetch_and_hash."""

    def test_digests_and_size(self):
        """All requested digests should match hashlib over the full body."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=PAYLOAD)

        requested = ["BLAKE2B", "BLAKE2S", "MD5", "SHA1", "SHA256", "SHA3_256", "SHA3_512", "SHA512"]
        with _client(handler) as client:
            result = fetch_and_hash(
                "https://example.test/file.tar.gz", requested, client=client, chunk_size=1000
            )

        assert result.size == len(PAYLOAD)
        assert list(result.digests) == requested
        assert result.digests["BLAKE2B"] == hashlib.blake2b(PAYLOAD).hexdigest()
        assert result.digests["BLAKE2S"] == hashlib.blake2s(PAYLOAD).hexdigest()
        assert result.digests["MD5"] == hashlib.md5(PAYLOAD).hexdigest()
        assert result.digests["SHA1"] == hashlib.sha1(PAYLOAD).hexdigest()
        assert result.digests["SHA256"] == hashlib.sha256(PAYLOAD).hexdigest()
        assert result.digests["SHA3_256"] == hashlib.sha3_256(PAYLOAD).hexdigest()
        assert result.digests["SHA3_512"] == hashlib.sha3_512(PAYLOAD).hexdigest()
        assert result.digests["SHA512"] == hashlib.sha512(PAYLOAD).hexdigest()

    def test_known_digest(self):
        """A fixed input should give its well-known MD5."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"hello world")

        with _client(handler) as client:
            result = fetch_and_hash("https://example.test/x", ["MD5"], client=client)
        assert result.digests == {"MD5": "5eb63bbbe01eeed093cb22bb8f5acdc3"}
        assert result.size == 11

    def test_only_requested(self):
        """Only requested algorithms should appear in the result."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"abc")

        with _client(handler) as client:
            result = fetch_and_hash("https://example.test/x", ["SHA256"], client=client)
        assert set(result.digests) == {"SHA256"}

    def test_empty_body(self):
        """Empty bodies should hash to the empty digest with size 0."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"")

        with _client(handler) as client:
            result = fetch_and_hash("https://example.test/x", ["SHA512"], client=client)
        assert result.size == 0
        assert result.digests["SHA512"] == hashlib.sha512(b"").hexdigest()

    def test_bad_status(self):
        """Non-200 responses should raise TransportError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, content=b"not found")

        with _client(handler) as client:
            with pytest.raises(TransportError) as ei:
                fetch_and_hash("https://example.test/missing", client=client)
        assert ei.value.status_code == 404
        assert ei.value.url == "https://example.test/missing"
        assert "bad status" in str(ei.value)

    def test_connection_error(self):
        """Connection failures should raise TransportError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with _client(handler) as client:
            with pytest.raises(TransportError) as ei:
                fetch_and_hash("https://example.test/x", client=client)
        assert ei.value.status_code is None
        assert isinstance(ei.value.cause, httpx.ConnectError)

    def test_read_error_mid_stream(self):
        """Errors after partial progress should not return a result."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, stream=_BrokenStream())

        with _client(handler) as client:
            with pytest.raises(TransportError):
                fetch_and_hash("https://example.test/x", client=client)

    def test_digest_init_before_request(self, monkeypatch):
        """Digest init failures should abort before any request is sent."""
        calls = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["n"] += 1
            return httpx.Response(200, content=b"abc")

        def broken():
            raise ValueError("unsupported")

        monkeypatch.setitem(algorithms_module._CONSTRUCTORS, HashAlgorithm.RMD160, broken)
        with _client(handler) as client:
            with pytest.raises(DigestInitError):
                fetch_and_hash("https://example.test/x", ["SHA512", "RMD160"], client=client)
        assert calls["n"] == 0

    def test_unknown_algorithm(self):
        """Unsupported names should raise ValueError."""
        with pytest.raises(ValueError):
            fetch_and_hash("https://example.test/x", ["CRC32"])

    def test_requests_identity_encoding(self):
        """The raw archive bytes should be requested."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["accept-encoding"] = request.headers.get("accept-encoding")
            return httpx.Response(200, content=b"abc")

        with _client(handler) as client:
            fetch_and_hash("https://example.test/x", ["MD5"], client=client)
        assert seen["accept-encoding"] == "identity"


class TestChecksumResult:
    """Tests for ChecksumResult."""

    def test_to_manifest_entry(self):
        """Result should convert to a DIST entry with hashes in order."""
        result = ChecksumResult(size=42, digests={"BLAKE2B": "aa", "SHA512": "bb"})
        entry = result.to_manifest_entry("foo.tar.gz")
        assert str(entry) == "DIST foo.tar.gz 42 BLAKE2B aa SHA512 bb"

    def test_negative_size_rejected(self):
        """Size must be non-negative."""
        with pytest.raises(ValueError):
            ChecksumResult(size=-1)


class TestCopyToSinks:
    """Tests for the background copy loop."""

    class Counter:
        def __init__(self):
            self.data = b""

        def update(self, chunk):
            self.data += chunk

    def test_success(self):
        """Every sink should see every byte and the size is reported."""
        sinks = [self.Counter(), self.Counter()]
        done = Future()
        copy_to_sinks([b"ab", b"cd", b"e"], sinks, done)
        assert done.result() == 5
        assert all(s.data == b"abcde" for s in sinks)

    def test_error(self):
        """An error in the source should complete the future with it."""

        def chunks():
            yield b"ab"
            raise OSError("boom")

        done = Future()
        copy_to_sinks(chunks(), [self.Counter()], done)
        with pytest.raises(OSError, match="boom"):
            done.result()

    def test_first_completion_wins(self):
        """A future that is already settled should not change."""
        done = Future()
        done.set_exception(OSError("first"))
        copy_to_sinks([b"abc"], [self.Counter()], done)
        with pytest.raises(OSError, match="first"):
            done.result()


class TestDownloadProgress:
    """Tests for progress throttling."""

    def test_throttled(self):
        """Lines should be emitted at most once per interval."""
        clock = FakeClock()
        progress = DownloadProgress(total_size=4096, interval=5.0, clock=clock)

        progress.update(b"x" * 1024)
        assert progress.emit_count == 1

        clock.now += 1
        progress.update(b"x" * 1024)
        assert progress.emit_count == 1

        clock.now += 5
        progress.update(b"x" * 1024)
        assert progress.emit_count == 2
        assert progress.bytes_seen == 3072

    def test_known_total(self):
        """Known totals should show percent and an ETA."""
        clock = FakeClock()
        progress = DownloadProgress(total_size=4096, clock=clock)
        progress.update(b"x" * 1024)
        clock.now += 10
        progress.update(b"x" * 1024)
        assert progress.last_message.startswith("050% 2 kb / 4 kb")
        assert "unknown" not in progress.last_message

    def test_unknown_total(self, caplog):
        """Unknown totals should log unknown markers."""
        progress = DownloadProgress(total_size=None, clock=FakeClock(), label="a.tar.gz")
        with caplog.at_level(logging.INFO, logger="g2.checksum.progress"):
            progress.update(b"x" * 2048)
        assert progress.last_message == "a.tar.gz: unknown% 2 kb / unknown (0s / unknown)"
        assert "unknown%" in caplog.text

    def test_zero_total_treated_as_unknown(self):
        """A zero content length should not divide by zero."""
        progress = DownloadProgress(total_size=0, clock=FakeClock())
        progress.update(b"abc")
        assert "unknown%" in progress.last_message
