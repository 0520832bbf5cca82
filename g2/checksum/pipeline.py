"""
Single-pass download and checksum pipeline.

Streams a URL once and feeds every chunk to all requested digest
accumulators plus a progress counter. The copy loop runs on one background
thread; the caller waits on a single-shot future that carries either the
byte count or the error that stopped the copy.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, InvalidStateError
from typing import Any, Callable, Iterable, Protocol

import httpx
from pydantic import BaseModel, ConfigDict, Field

from g2.checksum.algorithms import DEFAULT_ALGORITHMS, HashAlgorithm, parse_algorithms
from g2.checksum.progress import DEFAULT_INTERVAL_SECONDS, DownloadProgress
from g2.errors import G2Error, TransportError
from g2.manifest.entry import ManifestEntry

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 65536
DISTFILE_TYPE = "DIST"


class _Sink(Protocol):
    def update(self, data: bytes) -> Any: ...


class ChecksumResult(BaseModel):
    """Size and digests of one fetched resource."""

    model_config = ConfigDict(frozen=True)

    size: int = Field(ge=0, description="Total bytes received")
    digests: dict[str, str] = Field(
        default_factory=dict,
        description="Hex digests by Manifest tag, in requested order",
    )

    def to_manifest_entry(
        self, filename: str, entry_type: str = DISTFILE_TYPE
    ) -> ManifestEntry:
        """Build a Manifest entry for ``filename`` from this result."""
        entry = ManifestEntry(type=entry_type, filename=filename, size=self.size)
        for algorithm, value in self.digests.items():
            entry.add_hash(algorithm, value)
        return entry


def _settle(setter: Callable[[Any], None], value: Any) -> None:
    """Complete a future unless it was already completed."""
    try:
        setter(value)
    except InvalidStateError:
        logger.debug("Dropping late completion: %r", value)


def copy_to_sinks(
    chunks: Iterable[bytes],
    sinks: list[_Sink],
    done: Future,
) -> None:
    """
    Feed every chunk to every sink, then complete ``done``.

    ``done`` receives the total byte count, or the exception that stopped
    the copy. Whichever completion happens first is final.
    """
    size = 0
    try:
        for chunk in chunks:
            for sink in sinks:
                sink.update(chunk)
            size += len(chunk)
    except Exception as e:
        _settle(done.set_exception, e)
        return
    _settle(done.set_result, size)


def _content_length(response: httpx.Response) -> int | None:
    value = response.headers.get("content-length")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def fetch_and_hash(
    url: str,
    algorithms: Iterable[str | HashAlgorithm] = DEFAULT_ALGORITHMS,
    *,
    client: httpx.Client | None = None,
    progress_interval: float = DEFAULT_INTERVAL_SECONDS,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> ChecksumResult:
    """
    Download ``url`` and compute its size and digests in one pass.

    The body is never held in memory as a whole. There is no retry and no
    partial result: any failure aborts the fetch.

    Args:
        url: Resource to fetch.
        algorithms: Digests to compute (Manifest tags or HashAlgorithm).
        client: HTTP client to use. A default one is created and closed
            when omitted.
        progress_interval: Minimum seconds between progress log lines.
        chunk_size: Read size for the copy loop.

    Returns:
        ChecksumResult with the requested digests only.

    Raises:
        DigestInitError: If an accumulator cannot be constructed.
        TransportError: On connection failure, a non-200 status, or an error
            while reading the body.
        ValueError: If an algorithm name is not supported.
    """
    selected = parse_algorithms(algorithms)
    hashers = {algorithm: algorithm.new() for algorithm in selected}

    owns_client = client is None
    if client is None:
        client = httpx.Client(follow_redirects=True, timeout=httpx.Timeout(None, connect=10.0))

    try:
        with client.stream("GET", url, headers={"Accept-Encoding": "identity"}) as response:
            if response.status_code != httpx.codes.OK:
                raise TransportError(
                    f"bad status: {response.status_code} {response.reason_phrase}",
                    url=url,
                    status_code=response.status_code,
                )

            progress = DownloadProgress(
                total_size=_content_length(response),
                interval=progress_interval,
                label=url.rsplit("/", 1)[-1],
            )
            sinks: list[_Sink] = [*hashers.values(), progress]

            done: Future = Future()
            worker = threading.Thread(
                target=copy_to_sinks,
                args=(response.iter_raw(chunk_size), sinks, done),
                name="g2-fetch",
                daemon=True,
            )
            worker.start()
            try:
                size = done.result()
            finally:
                worker.join()
    except G2Error:
        raise
    except (httpx.HTTPError, httpx.StreamError, OSError) as e:
        raise TransportError(f"fetching {url}: {e}", url=url, cause=e) from e
    finally:
        if owns_client:
            client.close()

    logger.debug("Fetched %s: %d bytes", url, size)
    return ChecksumResult(
        size=size,
        digests={algorithm.value: h.hexdigest() for algorithm, h in hashers.items()},
    )
