"""Concurrent range-based downloading with end-to-end verification."""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
from pathlib import Path
from typing import List, Optional

import httpx

from updatekit.config import DownloadConfig
from updatekit.download.cancellation import CancellationToken
from updatekit.download.limiter import run_bounded
from updatekit.download.part import PartDownloader
from updatekit.download.ranges import assign_parts, drop_skipped_parts
from updatekit.download.resolver import LocationResolver
from updatekit.errors import ChecksumMismatchError, FileIOError, OperationCancelledError
from updatekit.models import ActualLocation, encode_digest
from updatekit.utils.files import (
    COPY_BUFFER_SIZE,
    HashingWriter,
    decode_checksum,
    ensure_parent_dir,
    remove_quietly,
)

LOGGER = logging.getLogger(__name__)

MAX_CONNECTIONS = 64
KEEPALIVE_EXPIRY = 30.0


def concatenate_parts(location: ActualLocation, expected_sha512: Optional[str] = None) -> None:
    """Append every part file to the output file in range order.

    Hashing happens only when a checksum is expected; merging only when there
    is more than one part. Merged part files are deleted, and a failed
    deletion is logged rather than raised.
    """
    has_checksum = bool(expected_sha512)
    output_file = location.output_file
    others = [part for part in location.parts if part.name != output_file]
    if not has_checksum and not others:
        return

    digest = hashlib.sha512() if has_checksum else None
    try:
        with output_file.open("r+b" if has_checksum else "ab") as total:
            sink = total
            if digest is not None:
                for block in iter(lambda: total.read(COPY_BUFFER_SIZE), b""):
                    digest.update(block)
                sink = HashingWriter(total, digest)
            total.seek(0, os.SEEK_END)

            for part in others:
                with part.name.open("rb") as part_file:
                    shutil.copyfileobj(part_file, sink, COPY_BUFFER_SIZE)
                remove_quietly(part.name)
    except OSError as exc:
        raise FileIOError(f"cannot assemble {output_file}: {exc}") from exc

    if digest is not None:
        actual = digest.digest()
        if actual != decode_checksum(expected_sha512):
            raise ChecksumMismatchError(expected_sha512, encode_digest(actual))


class Downloader:
    """Downloads a URL in concurrent byte ranges over one shared client."""

    def __init__(
        self,
        config: DownloadConfig | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config or DownloadConfig()
        self.client = httpx.Client(
            transport=transport,
            timeout=httpx.Timeout(self.config.timeout),
            limits=httpx.Limits(
                max_connections=MAX_CONNECTIONS,
                max_keepalive_connections=MAX_CONNECTIONS,
                keepalive_expiry=KEEPALIVE_EXPIRY,
            ),
            follow_redirects=False,
        )
        self.resolver = LocationResolver(self.client, max_redirects=self.config.max_redirects)
        self.part_downloader = PartDownloader(
            self.client,
            user_agent=self.config.user_agent,
            buffer_size=self.config.buffer_size,
        )

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "Downloader":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def fetch(
        self,
        url: str,
        output: Path,
        expected_sha512: Optional[str] = None,
        *,
        token: CancellationToken | None = None,
    ) -> ActualLocation:
        """Download ``url`` to ``output``, verifying ``expected_sha512`` if given."""
        output = Path(output)
        if expected_sha512:
            decode_checksum(expected_sha512)
        ensure_parent_dir(output)
        location = self.resolver.resolve(url, output, self.config.user_agent)
        self.download_resolved(location, expected_sha512, token=token)
        return location

    def download_resolved(
        self,
        location: ActualLocation,
        expected_sha512: Optional[str] = None,
        *,
        token: CancellationToken | None = None,
    ) -> None:
        """Download an already resolved location.

        Parts are computed unless the caller already assigned them, which lets
        a caller flag ranges as ``skip`` beforehand.
        """
        token = token or CancellationToken()
        if not location.parts:
            assign_parts(location, self.config.min_part_size, self.config.max_workers)
        parts = list(location.parts)
        LOGGER.debug("Download %s: %d parts", location.url, len(parts))

        failures: List[Optional[BaseException]] = [None] * len(parts)
        finished = [False] * len(parts)

        def task_factory(index: int):
            part = parts[index]

            def task() -> None:
                if part.skip:
                    return
                try:
                    self.part_downloader.download(location, part, token)
                    finished[index] = True
                except Exception as exc:
                    failures[index] = exc
                    if not isinstance(exc, OperationCancelledError):
                        token.cancel(f"part {index} failed")
                    LOGGER.debug("Part %d download error: %s", index, exc)
                    raise

            return task

        # a triggered token stops the wait; workers still blocked on the server are abandoned
        error = run_bounded(len(parts), self.config.max_workers, task_factory, token)

        for part, failure, done in zip(parts, failures, finished):
            if failure is not None or not (done or part.skip):
                part.failed = True

        if error is not None:
            token.cancel("download failed")
            primary = next(
                (
                    failure
                    for failure in failures
                    if failure is not None and not isinstance(failure, OperationCancelledError)
                ),
                error,
            )
            raise primary

        drop_skipped_parts(location)
        concatenate_parts(location, expected_sha512)
