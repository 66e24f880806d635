"""Downloading a single byte range into its own file."""

from __future__ import annotations

import logging

import httpx

from updatekit.config import KIB, USER_AGENT
from updatekit.download.cancellation import CancellationToken
from updatekit.errors import FileIOError, HTTPStatusError, NetworkError
from updatekit.models import ActualLocation, Part

LOGGER = logging.getLogger(__name__)


class PartDownloader:
    def __init__(
        self,
        client: httpx.Client,
        *,
        user_agent: str = USER_AGENT,
        buffer_size: int = 64 * KIB,
    ) -> None:
        self.client = client
        self.user_agent = user_agent
        self.buffer_size = buffer_size

    def _spans_resource(self, location: ActualLocation, part: Part) -> bool:
        return part.start == 0 and (part.end < 0 or part.end == location.content_length)

    def download(self, location: ActualLocation, part: Part, token: CancellationToken) -> int:
        """Fetch ``part`` and stream it to ``part.name``. Returns bytes written.

        The token is checked before the request, when the headers arrive and
        between body reads; a triggered token raises OperationCancelledError
        and leaves whatever was written so far in place.
        """
        token.raise_if_cancelled()
        headers = {"User-Agent": self.user_agent, "Accept-Encoding": "identity"}
        range_header = part.range_header()
        if range_header is not None and not self._spans_resource(location, part):
            headers["Range"] = range_header

        written = 0
        try:
            with self.client.stream("GET", location.url, headers=headers) as response:
                # an abandoned worker must not touch its part file once headers arrive
                token.raise_if_cancelled()
                status = response.status_code
                if status == 206:
                    pass
                elif status == 200 and self._spans_resource(location, part):
                    pass
                else:
                    raise HTTPStatusError(
                        f"part {part.name.name} ({part.start}-{part.end}) failed with status code {status}",
                        status_code=status,
                        url=location.url,
                    )

                try:
                    with part.name.open("wb") as handle:
                        for data in response.iter_bytes(self.buffer_size):
                            token.raise_if_cancelled()
                            handle.write(data)
                            written += len(data)
                except OSError as exc:
                    raise FileIOError(f"cannot write part file {part.name}: {exc}") from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"part {part.name.name} download failed: {exc}") from exc

        if part.end >= 0 and written != part.size:
            raise NetworkError(
                f"part {part.name.name} is incomplete: expected {part.size} bytes, got {written}"
            )
        LOGGER.debug("Downloaded part %s: %d bytes", part.name.name, written)
        return written
