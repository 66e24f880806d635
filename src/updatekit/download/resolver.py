"""Resolving a URL to its final, non-redirect location."""

from __future__ import annotations

import logging
from pathlib import Path

import httpx

from updatekit.config import MAX_REDIRECTS, USER_AGENT
from updatekit.errors import HTTPStatusError, NetworkError, TooManyRedirectsError
from updatekit.models import ActualLocation

LOGGER = logging.getLogger(__name__)


def is_redirect(status_code: int) -> bool:
    return 299 < status_code < 400


def _content_length(response: httpx.Response) -> int:
    value = response.headers.get("Content-Length")
    if value is None:
        return -1
    try:
        length = int(value)
    except ValueError:
        return -1
    return length if length >= 0 else -1


def _accepts_ranges(response: httpx.Response) -> bool:
    value = response.headers.get("Accept-Ranges", "").strip()
    return value != "" and value.lower() != "none"


class LocationResolver:
    """Follows redirects by hand so the final URL can be range-requested."""

    def __init__(self, client: httpx.Client, *, max_redirects: int = MAX_REDIRECTS) -> None:
        self.client = client
        self.max_redirects = max_redirects

    def resolve(self, url: str, output_file: Path, user_agent: str = USER_AGENT) -> ActualLocation:
        current_url = url
        redirects_followed = 0
        while True:
            if current_url != url:
                LOGGER.debug("Computing effective URL: %s -> %s", url, current_url)

            location, next_url = self._request(current_url, output_file, user_agent)
            if location is not None:
                return location

            current_url = next_url
            redirects_followed += 1
            if redirects_followed > self.max_redirects:
                raise TooManyRedirectsError(
                    f"maximum number of redirects ({self.max_redirects}) followed for {url}"
                )

    def _request(
        self, url: str, output_file: Path, user_agent: str
    ) -> tuple[ActualLocation | None, str]:
        # GET, not HEAD: Content-Length may be omitted for HEAD requests
        headers = {"User-Agent": user_agent, "Accept-Encoding": "identity"}
        try:
            with self.client.stream("GET", url, headers=headers, follow_redirects=False) as response:
                status = response.status_code
                if is_redirect(status):
                    target = response.headers.get("Location")
                    if not target:
                        raise HTTPStatusError(
                            f"redirect status {status} without Location header",
                            status_code=status,
                            url=url,
                        )
                    return None, str(response.url.join(target))

                if not 200 <= status < 300:
                    raise HTTPStatusError(
                        f"resolve request failed with status code {status}",
                        status_code=status,
                        url=url,
                    )

                location = ActualLocation(
                    url=url,
                    content_length=_content_length(response),
                    accepts_ranges=_accepts_ranges(response),
                    output_file=Path(output_file),
                )
                LOGGER.debug(
                    "Downloading %s (length: %s, content-type: %s)",
                    url,
                    location.content_length if location.content_length >= 0 else "unknown",
                    response.headers.get("Content-Type"),
                )
                if not location.accepts_ranges:
                    LOGGER.warning("Server doesn't support ranges, %s will be downloaded as one part", url)
                return location, url
        except httpx.TransportError as exc:
            raise NetworkError(f"cannot resolve {url}: {exc}") from exc
        except httpx.InvalidURL as exc:
            raise NetworkError(f"invalid URL {url}: {exc}") from exc
