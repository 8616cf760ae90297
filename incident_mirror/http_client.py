# ETag-based conditional HTTP GET client for the incident feed.

# core efficiency mechanism:
#   Every response from Statuspage.io includes an ETag header.
#   We store it and send it back as If-None-Match on the next request.
#   If nothing changed, the server returns 304 Not Modified with NO body.
#   The mirror still needs a snapshot on every pass (a message may have been
#   deleted since), so on 304 the last parsed snapshot is returned again.

import asyncio
import logging
from typing import Protocol, runtime_checkable

import aiohttp

from incident_mirror.errors import FeedError
from incident_mirror.models import Incident
from incident_mirror.parser import parse_incidents

log = logging.getLogger(__name__)


@runtime_checkable
class IncidentFeed(Protocol):
    async def fetch_incidents(self) -> list[Incident]: ...


class FeedClient:
    """
    Wraps an aiohttp.ClientSession with ETag-based conditional GET support.

    Every failure mode (HTTP status, timeout, connection, body that is not
    incidents JSON) surfaces as FeedError.
    """

    def __init__(self, session: aiohttp.ClientSession, url: str, timeout_seconds: float = 10) -> None:
        self._session = session
        self.url = url
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._etag: str | None = None
        self._snapshot: list[Incident] | None = None

    async def fetch_incidents(self) -> list[Incident]:
        """Return the current incident list in feed order (newest first)."""
        headers: dict[str, str] = {}
        if self._etag and self._snapshot is not None:
            headers["If-None-Match"] = self._etag

        try:
            async with self._session.get(self.url, headers=headers, timeout=self._timeout) as resp:
                if resp.status == 304 and self._snapshot is not None:
                    log.debug("304 Not Modified for %s, reusing last snapshot", self.url)
                    return list(self._snapshot)

                resp.raise_for_status()
                data = await resp.json(content_type=None)
                etag = resp.headers.get("ETag")

        except aiohttp.ClientResponseError as exc:
            log.warning("HTTP error fetching %s: %s %s", self.url, exc.status, exc.message)
            raise FeedError(f"HTTP {exc.status} fetching {self.url}") from exc
        except asyncio.TimeoutError as exc:
            log.warning("Timeout fetching %s", self.url)
            raise FeedError(f"timeout fetching {self.url}") from exc
        except aiohttp.ClientError as exc:
            log.warning("Connection error fetching %s: %s", self.url, exc)
            raise FeedError(f"cannot fetch {self.url}: {exc}") from exc
        except ValueError as exc:
            raise FeedError(f"invalid JSON from {self.url}") from exc

        incidents = parse_incidents(data)
        self._snapshot = incidents
        self._etag = etag
        return list(incidents)
