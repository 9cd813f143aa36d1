"""Interface for fetching raw map data."""

import asyncio
import inspect
import logging
import math
import time
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, TypeAlias

from osm_extract import __version__
from osm_extract._log import DEFAULT_LOGGER
from osm_extract.error import (
    AllEndpointsFailedError,
    CallError,
    CallTimeoutError,
    ClientError,
    _result_or_raise,
)

import aiohttp
from aiohttp import ClientTimeout


__docformat__ = "google"
__all__ = (
    "Client",
    "Endpoint",
    "ProgressCallback",
    "RawResponse",
    "DEFAULT_ENDPOINTS",
    "DEFAULT_USER_AGENT",
    "DEFAULT_ATTEMPT_TIMEOUT_SECS",
)


RawResponse: TypeAlias = dict[str, Any]
"""
The decoded JSON body of a successful response.

The elements of the result set are listed in its ``"elements"`` member.
"""

ProgressCallback: TypeAlias = Callable[[str], Awaitable[None] | None]
"""A function that receives human-readable status messages; may be a coroutine function."""


@dataclass(kw_only=True, slots=True, frozen=True)
class Endpoint:
    """
    An Overpass API interpreter that queries can be sent to.

    Attributes:
        url: the full URL of the interpreter, f.e. ``"https://overpass-api.de/api/interpreter"``
        name: an optional name used in log messages instead of the URL
    """

    url: str
    name: str | None = None

    def __post_init__(self) -> None:
        if not self.url.startswith(("http://", "https://")):
            msg = "'url' must be an http(s) URL"
            raise ValueError(msg)

    def __str__(self) -> str:
        return self.name or self.url


DEFAULT_ENDPOINTS: tuple[Endpoint, ...] = (
    Endpoint(url="https://overpass-api.de/api/interpreter", name="overpass-api.de"),
    Endpoint(url="https://lz4.overpass-api.de/api/interpreter", name="lz4.overpass-api.de"),
    Endpoint(url="https://z.overpass-api.de/api/interpreter", name="z.overpass-api.de"),
)
"""Public Overpass API instances, in the order they are tried."""

DEFAULT_USER_AGENT = f"osm-extract/{__version__}"
"""User agent that identifies this package."""

DEFAULT_ATTEMPT_TIMEOUT_SECS = 30.0
"""Time limit for each request, including reading the response."""

_CONTENT_TYPE = "application/x-www-form-urlencoded"


class Client:
    """
    A client that sends queries to a list of Overpass API endpoints.

    Endpoints are tried one after another, in order, until one of them succeeds. Each
    endpoint is tried at most once per call, and each try is limited by its own timeout.
    There is no state shared between calls, so a single client can be used for concurrent
    extractions.

    Args:
        endpoints: The endpoints to try, in order. Plain strings are treated as URLs.
        user_agent: A string used for the User-Agent header.
        attempt_timeout_secs: Time limit for each request. A request that exceeds it is
                              cancelled, and the next endpoint is tried.
        logger: The logger to use for all logging output of this client.

    References:
        - https://wiki.openstreetmap.org/wiki/Overpass_API#Public_Overpass_API_instances
    """

    __slots__ = (
        "_attempt_timeout_secs",
        "_endpoints",
        "_logger",
        "_user_agent",
    )

    def __init__(
        self,
        endpoints: Sequence[Endpoint | str] = DEFAULT_ENDPOINTS,
        user_agent: str = DEFAULT_USER_AGENT,
        attempt_timeout_secs: float = DEFAULT_ATTEMPT_TIMEOUT_SECS,
        logger: logging.Logger = DEFAULT_LOGGER,
    ) -> None:
        if not math.isfinite(attempt_timeout_secs) or attempt_timeout_secs <= 0.0:
            msg = "'attempt_timeout_secs' must be finite > 0"
            raise ValueError(msg)

        self._endpoints = tuple(
            endpoint if isinstance(endpoint, Endpoint) else Endpoint(url=endpoint)
            for endpoint in endpoints
        )
        self._user_agent = user_agent
        self._attempt_timeout_secs = attempt_timeout_secs
        self._logger = logger

    @property
    def endpoints(self) -> tuple[Endpoint, ...]:
        """The endpoints of this client, in the order they are tried."""
        return self._endpoints

    @property
    def attempt_timeout_secs(self) -> float:
        """Time limit for each request."""
        return self._attempt_timeout_secs

    async def fetch(
        self,
        query: str,
        on_progress: ProgressCallback | None = None,
    ) -> RawResponse:
        """
        Send a query to the endpoints of this client, and return the first successful result.

        A try fails if the request times out, if there is any connection error, if the
        response status is not successful, or if the body cannot be parsed.

        Args:
            query: Overpass QL code
            on_progress: called with a status message before each try

        Raises:
            AllEndpointsFailedError: if every endpoint failed. Its ``cause`` is the error
                                     of the last try.
        """
        errors: list[ClientError] = []
        headers = {"User-Agent": self._user_agent}
        timeout = ClientTimeout(total=self._attempt_timeout_secs)

        # use a new session for every call; nothing is shared between calls
        async with aiohttp.ClientSession(headers=headers) as session:
            for nb, endpoint in enumerate(self._endpoints, start=1):
                await _report(on_progress, f"Trying endpoint {nb}...")
                try:
                    return await self._try_endpoint(session, endpoint, query, timeout)
                except ClientError as err:
                    self._logger.warning(f"try #{nb} failed: {err}")
                    errors.append(err)

        if not errors:
            self._logger.error("no endpoints to try")
            raise AllEndpointsFailedError(cause=None)

        cause = errors[-1]
        self._logger.error(f"give up after {len(errors)} tries", exc_info=cause)
        raise AllEndpointsFailedError(cause=cause, errors=errors) from cause

    async def _try_endpoint(
        self,
        session: aiohttp.ClientSession,
        endpoint: Endpoint,
        query: str,
        timeout: ClientTimeout,
    ) -> RawResponse:
        """A single try with a single endpoint."""
        self._logger.info(f"call {endpoint}")
        started = time.monotonic()

        async with _map_request_error(endpoint.url, timeout), session.post(
            url=endpoint.url,
            data=query.encode("utf-8"),
            headers={"Content-Type": _CONTENT_TYPE},
            timeout=timeout,
        ) as response:
            result = await _result_or_raise(endpoint.url, response)

        elapsed = time.monotonic() - started
        self._logger.info(f"{endpoint} responded in {elapsed:.1f}s")
        return result

    def __repr__(self) -> str:
        endpoints = ", ".join(map(str, self._endpoints))
        timeout = f"{self._attempt_timeout_secs:.1f}s"
        return f"{type(self).__name__}(endpoints=[{endpoints}], timeout={timeout})"


async def _report(on_progress: ProgressCallback | None, status: str) -> None:
    """Invoke a progress callback, awaiting it if necessary."""
    if on_progress is None:
        return
    result = on_progress(status)
    if inspect.isawaitable(result):
        await result


@asynccontextmanager
async def _map_request_error(
    url: str,
    timeout: ClientTimeout | None = None,
) -> AsyncIterator[None]:
    """Context to make requests in; maps errors to our exception types."""
    try:
        yield
    except asyncio.TimeoutError as err:
        # some aiohttp timeouts are also client errors, so this goes first
        assert timeout is not None and timeout.total
        raise CallTimeoutError(url=url, cause=err, after_secs=timeout.total) from err
    except aiohttp.ClientError as err:
        raise CallError(url=url, cause=err) from err
