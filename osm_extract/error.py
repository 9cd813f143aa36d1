"""
Error types.

```
                              (ExtractError)
                                    ╷
              ┌─────────────────────┼──────────────────────────┐
              ╵                     ╵                          ╵
    InvalidGeometryError   AllEndpointsFailedError       (ClientError)
                                                               ╷
                                                   ┌───────────┴───────────┐
                                                   ╵                       ╵
                                               CallError             ResponseError
                                                   ╷                       ╷
                                                   ╵                       ╵
                                           CallTimeoutError         QueryRemarkError
```
"""

import asyncio
from dataclasses import dataclass, field
from json import JSONDecodeError
from typing import NoReturn, TypeAlias, TypeGuard

import aiohttp


__docformat__ = "google"
__all__ = (
    "ExtractError",
    "InvalidGeometryError",
    "AllEndpointsFailedError",
    "ClientError",
    "CallError",
    "CallTimeoutError",
    "ResponseError",
    "ResponseErrorCause",
    "QueryRemarkError",
    "is_call_err",
    "is_call_timeout",
    "is_timeout_class",
)


MSG_TIMEOUT = "Request timed out. Try a smaller area."
"""User-facing message when the last endpoint failed due to a timeout."""

MSG_FAILED = "Extraction failed."
"""User-facing message for any other failed extraction."""


class ExtractError(Exception):
    """Base exception for failed extractions."""


class InvalidGeometryError(ExtractError, ValueError):
    """
    A ring or bounding box cannot be used for an extraction.

    This is raised for rings with fewer than four points, rings that are not closed,
    and for inverted or degenerate bounding boxes. Retrying is pointless.
    """


class ClientError(ExtractError):
    """Base exception for a single failed request to one endpoint."""

    @property
    def is_timeout(self) -> bool:
        """Returns ``True`` if the request failed because something took too long."""
        return False


@dataclass(kw_only=True)
class CallError(ClientError):
    """
    Failed to make a request.

    This error is raised when the client failed to get any response,
    f.e. due to connection issues.

    Attributes:
        url: the endpoint that was called
        cause: the exception that caused this error
    """

    url: str
    cause: aiohttp.ClientError

    def __str__(self) -> str:
        return f"{self.url}: {self.cause}"


@dataclass(kw_only=True)
class CallTimeoutError(CallError):
    """
    A request timed out, and was cancelled.

    Attributes:
        url: the endpoint that was called
        cause: the exception that caused this error
        after_secs: the configured timeout for the request
    """

    cause: asyncio.TimeoutError  # type: ignore[assignment]
    after_secs: float

    @property
    def is_timeout(self) -> bool:
        """Returns ``True`` if the request failed because something took too long."""
        return True

    def __str__(self) -> str:
        return f"{self.url}: timed out after {self.after_secs:.1f}s"


ResponseErrorCause: TypeAlias = aiohttp.ClientResponseError | JSONDecodeError | ValueError
"""Causes for a ``ResponseError``."""


@dataclass(kw_only=True)
class ResponseError(ClientError):
    """
    Unexpected response.

    Either the status code signals an error, or the body is not the JSON object we expect.

    Attributes:
        url: the endpoint that was called
        status: the HTTP status code
        body: the response body
        cause: an optional exception that may have caused this error
    """

    url: str
    status: int
    body: str
    cause: ResponseErrorCause | None

    @property
    def is_server_error(self) -> bool:
        """Returns ``True`` if this is presumably a server-side error."""
        return self.status >= 500 or isinstance(self.cause, JSONDecodeError)

    def __str__(self) -> str:
        if self.cause is None:
            return f"{self.url}: unexpected response ({self.status})"
        return f"{self.url}: unexpected response ({self.status}): {self.cause}"


@dataclass(kw_only=True)
class QueryRemarkError(ResponseError):
    """
    The server answered with a JSON body, but reports a runtime error in its ``remark``.

    The result set of such a response is incomplete, or empty.

    Attributes:
        remark: the error remark provided by the server
    """

    remark: str

    @property
    def is_timeout(self) -> bool:
        """Returns ``True`` if the query was cancelled by the server for taking too long."""
        return "Query timed out" in self.remark

    def __str__(self) -> str:
        return f"{self.url}: {self.remark!r}"


@dataclass(kw_only=True)
class AllEndpointsFailedError(ExtractError):
    """
    Every endpoint that was tried has failed.

    Attributes:
        cause: the error of the last attempt, or ``None`` if there were no endpoints to try
        errors: the errors of all attempts, in order
    """

    cause: ClientError | None
    errors: list[ClientError] = field(default_factory=list)

    @property
    def is_timeout(self) -> bool:
        """Returns ``True`` if the last attempt failed due to a timeout."""
        return is_timeout_class(self.cause)

    @property
    def user_message(self) -> str:
        """A message that can be presented to end users."""
        return MSG_TIMEOUT if self.is_timeout else MSG_FAILED

    def __str__(self) -> str:
        if self.cause is None:
            return "all endpoints failed: no endpoints to try"
        n = len(self.errors)
        tries = "attempt" if n == 1 else "attempts"
        return f"all endpoints failed after {n} {tries}; last error: {self.cause}"


async def _body_text(response: aiohttp.ClientResponse) -> str:
    """The response body as text; bytes that cannot be decoded are replaced."""
    return await response.text(errors="replace")


async def _raise_for_response(
    url: str,
    response: aiohttp.ClientResponse,
    cause: ResponseErrorCause | None,
) -> NoReturn:
    """Raise a ``ResponseError`` with an optional cause."""
    err = ResponseError(
        url=url,
        status=response.status,
        body=await _body_text(response),
        cause=cause,
    )
    if cause:
        raise err from cause
    raise err


async def _result_or_raise(url: str, response: aiohttp.ClientResponse) -> dict:
    """
    Try to extract the JSON result from a response.

    Raises:
        ResponseError: when the status is not 2xx, or when the body is not a JSON object
        QueryRemarkError: when the body reports a runtime error
    """
    if not 200 <= response.status < 300:
        await _raise_for_response(url, response, cause=None)

    try:
        # overpass instances do not always set a JSON content type
        json = await response.json(content_type=None)
    except aiohttp.ClientResponseError as err:
        await _raise_for_response(url, response, cause=err)
    except (JSONDecodeError, UnicodeDecodeError) as err:
        await _raise_for_response(url, response, cause=err)

    if not isinstance(json, dict):
        await _raise_for_response(url, response, cause=ValueError("expected a JSON object"))

    if (remark := json.get("remark")) and "runtime error" in str(remark):
        raise QueryRemarkError(
            url=url,
            status=response.status,
            body=await _body_text(response),
            cause=None,
            remark=str(remark),
        )

    return json


def is_call_err(err: BaseException | None) -> TypeGuard[CallError]:
    """``True`` if this is a ``CallError``."""
    return isinstance(err, CallError)


def is_call_timeout(err: BaseException | None) -> TypeGuard[CallTimeoutError]:
    """``True`` if this is a ``CallTimeoutError``."""
    return isinstance(err, CallTimeoutError)


def is_timeout_class(err: BaseException | None) -> TypeGuard[ClientError]:
    """``True`` if this is a ``ClientError`` caused by something taking too long."""
    return isinstance(err, ClientError) and err.is_timeout
