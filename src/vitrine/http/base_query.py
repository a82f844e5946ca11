"""Base query — one HTTP round trip, errors returned as data.

Learn: Nothing in the HTTP layer raises for a bad status. A call always
produces a QueryResult with either `data` or `error`, so the cache can
store rejected entries and the notification middleware can inspect them.
Callers that prefer exceptions use QueryResult.unwrap().

Error statuses follow the storefront's conventions:
- an int HTTP status for any non-2xx response
- "FETCH_ERROR" when the request never got a response
- "PARSING_ERROR" when a response body isn't valid JSON
"""

import json
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Literal, Optional, Union

import httpx
import structlog

from vitrine.state.store import Store

logger = structlog.get_logger()


class ApiError(Exception):
    """Raised by QueryResult.unwrap() for a failed request."""

    def __init__(self, error: "FetchError"):
        self.error = error
        super().__init__(f"{error.status}: {error.message}")


@dataclass
class FetchArgs:
    url: str = ""
    method: str = "GET"
    params: Optional[dict[str, Any]] = None
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class FetchError:
    status: Union[int, str]
    data: Any = None
    error: Optional[str] = None

    @property
    def message(self) -> str:
        if isinstance(self.data, dict):
            return self.data.get("message") or self.data.get("error") or "Request failed"
        return self.error or "Request failed"


@dataclass
class QueryResult:
    data: Any = None
    error: Optional[FetchError] = None
    status_code: Optional[int] = None
    request_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise ApiError(self.error)
        return self.data


@dataclass
class QueryApi:
    """What a base query knows about its caller besides the args."""

    store: Store
    endpoint: str
    type: Literal["query", "mutation"] = "query"


BaseQueryFn = Callable[[FetchArgs, QueryApi], Awaitable[QueryResult]]


def as_fetch_args(args: Union[FetchArgs, str]) -> FetchArgs:
    if isinstance(args, str):
        return FetchArgs(url=args)
    return args


def join_url(base: str, url: str) -> str:
    """Join a slice base URL and an endpoint URL.

    Absolute endpoint URLs win; an empty URL is the base itself; a bare
    querystring is appended directly.
    """
    if not base:
        return url
    if not url:
        return base
    if url.startswith(("http://", "https://")):
        return url
    if url.startswith("?"):
        return base + url
    return base.rstrip("/") + "/" + url.lstrip("/")


def serialize_params(params: Optional[dict[str, Any]]) -> list[tuple[str, str]]:
    """Querystring pairs, skipping None and empty strings."""
    pairs: list[tuple[str, str]] = []
    for key, value in (params or {}).items():
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        pairs.append((key, str(value)))
    return pairs


class BaseQuery:
    """Performs requests against one slice's base URL with the session token."""

    def __init__(self, http: httpx.AsyncClient, base_url: str):
        self.http = http
        self.base_url = base_url

    async def __call__(self, args: Union[FetchArgs, str], api: QueryApi) -> QueryResult:
        request_id = str(uuid.uuid4())
        # Bound for every log line emitted while this request is in flight
        with structlog.contextvars.bound_contextvars(request_id=request_id):
            return await self._send(as_fetch_args(args), api, request_id)

    async def _send(self, args: FetchArgs, api: QueryApi, request_id: str) -> QueryResult:
        url = join_url(self.base_url, args.url)

        headers = {"X-Request-ID": request_id, **args.headers}
        token = api.store.token
        if token:
            headers["Authorization"] = f"Bearer {token}"

        kwargs: dict[str, Any] = {"headers": headers}
        params = serialize_params(args.params)
        if params:
            kwargs["params"] = params
        if args.body is not None:
            kwargs["json"] = args.body

        log = logger.bind(endpoint=api.endpoint, method=args.method, url=url)

        try:
            response = await self.http.request(args.method, url, **kwargs)
        except httpx.HTTPError as e:
            log.warning("http.request_failed", error=str(e))
            return QueryResult(
                error=FetchError(status="FETCH_ERROR", error=str(e)),
                request_id=request_id,
            )

        text = response.text
        try:
            body = json.loads(text) if text else None
        except json.JSONDecodeError as e:
            log.warning("http.parsing_error", status_code=response.status_code)
            return QueryResult(
                error=FetchError(status="PARSING_ERROR", data=text, error=str(e)),
                status_code=response.status_code,
                request_id=request_id,
            )

        if response.is_success:
            log.debug("http.response", status_code=response.status_code)
            return QueryResult(
                data=body,
                status_code=response.status_code,
                request_id=request_id,
            )

        log.info("http.error_response", status_code=response.status_code)
        return QueryResult(
            error=FetchError(status=response.status_code, data=body),
            status_code=response.status_code,
            request_id=request_id,
        )
