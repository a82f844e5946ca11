"""Response notifications — one wrapper for every slice's base query.

Learn: The storefront shows a global modal for backend messages. Rather
than each slice inspecting responses, with_notifications() decorates any
base query function:

- error result         → ShowModal(type="error") with the best message
- non-GET success=true → ShowModal(type="success")

It dispatches at most one action per call and returns the result
untouched. It never retries and never raises.
"""

from typing import Any, Callable, Optional, Union

from vitrine.http.base_query import (
    BaseQueryFn,
    FetchArgs,
    QueryApi,
    QueryResult,
    as_fetch_args,
)
from vitrine.state.actions import ShowModal

DEFAULT_ERROR_MESSAGE = "Request failed"
DEFAULT_SUCCESS_MESSAGE = "Operation completed successfully"


class ResponseMessages:
    """Pulls human-readable messages out of backend payloads.

    Subclass to change the priority order or defaults for one slice.
    """

    error_default = DEFAULT_ERROR_MESSAGE
    success_default = DEFAULT_SUCCESS_MESSAGE

    def error_message(self, payload: Any) -> str:
        if isinstance(payload, dict):
            return payload.get("message") or payload.get("error") or self.error_default
        return self.error_default

    def field_errors(self, payload: Any) -> Optional[dict[str, list[str]]]:
        if isinstance(payload, dict) and isinstance(payload.get("errors"), dict):
            return payload["errors"]
        return None

    def success_message(self, payload: Any) -> str:
        if isinstance(payload, dict):
            return payload.get("message") or self.success_default
        return self.success_default


def is_success_payload(data: Any) -> bool:
    return isinstance(data, dict) and data.get("success") is True


def with_notifications(
    inner: BaseQueryFn,
    extractor: Optional[ResponseMessages] = None,
    *,
    skip: Optional[Callable[[FetchArgs], bool]] = None,
    error_title: str = "Request Error",
    success_title: str = "Success",
) -> BaseQueryFn:
    """Wrap a base query so backend outcomes surface as modal actions."""
    extractor = extractor or ResponseMessages()

    async def wrapped(args: Union[FetchArgs, str], api: QueryApi) -> QueryResult:
        args = as_fetch_args(args)
        result = await inner(args, api)

        if skip is not None and skip(args):
            return result

        if result.error is not None:
            payload = result.error.data
            api.store.dispatch(ShowModal(
                type="error",
                title=error_title,
                message=extractor.error_message(payload),
                errors=extractor.field_errors(payload),
            ))
        elif is_success_payload(result.data) and args.method.upper() != "GET":
            api.store.dispatch(ShowModal(
                type="success",
                title=success_title,
                message=extractor.success_message(result.data),
            ))

        return result

    return wrapped
