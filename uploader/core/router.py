"""Router with streaming upload binding and response handling."""

import inspect
import io
from collections.abc import Callable
from functools import wraps
from typing import Any

import orjson
from pydantic import BaseModel
from robyn import Request, Response, StreamingResponse, SubRouter, status_codes
from robyn.robyn import HttpMethod

from uploader.models.core import MultipartUpload
from uploader.transfer.errors import TransferError
from uploader.transfer.multipart import boundary_from_content_type

FILE_UPLOAD_ENDPOINTS: set[str] = set()


def parse_endpoint_signature(sig: inspect.Signature) -> set[str]:
    """Parse function signature for multipart upload parameters."""
    return {name for name, param in sig.parameters.items() if param.annotation is MultipartUpload}


def request_body_stream(request: Request) -> io.BytesIO:
    """Expose the request body as a blocking byte source."""
    body = request.body
    if isinstance(body, str):
        body = body.encode("utf-8", errors="surrogateescape")
    return io.BytesIO(body or b"")


def parse_request_multipart(
    upload_params: set[str],
    request: Request,
    kwargs: dict[str, Any],
) -> Response | None:
    """Bind a streaming MultipartUpload to each upload parameter."""
    if not upload_params:
        return None

    try:
        boundary = boundary_from_content_type(request.headers.get("content-type"))
    except TransferError as ex:
        return error_response(ex)

    source = request_body_stream(request)
    for param_name in upload_params:
        kwargs[param_name] = MultipartUpload(source, boundary)

    return None


def error_response(error: TransferError) -> Response:
    """Convert a transfer failure to a plain-text error Response."""
    return Response(
        status_code=error.status_code,
        headers={"content-type": "text/plain"},
        description=error.message,
    )


def parse_response(result: Any) -> Response | StreamingResponse:
    """Convert handler result to Response."""
    match result:
        case Response() | StreamingResponse():
            return result
        case BaseModel():
            return Response(
                status_code=status_codes.HTTP_200_OK,
                headers={"content-type": "application/json"},
                description=result.model_dump_json(indent=4),
            )
        case dict():
            return Response(
                status_code=status_codes.HTTP_200_OK,
                headers={"content-type": "application/json"},
                description=orjson.dumps(result).decode(),
            )
        case _:
            return Response(
                status_code=status_codes.HTTP_200_OK,
                headers={},
                description=str(result),
            )


HTTP_METHODS = (
    HttpMethod.GET,
    HttpMethod.POST,
    HttpMethod.PUT,
    HttpMethod.DELETE,
    HttpMethod.PATCH,
    HttpMethod.HEAD,
    HttpMethod.OPTIONS,
    HttpMethod.TRACE,
    HttpMethod.CONNECT,
)


def _create_method_wrapper(original_method: Callable, router_prefix: str = "") -> Callable:
    @wraps(original_method)
    def method_wrapper(*args, **kwargs) -> Callable:
        endpoint = args[0] if args else kwargs.get("endpoint", "")
        decorator = original_method(*args, **kwargs)

        def handler_decorator(handler: Callable) -> Callable:
            sig = inspect.signature(handler)
            upload_params = parse_endpoint_signature(sig)
            has_request_param = "request" in sig.parameters

            if upload_params:
                full_path = f"{router_prefix}{endpoint}".replace("//", "/")
                FILE_UPLOAD_ENDPOINTS.add(full_path)

            @wraps(handler)
            async def wrapped_handler(request: Request, **h_kwargs):
                if upload_params and (error := parse_request_multipart(upload_params, request, h_kwargs)):
                    return error

                # Pass request to handler only if it declared it
                if has_request_param:
                    h_kwargs["request"] = request

                result = await handler(**h_kwargs)
                return parse_response(result)

            # Build signature: always include request for Robyn injection
            new_params = [inspect.Parameter("request", inspect.Parameter.POSITIONAL_OR_KEYWORD, annotation=Request)]
            new_params += [
                param for name, param in sig.parameters.items() if name != "request" and name not in upload_params
            ]

            wrapped_handler.__signature__ = sig.replace(parameters=new_params)  # type: ignore[attr-defined]
            return decorator(wrapped_handler)

        return handler_decorator

    return method_wrapper


class Router(SubRouter):
    """Enhanced SubRouter with streaming upload binding and response handling."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._prefix = kwargs.get("prefix", "")
        self._wrap_methods()

    def _wrap_methods(self) -> None:
        """Wrap HTTP methods with parsing logic."""
        for method in HTTP_METHODS:
            method_name = str(method).split(".")[-1].lower()
            if hasattr(self, method_name):
                original_method = getattr(self, method_name)
                wrapped_method = _create_method_wrapper(original_method, self._prefix)
                setattr(self, method_name, wrapped_method)
