"""Upload and download endpoints."""

import asyncio
import html
from collections.abc import Callable, Iterator
from contextlib import ExitStack
from typing import BinaryIO

from robyn import Headers, Request, Response, StreamingResponse, status_codes

from uploader.core.lifespan import State
from uploader.core.logger import LogIcon, logger
from uploader.core.router import Router, error_response
from uploader.models.core import MultipartUpload
from uploader.transfer.config import TransferConfig
from uploader.transfer.errors import TransferError
from uploader.transfer.paths import resolve_object_path
from uploader.transfer.serve import open_object, stream_object
from uploader.transfer.session import UploadSession

router = Router(__file__, prefix="/")

FILE_FIELD = "theFile"
OCTET_STREAM = "application/octet-stream"


def render_upload_form(config: TransferConfig, message: str = "") -> str:
    """HTML form posting the token field and one file field to /upload."""
    token = html.escape(config.token.decode("utf-8", errors="replace"), quote=True)
    return (
        "<html>"
        "<head><title>Upload A File</title></head>"
        "<body>"
        f"{html.escape(message)}<br>"
        "<form action='/upload' method='POST' enctype='multipart/form-data'>"
        f"<input type='hidden' value='{token}' name='{html.escape(config.token_field, quote=True)}'>"
        f"The File: <input name='{FILE_FIELD}' type='file'>"
        "<input type='submit'>"
        "</form>"
        "</body>"
        "</html>"
    )


def html_response(body: str) -> Response:
    return Response(
        status_code=status_codes.HTTP_200_OK,
        headers={"content-type": "text/html"},
        description=body,
    )


def run_upload(config: TransferConfig, form: MultipartUpload) -> None:
    UploadSession(config).run(form.parts(config.buffer_size))


def open_download(config: TransferConfig, name: str) -> BinaryIO:
    path = resolve_object_path(config.root, name)
    logger.info("Download request", icon=LogIcon.DOWNLOAD, path=str(path))
    return open_object(path)


def release_after(resources: ExitStack, chunks: Iterator[bytes]) -> Iterator[bytes]:
    """Keep ``resources`` held until the response body is exhausted or dropped."""
    with resources:
        yield from chunks


async def upload_form(global_dependencies) -> Response:
    state: State = global_dependencies["state"]
    return html_response(render_upload_form(state.transfer))


async def upload(form: MultipartUpload, global_dependencies) -> Response:
    """Stream every authorized file part of the request to the storage root."""
    state: State = global_dependencies["state"]
    config: TransferConfig = state.transfer
    try:
        with state.admission.admit():
            await asyncio.to_thread(run_upload, config, form)
    except TransferError as ex:
        return error_response(ex)
    return html_response(render_upload_form(config, "ok"))


async def download(request: Request, global_dependencies) -> Response | StreamingResponse:
    """Stream the raw (decrypted when a cipher is configured) stored object.

    Lookup and admission failures are answered before the response starts;
    the admission slot and the open object are released once the body has
    been sent.
    """
    state: State = global_dependencies["state"]
    config: TransferConfig = state.transfer
    name = request.path_params.get("name") or ""
    with ExitStack() as stack:
        try:
            stack.enter_context(state.admission.admit())
            source = await asyncio.to_thread(open_download, config, name)
        except TransferError as ex:
            return error_response(ex)
        chunks = stream_object(source, buffer_size=config.buffer_size, cipher=config.cipher)
        return StreamingResponse(
            content=release_after(stack.pop_all(), chunks),
            status_code=status_codes.HTTP_200_OK,
            headers=Headers({"Content-Type": OCTET_STREAM}),
            media_type=OCTET_STREAM,
        )


ROUTES: tuple[tuple[str, str, Callable], ...] = (
    ("get", "/upload", upload_form),
    ("post", "/upload", upload),
    ("get", "/download/*name", download),
)

for method, path, handler in ROUTES:
    getattr(router, method)(path)(handler)
