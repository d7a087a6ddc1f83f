"""OpenAPI patch documenting the multipart/form-data upload endpoints."""

import orjson
from robyn import Request, Response

from uploader.api.transfers import FILE_FIELD
from uploader.core.logger import LogIcon, logger
from uploader.core.router import FILE_UPLOAD_ENDPOINTS
from uploader.core.settings import settings as st
from uploader.middlewares.base import BaseMiddleware


def upload_request_body(token_field: str) -> dict:
    """OpenAPI requestBody for a token field followed by one binary file field."""
    return {
        "content": {
            "multipart/form-data": {
                "schema": {
                    "type": "object",
                    "properties": {
                        token_field: {
                            "type": "string",
                            "description": "Upload token, must precede the file parts",
                        },
                        FILE_FIELD: {
                            "type": "string",
                            "format": "binary",
                            "description": "File to upload",
                        },
                    },
                    "required": [token_field, FILE_FIELD],
                }
            }
        },
        "required": True,
    }


class FileUploadOpenAPIMiddleware(BaseMiddleware):
    """Patches OpenAPI responses to use multipart/form-data for upload endpoints."""

    endpoints = frozenset(["/openapi.json"])

    def __init__(self) -> None:
        super().__init__(self.endpoints)

    def before(self, request: Request) -> Request:
        return request

    def after(self, response: Response) -> Response:
        if not FILE_UPLOAD_ENDPOINTS:
            return response

        try:
            spec = orjson.loads(response.description)
        except orjson.JSONDecodeError as ex:
            logger.warning("OpenAPI document is not JSON, left unpatched", icon=LogIcon.WARNING, error=str(ex))
            return response

        paths = spec.get("paths", {})
        for endpoint in FILE_UPLOAD_ENDPOINTS:
            for method in paths.get(endpoint, {}):
                paths[endpoint][method]["requestBody"] = upload_request_body(st.TOKEN_FIELD)

        response.description = orjson.dumps(spec).decode()
        return response
