"""
Inpainting proxy
================

FastAPI application with a single ``POST /api/remove`` endpoint. It accepts
``{image, mask}`` data URIs, forwards them to the configured Space in one
call, and answers ``{url}`` or ``{error, details, code}``.

Status codes: 400 invalid input, 502 empty result or upstream failure
(including unexpected gateway exceptions), 504 timeout.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cleanpic_ui import __version__
from cleanpic_ui.config import CORS_ORIGINS
from cleanpic_ui.core.encoding import parse_data_uri
from cleanpic_ui.core.errors import CleanPicError, GatewayTimeout, InvalidInput, UpstreamError
from cleanpic_ui.core.gateway import InferenceGateway, SpaceGateway
from .schemas import ErrorResponse, RemoveRequest, RemoveResponse

log = logging.getLogger(__name__)

STATUS_CODES = {
    InvalidInput.kind: 400,
    GatewayTimeout.kind: 504,
}


def _error_response(exc: CleanPicError) -> JSONResponse:
    body = ErrorResponse(error=exc.message, details=exc.detail or "", code=exc.kind)
    return JSONResponse(status_code=STATUS_CODES.get(exc.kind, 502), content=body.model_dump())


def _validate_payload(payload: RemoveRequest):
    for name in ("image", "mask"):
        _, mime = parse_data_uri(getattr(payload, name))
        if not mime.startswith("image/"):
            raise InvalidInput(f"Invalid {name}", f"expected an image data URI, got {mime}")


def create_app(gateway: InferenceGateway | None = None) -> FastAPI:
    """
    Build the proxy application.

    Parameters
    ----------
    gateway : InferenceGateway, optional
        Backend gateway; defaults to a :class:`SpaceGateway` built from the
        environment

    Returns
    -------
    FastAPI
        Configured application
    """
    app = FastAPI(
        title="CleanPic inpainting proxy",
        description="Forwards image + mask pairs to a LaMa inpainting Space.",
        version=__version__,
    )
    app.state.gateway = gateway or SpaceGateway()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(CleanPicError)
    async def _cleanpic_error(request: Request, exc: CleanPicError):
        log.warning("%s %s failed: %s", request.method, request.url.path, exc)
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        fields = ", ".join(".".join(str(p) for p in err["loc"][1:]) or "body" for err in exc.errors())
        return _error_response(InvalidInput("image and mask are required", fields))

    @app.get("/")
    def read_root():
        gw = app.state.gateway
        return {"status": "ok", "space": getattr(gw, "space_id", gw.name)}

    @app.post(
        "/api/remove",
        response_model=RemoveResponse,
        responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}, 504: {"model": ErrorResponse}},
    )
    def remove(payload: RemoveRequest):
        # sync handler: FastAPI runs it in the threadpool, the gateway blocks
        _validate_payload(payload)
        log.info("Forwarding inpainting request (%d + %d chars)", len(payload.image), len(payload.mask))
        try:
            url = app.state.gateway.submit(payload.image, payload.mask)
        except CleanPicError:
            raise
        except Exception as e:
            log.exception("Gateway raised an unexpected error")
            raise UpstreamError("Processing failed, please try again later", str(e) or type(e).__name__) from e
        return RemoveResponse(url=url)

    return app
