"""
Inference Gateway
=================

This module is the boundary to the remote inpainting model. Every gateway
takes an image and a mask (both data URIs), makes exactly one remote call,
and either returns a single image reference or raises a
:class:`~cleanpic_ui.core.errors.GatewayError`.

Classes
-------
InferenceGateway
    Base class defining the ``submit(image, mask) -> str`` contract
ProxyGateway
    Client-side gateway that POSTs to the CleanPic proxy with ``requests``
SpaceGateway
    Calls the Hugging Face Space directly through ``gradio_client``

Functions
---------
parse_prediction
    Strict parser for the backend's heterogeneous result collection
create_gateway
    Build the gateway selected by ``CLEANPIC_GATEWAY``

Notes
-----
Response normalisation: the Space returns an ordered collection whose first
element is the output image. That element may be a URL, a data URI, a local
file path (``gradio_client`` downloads files), or a file-data mapping with a
``url``/``path`` key. Anything else, including an empty collection, is an
:class:`EmptyResult`.

Timeouts: the whole round trip is bounded by ``MAX_DURATION`` seconds
(60 by default). Exceeding it raises :class:`GatewayTimeout`, distinct from
:class:`UpstreamError` which wraps every transport or backend failure.

Examples
--------
>>> from cleanpic_ui.core.gateway import ProxyGateway
>>> gw = ProxyGateway("http://127.0.0.1:8000/api/remove")
>>> url = gw.submit(image_uri, mask_uri)

See Also
--------
cleanpic_ui.server.app : Proxy that serves ``ProxyGateway`` requests
cleanpic_ui.core.workflow : Calls ``submit`` from a background task
"""

import concurrent.futures
import logging
import tempfile
import time
from pathlib import Path

import httpx
import requests

from cleanpic_ui.config import (
    GATEWAY_MODE,
    HF_TOKEN,
    MAX_DURATION,
    PROXY_URL,
    SPACE_API_NAME,
    SPACE_ID,
)
from .encoding import is_data_uri, parse_data_uri, to_data_uri
from .errors import (
    EmptyResult,
    GatewayError,
    GatewayTimeout,
    InvalidInput,
    UpstreamError,
    gateway_error_for,
)

log = logging.getLogger(__name__)

# head room so the proxy's own 504 reaches the client before requests gives up
PROXY_TIMEOUT_MARGIN = 5.0


def _as_reference(value) -> str:
    if isinstance(value, str):
        ref = value.strip()
        if ref:
            return ref
    elif isinstance(value, dict):
        for key in ("url", "path"):
            ref = value.get(key)
            if isinstance(ref, str) and ref.strip():
                return ref.strip()
    raise EmptyResult("The model did not return a valid image", f"unexpected output: {type(value).__name__}")


def parse_prediction(raw) -> str:
    """
    Extract the output image reference from a backend result.

    Parameters
    ----------
    raw : object
        Result as returned by the backend: a mapping with a ``data`` list, a
        list/tuple, or a single value

    Returns
    -------
    str
        Image reference (URL, data URI, or local path)

    Raises
    ------
    EmptyResult
        If the collection is empty or its first element is not an image
        reference

    Examples
    --------
    >>> parse_prediction({"data": ["https://host/out.png"]})
    'https://host/out.png'
    >>> parse_prediction(("/tmp/gradio/out.webp", None))
    '/tmp/gradio/out.webp'
    """
    value = raw
    if isinstance(value, dict) and "data" in value:
        value = value["data"]
    if isinstance(value, (list, tuple)):
        if not value:
            raise EmptyResult("The model did not return a valid image", "empty result collection")
        value = value[0]
    if value is None:
        raise EmptyResult("The model did not return a valid image", "no output")
    return _as_reference(value)


def _check_inputs(image: str, mask: str):
    for name, value in (("image", image), ("mask", mask)):
        if not isinstance(value, str) or not value:
            raise InvalidInput(f"Missing {name}")


class InferenceGateway:
    """
    Base class for inference gateways.

    Subclasses implement :meth:`submit`. Implementations must raise only
    :class:`GatewayError` subclasses (or :class:`InvalidInput` for bad
    arguments) and never let transport exceptions escape.
    """

    name = "gateway"

    def submit(self, image: str, mask: str) -> str:
        raise NotImplementedError


class ProxyGateway(InferenceGateway):
    """
    Gateway that forwards to the CleanPic proxy over HTTP.

    Parameters
    ----------
    endpoint : str
        Proxy URL accepting ``POST {image, mask}``
    max_duration : float
        Ceiling for the remote round trip in seconds
    session : requests.Session, optional
        Session to reuse; one is created if omitted
    """

    name = "proxy"

    def __init__(self, endpoint: str = PROXY_URL, max_duration: float = MAX_DURATION, session=None):
        self.endpoint = endpoint
        self.max_duration = max_duration
        self.session = session or requests.Session()

    def submit(self, image: str, mask: str) -> str:
        _check_inputs(image, mask)
        log.info("POST %s", self.endpoint)
        try:
            response = self.session.post(
                self.endpoint,
                json={"image": image, "mask": mask},
                timeout=self.max_duration + PROXY_TIMEOUT_MARGIN,
            )
        except requests.exceptions.Timeout as e:
            raise GatewayTimeout(
                "The request timed out", f"no response within {self.max_duration:.0f}s"
            ) from e
        except requests.exceptions.RequestException as e:
            raise UpstreamError("Network error or model busy", str(e)) from e

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamError(
                "Invalid response from proxy", f"HTTP {response.status_code}: {response.text[:200]}"
            ) from e
        if not isinstance(body, dict):
            raise UpstreamError("Invalid response from proxy", f"HTTP {response.status_code}")

        if not response.ok:
            code = body.get("code")
            if code is None and response.status_code == 504:
                code = GatewayTimeout.kind
            raise gateway_error_for(
                code,
                str(body.get("error") or f"HTTP {response.status_code}"),
                body.get("details") or None,
            )

        ref = _as_reference(body.get("url"))
        log.info("Proxy returned result reference (%d chars)", len(ref))
        return ref


def _default_client_factory(space_id: str):
    from gradio_client import Client

    return Client(space_id, token=HF_TOKEN, verbose=False)


def _local_file_to_data_uri(ref: str) -> str:
    from .upload import guess_mime_type

    p = Path(ref)
    if not p.is_file():
        return ref
    mime = guess_mime_type(p)
    if not mime.startswith("image/"):
        mime = "image/png"
    return to_data_uri(p.read_bytes(), mime)


class SpaceGateway(InferenceGateway):
    """
    Gateway that calls a Hugging Face Space through ``gradio_client``.

    The Space's ``/predict`` endpoint takes ``[image, mask]`` positionally and
    returns a collection whose first element is the output image.

    Parameters
    ----------
    space_id : str
        Space identifier, e.g. ``"efederici/lama-inpainting-demo"``
    api_name : str
        Endpoint name on the Space
    max_duration : float
        Ceiling for the whole round trip in seconds
    client_factory : callable, optional
        ``space_id -> client``; defaults to ``gradio_client.Client``

    Notes
    -----
    The ``gradio_client.Client`` is created on first use and cached. Inputs
    are written to a temporary directory and passed with
    ``gradio_client.handle_file``; file outputs downloaded by the client are
    returned inline as data URIs so callers never see server-local paths.
    """

    name = "direct"

    def __init__(
        self,
        space_id: str = SPACE_ID,
        api_name: str = SPACE_API_NAME,
        max_duration: float = MAX_DURATION,
        client_factory=None,
    ):
        self.space_id = space_id
        self.api_name = api_name
        self.max_duration = max_duration
        self.client_factory = client_factory or _default_client_factory
        self._client = None

    def _get_client(self):
        if self._client is None:
            log.info("Connecting to Space %s", self.space_id)
            self._client = self.client_factory(self.space_id)
        return self._client

    def _timeout(self, started: float) -> GatewayTimeout:
        return GatewayTimeout(
            "The model did not respond in time",
            f"exceeded {self.max_duration:.0f}s after {time.monotonic() - started:.1f}s",
        )

    def submit(self, image: str, mask: str) -> str:
        _check_inputs(image, mask)
        started = time.monotonic()
        with tempfile.TemporaryDirectory(prefix="cleanpic_") as tmp:
            try:
                args = [self._prepare_input(image, Path(tmp) / "image"), self._prepare_input(mask, Path(tmp) / "mask")]
                client = self._get_client()
                remaining = self.max_duration - (time.monotonic() - started)
                if remaining <= 0:
                    raise self._timeout(started)
                job = client.submit(*args, api_name=self.api_name)
                try:
                    raw = job.result(timeout=remaining)
                except (TimeoutError, concurrent.futures.TimeoutError):
                    job.cancel()
                    raise self._timeout(started) from None
                ref = parse_prediction(raw)
                if not is_data_uri(ref) and not ref.startswith(("http://", "https://")):
                    ref = _local_file_to_data_uri(ref)
            except (GatewayError, InvalidInput):
                raise
            except httpx.TimeoutException as e:
                raise self._timeout(started) from e
            except Exception as e:
                log.exception("Space %s call failed", self.space_id)
                raise UpstreamError("Processing failed, please try again later", str(e) or type(e).__name__) from e
        log.info("Space %s answered in %.1fs", self.space_id, time.monotonic() - started)
        return ref

    def _prepare_input(self, uri: str, stem: Path):
        from gradio_client import handle_file

        data, mime = parse_data_uri(uri)
        suffix = {"image/jpeg": ".jpg", "image/webp": ".webp"}.get(mime, ".png")
        path = stem.with_suffix(suffix)
        path.write_bytes(data)
        return handle_file(str(path))


def create_gateway(mode: str = GATEWAY_MODE) -> InferenceGateway:
    """
    Build the gateway for a mode name.

    Parameters
    ----------
    mode : str
        ``"proxy"`` or ``"direct"``

    Returns
    -------
    InferenceGateway
        Configured gateway
    """
    if mode == "proxy":
        return ProxyGateway()
    if mode == "direct":
        return SpaceGateway()
    raise ValueError(f"Unknown gateway mode '{mode}'. Available: proxy, direct")
