"""
Core Application Logic for CleanPic
===================================

This module contains the logic behind the CleanPic client and proxy:

- **Workflow**: state machine for upload → paint → submit → compare
- **Session state**: in-memory data model for one editing session
- **Mask model**: ordered stroke buffer and rasterisation
- **Upload I/O**: validation, background decoding, result download
- **Gateways**: remote inference boundary with uniform errors
- **Comparison**: split-view geometry and drag lifetime
- **Background tasks**: thread pool execution for blocking work

Workflow Phases
---------------
``EMPTY → LOADED → EDITING → SUBMITTING → SUCCEEDED | FAILED``

- ``LOADED → EDITING`` only happens when the decoder reports the image size
- At most one request is in flight; a second ``submit`` raises ``NotReady``
- ``reset`` from any phase returns to ``EMPTY``; late replies are dropped

Error Taxonomy
--------------
- ``InvalidInput``: bad or missing upload
- ``NotReady``: action not allowed in the current phase
- ``GatewayTimeout``, ``EmptyResult``, ``UpstreamError``: gateway failures

Examples
--------
>>> from cleanpic_ui.core import WorkflowController, ProxyGateway
>>>
>>> ctrl = WorkflowController(ProxyGateway())
>>> token = ctrl.load_image(png_bytes, "image/png")
>>> ctrl.image_decoded(token, 800, 600)
>>> ctrl.mount_surface(800, 600)
>>> ctrl.paint_stroke([(100, 100), (300, 120)])
>>> ctrl.submit()

Modules
-------
workflow
    Workflow controller (QObject state machine)
session
    Phase, SourceImage, InferenceResult, ErrorDescriptor, WorkflowSession
mask
    Stroke, MaskLayer, MaskSnapshot, rasterisation
upload
    Upload validation, decoding, and result I/O
gateway
    Proxy and Space gateways, response parsing
comparison
    Split position helpers and drag tracking
encoding
    Data URI encoding
errors
    Exception classes
tasks
    QThreadPool wrapper for background task execution

See Also
--------
cleanpic_ui.ui : PySide6 GUI components
cleanpic_ui.server : FastAPI proxy
"""

from .errors import CleanPicError, InvalidInput, NotReady, GatewayError, GatewayTimeout, EmptyResult, UpstreamError
from .gateway import InferenceGateway, ProxyGateway, SpaceGateway, create_gateway, parse_prediction
from .mask import MaskLayer, MaskSnapshot, Stroke
from .session import Phase, SourceImage, InferenceResult, ErrorDescriptor, WorkflowSession
from .tasks import submit
from .workflow import WorkflowController

__all__ = [
    "CleanPicError",
    "InvalidInput",
    "NotReady",
    "GatewayError",
    "GatewayTimeout",
    "EmptyResult",
    "UpstreamError",
    "InferenceGateway",
    "ProxyGateway",
    "SpaceGateway",
    "create_gateway",
    "parse_prediction",
    "MaskLayer",
    "MaskSnapshot",
    "Stroke",
    "Phase",
    "SourceImage",
    "InferenceResult",
    "ErrorDescriptor",
    "WorkflowSession",
    "submit",
    "WorkflowController",
]
