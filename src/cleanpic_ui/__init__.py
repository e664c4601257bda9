"""
CleanPic: Watermark Removal by Mask Painting
============================================

CleanPic provides a desktop GUI for removing unwanted content (watermarks,
logos, blemishes) from images. The user uploads an image, paints a mask over
the region to regenerate, and sends the image+mask pair to a remote LaMa
inpainting model; the result is shown side by side with the original.

The application has two processes:

1. **Desktop client**: PySide6 GUI with the mask-authoring workflow
   (upload, painting, single-flight submission, comparison)
2. **Proxy**: FastAPI service with one ``POST /api/remove`` endpoint that
   forwards to a Hugging Face Space through ``gradio_client``

Quick Start
-----------
>>> from cleanpic_ui.core.gateway import SpaceGateway
>>> from cleanpic_ui.core.encoding import to_data_uri
>>>
>>> gw = SpaceGateway()
>>> url = gw.submit(to_data_uri(image_png, "image/png"), to_data_uri(mask_png, "image/png"))

Main Modules
------------
core
    Workflow state machine, mask model, upload I/O, gateways
ui
    PySide6 widgets: upload area, mask canvas, comparison view
server
    FastAPI inpainting proxy

See Also
--------
README.md : Project overview and installation instructions
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
