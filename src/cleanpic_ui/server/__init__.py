"""
Inpainting proxy server.

Exposes :func:`create_app`; run it with ``apps/proxy_app.py`` or
``uvicorn --factory cleanpic_ui.server:create_app``.
"""

from .app import create_app

__all__ = ["create_app"]
