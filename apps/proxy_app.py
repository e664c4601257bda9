#!/usr/bin/env python
"""
CleanPic Proxy Entry Point.

Serves ``POST /api/remove`` and forwards requests to the configured
inpainting Space.
"""

import sys
from pathlib import Path

# Add src to path for development
src_path = Path(__file__).parent.parent / "src"
if src_path.exists():
    sys.path.insert(0, str(src_path))

import uvicorn  # noqa: E402
from cleanpic_ui.config import HOST, PORT, SPACE_ID  # noqa: E402
from cleanpic_ui.logger import setup_logging  # noqa: E402
from cleanpic_ui.server import create_app  # noqa: E402


def main():
    """
    Run the proxy with uvicorn.

    Returns
    -------
    int
        Exit code (0 for success)
    """
    setup_logging()
    print(f"Forwarding to Space {SPACE_ID} on http://{HOST}:{PORT}")
    uvicorn.run(create_app(), host=HOST, port=PORT, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
