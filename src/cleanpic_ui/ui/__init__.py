"""
UI Components for CleanPic
==========================

This module provides the PySide6 graphical user interface:

1. **Upload page**
   - Click to pick a file or drag an image onto the drop zone
   - JPG, PNG, WEBP up to the configured size limit

2. **Editor page**
   - Paint the mask over the image (brush size 5–50, eraser, undo, clear)
   - Submit image + mask to the inpainting model
   - Compare original and result with a draggable split handle
   - Download the result

Design Philosophy
-----------------
- Buttons enable/disable based on the workflow phase
- The canvas accepts strokes only once the image is decoded
- Blocking work runs through ``core.tasks.submit``

UI Components
-------------
MainWindow
    Upload page / editor page container
UploadArea
    Drop zone and file picker
EditorPanel
    Mask editor, submit controls, and result panel
MaskCanvas
    Image with freehand mask overlay
CompareView
    Before/after split view

See Also
--------
cleanpic_ui.core : Workflow and state management
apps.gui_app : Entry point for launching the GUI
"""

__all__ = []
