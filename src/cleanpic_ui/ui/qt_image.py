import numpy as np
from PIL import Image
from PySide6.QtGui import QImage, QPixmap


def pil_to_qimage(img: Image.Image) -> QImage:
    arr = np.ascontiguousarray(np.array(img.convert("RGBA")))
    h, w, _ = arr.shape
    return QImage(arr.data, w, h, 4 * w, QImage.Format.Format_RGBA8888).copy()


def pil_to_qpixmap(img: Image.Image) -> QPixmap:
    return QPixmap.fromImage(pil_to_qimage(img))
