"""
utils/fileops.py
Small file and I/O helpers: ensure directories, save evidence stills, create unique names, timestamp helpers.
"""

import io
import os
import uuid
from datetime import datetime, timezone

import numpy as np
from PIL import Image

# NOTE: Pillow is used for still images; video evidence goes through OpenCV in inference/capture.py.


def ensure_dir(path: str) -> None:
    """Create directory if it does not exist."""
    if path and not os.path.exists(path):
        os.makedirs(path, exist_ok=True)


def timestamp_now() -> str:
    """Return ISO-like UTC timestamp safe for filenames."""
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def make_unique_filename(prefix: str = "img", ext: str = ".jpg") -> str:
    """Create a unique filename with uuid and timestamp."""
    uid = uuid.uuid4().hex[:8]
    return f"{prefix}_{timestamp_now()}_{uid}{ext}"


def save_image_pil(image, save_path: str, quality: int = 85, bgr: bool = True) -> None:
    """
    Save a still to disk as JPEG.
    Accepts a PIL image, encoded image bytes, or a numpy array (BGR from OpenCV unless bgr=False).
    """
    ensure_dir(os.path.dirname(save_path))
    if hasattr(image, "save"):
        image.convert("RGB").save(save_path, format="JPEG", quality=quality)
    elif isinstance(image, (bytes, bytearray)):
        Image.open(io.BytesIO(image)).convert("RGB").save(save_path, format="JPEG", quality=quality)
    elif isinstance(image, np.ndarray):
        arr = image[:, :, ::-1] if (bgr and image.ndim == 3) else image
        Image.fromarray(np.ascontiguousarray(arr)).convert("RGB").save(save_path, format="JPEG", quality=quality)
    else:
        raise ValueError(f"Cannot save image, unsupported type: {type(image)}")


def safe_join(root: str, filename: str) -> str:
    """Safe join ensuring path is inside root (prevents path traversal)."""
    root_abs = os.path.abspath(root)
    final_path = os.path.abspath(os.path.join(root_abs, filename))
    if os.path.commonpath([root_abs, final_path]) != root_abs or final_path == root_abs:
        raise ValueError("Attempt to write outside target directory")
    return final_path
