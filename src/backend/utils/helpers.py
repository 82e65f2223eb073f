import base64
import json
import os
import re
from datetime import datetime
from typing import Any, Optional

from utils.types import InputImage

IMAGE_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}

UNSAFE_FILENAME_RE = re.compile(r"[^a-zA-Z0-9._-]")


def formatSSEMessage(event) -> str:
    return f"data: {json.dumps(event, default=str)}\n\n"


def safeFilename(name: str, fallback: str = "file") -> str:
    return UNSAFE_FILENAME_RE.sub("_", name or "") or fallback


def makeRunDir(base_dir: str = "runs", now: Optional[datetime] = None) -> str:
    """Creates <base_dir>/YYYYMMDD_HHMMSS and returns its path."""
    now = now or datetime.now()
    full = os.path.join(base_dir, now.strftime("%Y%m%d_%H%M%S"))
    os.makedirs(full, exist_ok=True)
    return full


def readTextIfExists(file_path: Optional[str]) -> Optional[str]:
    if not file_path or not os.path.exists(file_path):
        return None
    with open(file_path, "r", encoding="utf-8") as f:
        return f.read()


def writeText(file_path: str, content: str) -> str:
    os.makedirs(os.path.dirname(file_path) or ".", exist_ok=True)
    with open(file_path, "w", encoding="utf-8", newline="") as f:
        f.write(content)
    return file_path


def writeJson(file_path: str, data: Any) -> str:
    return writeText(file_path, json.dumps(data, indent=2) + "\n")


def mimeFromExt(ext: str) -> Optional[str]:
    return IMAGE_MIME_TYPES.get(ext.lower())


def extFromMimeType(mime_type: Optional[str]) -> str:
    mt = (mime_type or "").lower()
    if mt == "image/png":
        return ".png"
    if mt in ("image/jpeg", "image/jpg"):
        return ".jpg"
    if mt == "image/webp":
        return ".webp"
    return ".bin"


def loadImageAsBase64(file_path: str) -> InputImage:
    ext = os.path.splitext(file_path)[1]
    mime_type = mimeFromExt(ext)
    if not mime_type:
        raise ValueError(f"Unsupported image extension: {ext} (use .png/.jpg/.jpeg/.webp)")

    with open(file_path, "rb") as f:
        data = f.read()
    return InputImage(
        mime_type=mime_type,
        base64=base64.b64encode(data).decode("ascii"),
        filename=os.path.basename(file_path),
    )
