"""Clipboard paste support and pasted-image upload.

Image upload to blob storage is an external collaborator; anything with an
``upload(image_bytes) -> url`` method can be plugged in. The bundled
``DataUrlImageUploader`` keeps images inline as PNG data URLs.
"""

from __future__ import annotations

import base64
import logging
from pathlib import Path
from typing import Callable, Protocol, TYPE_CHECKING

from PySide6.QtCore import QBuffer, QByteArray, QIODevice, QUrl, Slot
from PySide6.QtGui import QGuiApplication, QImage

from .errors import UploadError

if TYPE_CHECKING:
    from .model import NoteCanvasModel

logger = logging.getLogger(__name__)

SUPPORTED_IMAGE_MIME_TYPES = (
    "image/png",
    "image/jpeg",
    "image/jpg",
    "image/webp",
    "image/bmp",
    "image/gif",
)


class ImageUploader(Protocol):
    """Turns pasted image bytes into a URL a note can display."""

    def upload(self, image_bytes: bytes) -> str:
        ...


def image_to_png_base64(image: QImage) -> str:
    """Return a PNG base64 payload for a QImage, or empty string on failure."""
    if image.isNull():
        return ""

    byte_array = QByteArray()
    buffer = QBuffer(byte_array)
    if not buffer.open(QIODevice.WriteOnly):
        return ""
    save_ok = image.save(buffer, "PNG")
    buffer.close()
    if not save_ok:
        return ""

    raw = bytes(byte_array)
    if not raw:
        return ""
    return base64.b64encode(raw).decode("ascii")


def png_data_url(image: QImage) -> str:
    payload = image_to_png_base64(image)
    if not payload:
        return ""
    return f"data:image/png;base64,{payload}"


class DataUrlImageUploader:
    """Re-encode pasted images as PNG data URLs without leaving the process."""

    def upload(self, image_bytes: bytes) -> str:
        if not image_bytes:
            raise UploadError("No image data to upload")
        image = QImage.fromData(image_bytes)
        url = png_data_url(image)
        if not url:
            raise UploadError("Failed to upload image")
        return url


def _image_bytes_from_url(url: QUrl) -> bytes:
    if not url.isLocalFile():
        return b""
    path = Path(url.toLocalFile())
    if not path.is_file():
        return b""
    try:
        return path.read_bytes()
    except OSError:
        return b""


def read_clipboard_image() -> bytes:
    """Return encoded image bytes from the system clipboard, or b''."""
    clipboard = QGuiApplication.clipboard()
    if clipboard is None:
        return b""
    mime_data = clipboard.mimeData()
    if mime_data is None:
        return b""

    if mime_data.hasImage():
        payload = image_to_png_base64(clipboard.image())
        if payload:
            return base64.b64decode(payload)

    for mime_type in SUPPORTED_IMAGE_MIME_TYPES:
        if mime_data.hasFormat(mime_type):
            raw = bytes(mime_data.data(mime_type))
            if raw:
                return raw

    if mime_data.hasUrls():
        for url in mime_data.urls():
            raw = _image_bytes_from_url(url)
            if raw and not QImage.fromData(raw).isNull():
                return raw

    return b""


def read_clipboard_text() -> str:
    clipboard = QGuiApplication.clipboard()
    if clipboard is None:
        return ""
    mime_data = clipboard.mimeData()
    if mime_data is None or not mime_data.hasText():
        return ""
    return mime_data.text() or ""


class ClipboardMixin:
    """Mixin turning the system clipboard into new notes."""

    # Methods expected from NoteCanvasModel
    onPasteImage: Callable[[bytes], bool]
    onPasteText: Callable[[str], bool]

    @Slot(result=bool)
    def pasteFromClipboard(self) -> bool:
        """Create a note from the clipboard, preferring images over text."""
        image_bytes = read_clipboard_image()
        if image_bytes:
            return self.onPasteImage(image_bytes)
        text = read_clipboard_text()
        if text.strip():
            return self.onPasteText(text)
        logger.debug("Clipboard paste ignored: nothing usable on the clipboard")
        return False
