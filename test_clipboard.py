"""Tests for clipboard paste and image upload helpers."""

import base64

import pytest
from PySide6.QtCore import QByteArray, QBuffer, QIODevice, QMimeData
from PySide6.QtGui import QColor, QGuiApplication, QImage

from notecanvas.clipboard import (
    DataUrlImageUploader,
    image_to_png_base64,
    png_data_url,
    read_clipboard_image,
    read_clipboard_text,
)
from notecanvas.commits import CommitDispatcher
from notecanvas.errors import UploadError
from notecanvas.model import NoteCanvasModel
from notecanvas.types import NoteType


def _png_bytes(color="#ff0000"):
    image = QImage(3, 2, QImage.Format_ARGB32)
    image.fill(QColor(color))
    byte_array = QByteArray()
    buffer = QBuffer(byte_array)
    assert buffer.open(QIODevice.WriteOnly)
    assert image.save(buffer, "PNG")
    buffer.close()
    return bytes(byte_array)


def test_image_to_png_base64_null_image_returns_empty(app):
    assert image_to_png_base64(QImage()) == ""
    assert png_data_url(QImage()) == ""


def test_png_data_url(app):
    image = QImage(3, 2, QImage.Format_ARGB32)
    image.fill(QColor("#00ff00"))
    url = png_data_url(image)
    assert url.startswith("data:image/png;base64,")
    payload = base64.b64decode(url.split(",", 1)[1])
    assert not QImage.fromData(payload).isNull()


def test_data_url_uploader(app):
    url = DataUrlImageUploader().upload(_png_bytes())
    assert url.startswith("data:image/png;base64,")


def test_data_url_uploader_rejects_empty_and_garbage(app):
    uploader = DataUrlImageUploader()
    with pytest.raises(UploadError):
        uploader.upload(b"")
    with pytest.raises(UploadError):
        uploader.upload(b"not an image")


def test_read_clipboard_text(app):
    clipboard = QGuiApplication.clipboard()
    assert clipboard is not None
    clipboard.setText("plain text")
    assert read_clipboard_text() == "plain text"
    assert read_clipboard_image() == b""


def test_read_clipboard_image_from_png_mime_data(app):
    clipboard = QGuiApplication.clipboard()
    assert clipboard is not None
    mime = QMimeData()
    mime.setData("image/png", QByteArray(_png_bytes("#0000ff")))
    clipboard.setMimeData(mime)
    raw = read_clipboard_image()
    assert raw
    assert not QImage.fromData(raw).isNull()


def test_paste_from_clipboard_creates_text_note(app, canvas_model):
    clipboard = QGuiApplication.clipboard()
    assert clipboard is not None
    clipboard.setText("  from the clipboard ")
    assert canvas_model.pasteFromClipboard() is True
    note = canvas_model.notes()[0]
    assert note.note_type is NoteType.TEXT
    assert note.content == "from the clipboard"


def test_paste_from_clipboard_prefers_image(app, store, notebook):
    clipboard = QGuiApplication.clipboard()
    assert clipboard is not None
    image = QImage(2, 2, QImage.Format_ARGB32)
    image.fill(QColor("#00ff00"))
    clipboard.setImage(image)

    model = NoteCanvasModel(store, dispatcher=CommitDispatcher(synchronous=True))
    model.loadNotebook(notebook.id)
    assert model.pasteFromClipboard() is True
    note = model.notes()[0]
    assert note.note_type is NoteType.IMAGE
    assert note.content.startswith("data:image/png;base64,")
