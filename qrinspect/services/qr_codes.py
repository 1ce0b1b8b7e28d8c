# qrinspect/services/qr_codes.py
"""
Printable QR codes for checklist items.

The code only carries the item's ``qr_code_id`` token; scanning it goes
through ``/inspector/qr-scan/{qr_code_id}``.
"""
from __future__ import annotations

import base64
import io
import re

import qrcode
from PIL import Image
from qrcode.image.pil import PilImage

DOWNLOAD_WIDTH = 512
PREVIEW_WIDTH = 256
BORDER = 2

_TRANSLIT = (("æ", "ae"), ("ø", "oe"), ("å", "aa"))


def render_qr_png(token: str, width: int = DOWNLOAD_WIDTH) -> bytes:
    """PNG bytes of a ``width`` x ``width`` black-on-white QR code for ``token``."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=BORDER,
    )
    qr.add_data(token)
    qr.make(fit=True)
    img = qr.make_image(image_factory=PilImage, fill_color="black", back_color="white")
    img = img.resize((width, width), Image.NEAREST)

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def qr_data_url(token: str, width: int = PREVIEW_WIDTH) -> str:
    b64 = base64.b64encode(render_qr_png(token, width)).decode("ascii")
    return f"data:image/png;base64,{b64}"


def qr_filename(item_name: str) -> str:
    """qr-<item-name>.png, lower-cased, whitespace collapsed to dashes."""
    s = (item_name or "").strip().lower()
    for src, dst in _TRANSLIT:
        s = s.replace(src, dst)
    s = re.sub(r"\s+", "-", s)
    s = re.sub(r"[^a-z0-9_-]", "", s)
    return f"qr-{s or 'item'}.png"
