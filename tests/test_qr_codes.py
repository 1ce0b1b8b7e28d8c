import base64
import io

from PIL import Image

from qrinspect.services.qr_codes import qr_data_url, qr_filename, render_qr_png

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


def test_png_has_requested_size():
    png = render_qr_png("3f0c9a1e-token", width=512)
    assert png.startswith(PNG_MAGIC)
    with Image.open(io.BytesIO(png)) as img:
        assert img.size == (512, 512)
        gray = img.convert("L")
        assert gray.getpixel((1, 1)) == 255  # quiet zone
        assert gray.getextrema() == (0, 255)


def test_data_url_wraps_a_png():
    url = qr_data_url("3f0c9a1e-token")
    prefix = "data:image/png;base64,"
    assert url.startswith(prefix)
    png = base64.b64decode(url[len(prefix):])
    with Image.open(io.BytesIO(png)) as img:
        assert img.size == (256, 256)


def test_filename_from_item_name():
    assert qr_filename("Fire Extinguisher  Hall B") == "qr-fire-extinguisher-hall-b.png"
    assert qr_filename("Nødudgang Østfløj") == "qr-noedudgang-oestfloej.png"
    assert qr_filename("  ") == "qr-item.png"
