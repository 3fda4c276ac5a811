import io
import os

from PIL import Image

from approval_api.services.image_service import reduce_image


def _noisy_jpeg(size=(1600, 1200)) -> bytes:
    image = Image.frombytes("RGB", size, os.urandom(size[0] * size[1] * 3))
    buf = io.BytesIO()
    image.save(buf, format="JPEG", quality=95)
    return buf.getvalue()


def test_small_image_is_returned_unchanged(make_png):
    payload = make_png()
    assert reduce_image(payload, "image/png", max_bytes=1024 * 1024) is payload


def test_non_image_content_type_is_untouched():
    payload = b"x" * 5000
    assert reduce_image(payload, "application/pdf", max_bytes=10) is payload


def test_large_jpeg_is_shrunk_and_downscaled():
    payload = _noisy_jpeg()

    reduced = reduce_image(payload, "image/jpeg", max_bytes=len(payload) // 4, max_dimension=400)

    assert len(reduced) < len(payload)
    with Image.open(io.BytesIO(reduced)) as image:
        assert max(image.size) <= 400


def test_undecodable_image_falls_back_to_original():
    payload = b"not an image at all" * 100
    assert reduce_image(payload, "image/jpeg", max_bytes=10) is payload
