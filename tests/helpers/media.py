"""In-memory image fixtures built with Pillow."""

from __future__ import annotations

from io import BytesIO

from PIL import Image

ORIENTATION_TAG = 0x0112
MAKE_TAG = 0x010F
MODEL_TAG = 0x0110


def make_image(
    *,
    size: tuple[int, int] = (640, 480),
    fmt: str = "JPEG",
    mode: str = "RGB",
    color: tuple[int, ...] = (200, 40, 40),
    orientation: int | None = None,
    camera: str | None = "PixelCam 3000",
) -> bytes:
    image = Image.new(mode, size, color)
    exif = Image.Exif()
    if camera:
        exif[MAKE_TAG] = "PixelCam"
        exif[MODEL_TAG] = camera
    if orientation is not None:
        exif[ORIENTATION_TAG] = orientation
    buffer = BytesIO()
    params = {"exif": exif.tobytes()} if fmt in {"JPEG", "WEBP", "PNG"} else {}
    image.save(buffer, format=fmt, **params)
    return buffer.getvalue()


def make_animated_gif(frames: int = 3, size: tuple[int, int] = (64, 64)) -> bytes:
    images = [Image.new("RGB", size, (40 * index, 255 - 40 * index, 90)) for index in range(frames)]
    buffer = BytesIO()
    images[0].save(buffer, format="GIF", save_all=True, append_images=images[1:], duration=80, loop=0)
    return buffer.getvalue()


def open_image(data: bytes) -> Image.Image:
    image = Image.open(BytesIO(data))
    image.load()
    return image


def exif_of(data: bytes) -> dict[int, object]:
    return dict(open_image(data).getexif())
