"""Image transformation: metadata strip, downscale, recompress, thumbnail.

Rendering (:func:`render_processed`, :func:`render_thumbnail`) is pure: bytes
and options in, bytes out. :class:`MediaTransformEngine` wraps it with asset
store reads and the two independent write-backs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any

from PIL import Image, ImageDraw, ImageFont, ImageOps, UnidentifiedImageError

from ..config import TransformLimits
from ..exceptions import TransformError
from ..settings.settings_models import TransformOptions
from ..storage.asset_keys import AssetVariant, variant_key
from ..storage.asset_store import AssetStore
from .media_types import MediaType, content_type_for_format

logger = logging.getLogger(__name__)

PRESERVED_FORMATS = frozenset({"JPEG", "PNG", "WEBP", "GIF"})
THUMBNAIL_FORMAT = "JPEG"
PNG_MODES = frozenset({"1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16"})
IMAGE_ERRORS = (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError)

NON_IMAGE_NOTES = {
    MediaType.VIDEO: "Video is stored as uploaded; transcoding is not performed.",
    MediaType.OTHER: "Non-image media is stored as uploaded; no transform applies.",
}


@dataclass(slots=True)
class RenderedImage:
    data: bytes
    format: str
    width: int
    height: int


@dataclass(slots=True)
class TransformResult:
    """Per-field outcome of one transform run."""

    exif_stripped: bool = False
    compressed: bool = False
    thumbnail_generated: bool = False
    original_bytes: int | None = None
    processed_bytes: int | None = None
    thumbnail_bytes: int | None = None
    original_width: int | None = None
    original_height: int | None = None
    width: int | None = None
    height: int | None = None
    source_format: str | None = None
    format: str | None = None
    watermarked: bool = False
    skipped: bool = False
    note: str | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_summary(self) -> dict[str, Any]:
        return {
            "originalBytes": self.original_bytes,
            "processedBytes": self.processed_bytes,
            "thumbnailBytes": self.thumbnail_bytes,
            "originalWidth": self.original_width,
            "originalHeight": self.original_height,
            "width": self.width,
            "height": self.height,
            "sourceFormat": self.source_format,
            "format": self.format,
            "watermarked": self.watermarked,
            "skipped": self.skipped,
            "note": self.note,
            "errors": list(self.errors),
        }


def has_transparency(image: Image.Image) -> bool:
    if image.mode in ("RGBA", "LA", "PA"):
        return True
    return image.mode == "P" and "transparency" in image.info


def is_animated(image: Image.Image) -> bool:
    return bool(getattr(image, "is_animated", False)) and getattr(image, "n_frames", 1) > 1


def choose_output_format(
    source_format: str | None,
    *,
    compress: bool,
    transparent: bool,
    animated: bool,
    requested: str | None = None,
) -> str:
    """Pick the encoder for the processed variant.

    Animated sources always keep their family. Otherwise an explicit request
    wins, then compression converts opaque images to WebP, and everything else
    stays in its original family.
    """
    source = (source_format or "").upper()
    if animated and source in PRESERVED_FORMATS:
        return source
    if requested:
        return requested.upper()
    if compress and not transparent:
        return "WEBP"
    if source in PRESERVED_FORMATS:
        return source
    return "PNG" if transparent else "JPEG"


def _load_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    try:
        return ImageFont.truetype("DejaVuSans-Bold.ttf", size)
    except OSError:
        return ImageFont.load_default(size=size)


def apply_watermark(image: Image.Image, text: str) -> Image.Image:
    """Overlay semi-transparent ``text`` in the bottom-right corner."""
    base = image.convert("RGBA")
    overlay = Image.new("RGBA", base.size, (255, 255, 255, 0))
    draw = ImageDraw.Draw(overlay)
    font_size = max(12, base.width // 20)
    font = _load_font(font_size)
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    margin = max(4, font_size // 2)
    position = (
        max(0, base.width - (right - left) - margin),
        max(0, base.height - (bottom - top) - margin),
    )
    draw.text(position, text, font=font, fill=(255, 255, 255, 128))
    return Image.alpha_composite(base, overlay)


def _prepare_mode(image: Image.Image, output_format: str) -> Image.Image:
    transparent = has_transparency(image)
    if output_format == "JPEG":
        if transparent:
            background = Image.new("RGB", image.size, (255, 255, 255))
            rgba = image.convert("RGBA")
            background.paste(rgba, mask=rgba.getchannel("A"))
            return background
        return image if image.mode in ("RGB", "L") else image.convert("RGB")
    if output_format == "WEBP":
        if transparent:
            return image if image.mode == "RGBA" else image.convert("RGBA")
        return image if image.mode == "RGB" else image.convert("RGB")
    if output_format == "PNG" and image.mode not in PNG_MODES:
        return image.convert("RGBA" if transparent else "RGB")
    return image


def _encode(image: Image.Image, output_format: str, *, quality: int, exif: bytes) -> bytes:
    buffer = BytesIO()
    params: dict[str, Any] = {"exif": exif}
    icc_profile = image.info.get("icc_profile")
    if icc_profile:
        params["icc_profile"] = icc_profile
    if output_format == "JPEG":
        params.update(quality=quality, optimize=True, progressive=True)
    elif output_format == "WEBP":
        params.update(quality=quality, method=4)
    elif output_format == "PNG":
        params.update(optimize=True)
    image.save(buffer, format=output_format, **params)
    return buffer.getvalue()


def render_processed(
    data: bytes,
    options: TransformOptions,
    limits: TransformLimits,
) -> tuple[RenderedImage, TransformResult]:
    """Decode ``data`` and produce the processed variant.

    Raises :class:`TransformError` when Pillow cannot decode or encode the
    image; callers translate it into per-field results.
    """
    try:
        return _render_processed(data, options, limits)
    except IMAGE_ERRORS as exc:
        raise TransformError(f"decode/encode failed: {exc}") from exc


def _render_processed(
    data: bytes,
    options: TransformOptions,
    limits: TransformLimits,
) -> tuple[RenderedImage, TransformResult]:
    result = TransformResult(original_bytes=len(data))
    with Image.open(BytesIO(data)) as source:
        source_format = (source.format or "").upper()
        result.source_format = source_format or None
        result.original_width, result.original_height = source.size
        animated = is_animated(source)
        transparent = has_transparency(source)
        output_format = choose_output_format(
            source_format,
            compress=options.compress,
            transparent=transparent,
            animated=animated,
            requested=options.output_format,
        )

        if animated:
            # frames are re-encoded as-is; resizing/overlay would drop the animation
            buffer = BytesIO()
            source.save(buffer, format=output_format, save_all=True)
            encoded = buffer.getvalue()
            width, height = source.size
            result.note = "Animated image re-encoded without resizing."
        else:
            image = ImageOps.exif_transpose(source)
            exif = b""
            if not options.strip_metadata:
                exif = image.getexif().tobytes()
            else:
                image.info.pop("exif", None)
                image.info.pop("xmp", None)
                image.info.pop("XML:com.adobe.xmp", None)
            if options.compress:
                image.thumbnail((limits.max_dimension, limits.max_dimension), Image.Resampling.LANCZOS)
            if options.watermark and options.watermark_text.strip():
                image = apply_watermark(image, options.watermark_text.strip())
                result.watermarked = True
            image = _prepare_mode(image, output_format)
            quality = limits.quality if options.compress else 95
            encoded = _encode(image, output_format, quality=quality, exif=exif)
            width, height = image.size

    result.exif_stripped = options.strip_metadata
    result.compressed = options.compress and not animated
    result.processed_bytes = len(encoded)
    result.width, result.height = width, height
    result.format = output_format
    return RenderedImage(data=encoded, format=output_format, width=width, height=height), result


def render_thumbnail(data: bytes, limits: TransformLimits) -> RenderedImage:
    """Cover-crop ``data`` to the configured thumbnail box."""
    try:
        return _render_thumbnail(data, limits)
    except IMAGE_ERRORS as exc:
        raise TransformError(str(exc)) from exc


def _render_thumbnail(data: bytes, limits: TransformLimits) -> RenderedImage:
    with Image.open(BytesIO(data)) as source:
        source.seek(0)
        image = ImageOps.exif_transpose(source)
        image = ImageOps.fit(
            image,
            (limits.thumbnail_width, limits.thumbnail_height),
            Image.Resampling.LANCZOS,
        )
        image = _prepare_mode(image, THUMBNAIL_FORMAT)
        encoded = _encode(image, THUMBNAIL_FORMAT, quality=limits.thumbnail_quality, exif=b"")
        return RenderedImage(
            data=encoded,
            format=THUMBNAIL_FORMAT,
            width=image.width,
            height=image.height,
        )


class MediaTransformEngine:
    """Run the transform for one stored asset and write the variants back."""

    def __init__(self, assets: AssetStore, limits: TransformLimits) -> None:
        self._assets = assets
        self._limits = limits

    @property
    def limits(self) -> TransformLimits:
        return self._limits

    def skipped(self, media_type: MediaType) -> TransformResult:
        return TransformResult(skipped=True, note=NON_IMAGE_NOTES.get(media_type))

    def transform(
        self,
        base_key: str,
        options: TransformOptions,
        media_type: MediaType = MediaType.IMAGE,
    ) -> TransformResult:
        if media_type is not MediaType.IMAGE:
            return self.skipped(media_type)

        source = self._load_source(base_key)
        if source is None:
            return TransformResult(errors=[f"Asset '{base_key}' not found"])

        try:
            rendered, result = render_processed(source, options, self._limits)
        except TransformError as exc:
            logger.warning(
                "transform.render_failed",
                extra={"asset_key": base_key, "error": str(exc)},
            )
            return TransformResult(original_bytes=len(source), errors=[str(exc)])

        self._write_primary(base_key, rendered, result)
        if options.generate_thumbnail:
            self._write_thumbnail(base_key, rendered.data, result)
        logger.info(
            "transform.done",
            extra={
                "asset_key": base_key,
                "format": result.format,
                "original_bytes": result.original_bytes,
                "processed_bytes": result.processed_bytes,
                "errors": len(result.errors),
            },
        )
        return result

    def _load_source(self, base_key: str) -> bytes | None:
        """Prefer the preserved upload so re-running never compounds compression."""
        original = self._assets.get_variant(base_key, AssetVariant.ORIGINAL)
        if original is not None:
            return original.data
        primary = self._assets.get(base_key)
        if primary is None:
            return None
        try:
            self._assets.put(
                variant_key(base_key, AssetVariant.ORIGINAL),
                primary.data,
                content_type=primary.content_type,
            )
        except Exception as exc:
            logger.warning(
                "transform.original_backup_failed",
                extra={"asset_key": base_key, "error": str(exc)},
            )
        return primary.data

    def _write_primary(self, base_key: str, rendered: RenderedImage, result: TransformResult) -> None:
        try:
            self._assets.put(base_key, rendered.data, content_type=content_type_for_format(rendered.format))
        except Exception as exc:
            logger.warning(
                "transform.primary_write_failed",
                extra={"asset_key": base_key, "error": str(exc)},
            )
            result.errors.append(f"processed write failed: {exc}")
            result.exif_stripped = False
            result.compressed = False

    def _write_thumbnail(self, base_key: str, data: bytes, result: TransformResult) -> None:
        try:
            thumbnail = render_thumbnail(data, self._limits)
            self._assets.put(
                variant_key(base_key, AssetVariant.THUMBNAIL),
                thumbnail.data,
                content_type=content_type_for_format(thumbnail.format),
            )
        except Exception as exc:
            logger.warning(
                "transform.thumbnail_failed",
                extra={"asset_key": base_key, "error": str(exc)},
            )
            result.errors.append(f"thumbnail failed: {exc}")
            return
        result.thumbnail_generated = True
        result.thumbnail_bytes = len(thumbnail.data)
