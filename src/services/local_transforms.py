import asyncio
import threading
from typing import Any

import structlog
from PIL import Image, ImageChops, ImageEnhance, ImageFilter

from src.config import settings
from src.core.exceptions import LocalTransformError
from src.services.classifier import Intent
from src.services.image_payload import ImagePayload, encode_png, open_image_bytes

logger = structlog.get_logger()

WARM_OVERLAY = (255, 142, 74)
WARM_OVERLAY_ALPHA = 0.28
WATERCOLOR_OVERLAY = (245, 235, 220)
WATERCOLOR_OVERLAY_ALPHA = 0.18

_session: Any = None
_session_lock = threading.Lock()


def _split_alpha(img: Image.Image) -> tuple[Image.Image, Image.Image | None]:
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        return rgba.convert("RGB"), rgba.getchannel("A")
    return img.convert("RGB"), None


def _with_alpha(rgb: Image.Image, alpha: Image.Image | None) -> Image.Image:
    if alpha is None:
        return rgb
    result = rgb.convert("RGBA")
    result.putalpha(alpha)
    return result


def _blend_color(base: Image.Image, color: tuple[int, int, int], opacity: float, mode: str) -> Image.Image:
    layer = Image.new("RGB", base.size, color)
    if mode == "soft-light":
        blended = ImageChops.soft_light(base, layer)
    elif mode == "overlay":
        blended = ImageChops.overlay(base, layer)
    else:
        raise ValueError(f"Unsupported blend mode: {mode}")
    return Image.blend(base, blended, opacity)


def grayscale(img: Image.Image) -> Image.Image:
    """Replace RGB with BT.601 luma (0.299R + 0.587G + 0.114B), keeping alpha.

    Pillow computes luma in 16-bit fixed point and rounds half up, so a pixel
    that is already gray maps to itself and the transform is idempotent.
    """
    rgb, alpha = _split_alpha(img)
    luma = rgb.convert("L")
    return _with_alpha(Image.merge("RGB", (luma, luma, luma)), alpha)


def warm_tone(img: Image.Image) -> Image.Image:
    rgb, alpha = _split_alpha(img)
    rgb = ImageEnhance.Color(rgb).enhance(1.15)
    rgb = ImageEnhance.Contrast(rgb).enhance(1.05)
    rgb = _blend_color(rgb, WARM_OVERLAY, WARM_OVERLAY_ALPHA, "soft-light")
    return _with_alpha(rgb, alpha)


def watercolor(img: Image.Image) -> Image.Image:
    rgb, alpha = _split_alpha(img)
    rgb = ImageEnhance.Color(rgb).enhance(1.25)
    rgb = ImageEnhance.Contrast(rgb).enhance(0.9)
    rgb = rgb.filter(ImageFilter.GaussianBlur(radius=0.6))
    rgb = _blend_color(rgb, WATERCOLOR_OVERLAY, WATERCOLOR_OVERLAY_ALPHA, "overlay")
    return _with_alpha(rgb, alpha)


FILTERS = {
    Intent.GRAYSCALE: grayscale,
    Intent.WARM_TONE: warm_tone,
    Intent.WATERCOLOR: watercolor,
}


def _get_session() -> Any:
    global _session
    with _session_lock:
        if _session is None:
            from rembg import new_session

            logger.info("rembg_session_loading", model=settings.rembg_model)
            _session = new_session(settings.rembg_model)
    return _session


def _rembg_remove(image_bytes: bytes) -> bytes:
    from rembg import remove

    return remove(image_bytes, session=_get_session())


def remove_background(image_bytes: bytes) -> bytes:
    try:
        output = _rembg_remove(image_bytes)
    except Exception as e:
        raise LocalTransformError(f"Local background removal failed: {e}") from e
    if not isinstance(output, bytes) or not output:
        raise LocalTransformError("Local background removal returned no image")
    return output


def _apply_filter(image_bytes: bytes, intent: Intent) -> ImagePayload:
    try:
        img = open_image_bytes(image_bytes)
    except Exception as e:
        raise LocalTransformError(f"Failed to load image for processing: {e}") from e
    return encode_png(FILTERS[intent](img))


async def apply_local(image: ImagePayload, intent: Intent) -> ImagePayload | None:
    """Run the in-process transform for ``intent``.

    Returns None when the intent has no local transform. Raises
    LocalTransformError when the transform was attempted and failed.
    """
    if intent is not Intent.BACKGROUND_REMOVAL and intent not in FILTERS:
        return None

    try:
        image_bytes, _ = await image.load_bytes()
    except LocalTransformError:
        raise
    except Exception as e:
        raise LocalTransformError(f"Failed to load image for processing: {e}") from e

    if intent is Intent.BACKGROUND_REMOVAL:
        output = await asyncio.to_thread(remove_background, image_bytes)
        result = ImagePayload(data=output, mime_type="image/png")
    else:
        result = await asyncio.to_thread(_apply_filter, image_bytes, intent)

    logger.info("local_transform_applied", intent=intent.value, size=len(result.data or b""))
    return result


class LocalTransformEngine:
    async def apply(self, image: ImagePayload, intent: Intent) -> ImagePayload | None:
        return await apply_local(image, intent)
