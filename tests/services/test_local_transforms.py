from io import BytesIO
from unittest.mock import patch

import pytest
from PIL import Image

from src.core.exceptions import LocalTransformError
from src.services import local_transforms
from src.services.classifier import Intent
from src.services.image_payload import ImagePayload
from tests.fakes import make_test_image


def _gradient(mode: str = "RGB") -> Image.Image:
    img = Image.new(mode, (8, 8))
    for x in range(8):
        for y in range(8):
            pixel = (x * 30, y * 30, (x + y) * 15)
            img.putpixel((x, y), pixel + ((x * 32) % 256,) if mode == "RGBA" else pixel)
    return img


def _decode(payload: ImagePayload) -> Image.Image:
    assert payload.data is not None
    return Image.open(BytesIO(payload.data))


class TestGrayscale:
    def test_uses_bt601_luma(self) -> None:
        img = Image.new("RGB", (1, 1), (100, 150, 200))
        r, g, b = local_transforms.grayscale(img).getpixel((0, 0))
        expected = round(0.299 * 100 + 0.587 * 150 + 0.114 * 200)
        assert r == g == b
        assert abs(r - expected) <= 1

    def test_idempotent(self) -> None:
        once = local_transforms.grayscale(_gradient())
        twice = local_transforms.grayscale(once)
        assert once.tobytes() == twice.tobytes()

    def test_preserves_alpha(self) -> None:
        img = _gradient("RGBA")
        result = local_transforms.grayscale(img)
        assert result.mode == "RGBA"
        assert result.getchannel("A").tobytes() == img.getchannel("A").tobytes()

    def test_deterministic(self) -> None:
        assert local_transforms.grayscale(_gradient()).tobytes() == local_transforms.grayscale(_gradient()).tobytes()


class TestWarmTone:
    def test_shifts_towards_orange(self) -> None:
        img = Image.new("RGB", (4, 4), (128, 128, 128))
        r, g, b = local_transforms.warm_tone(img).getpixel((0, 0))
        assert r > b

    def test_soft_light_uses_pillow_curve(self) -> None:
        img = Image.new("RGB", (2, 2), (128, 128, 128))
        blended = local_transforms._blend_color(img, local_transforms.WARM_OVERLAY, 1.0, "soft-light")
        assert blended.getpixel((0, 0))[0] == 191

    def test_keeps_size_and_alpha(self) -> None:
        img = _gradient("RGBA")
        result = local_transforms.warm_tone(img)
        assert result.size == img.size
        assert result.getchannel("A").tobytes() == img.getchannel("A").tobytes()


class TestWatercolor:
    def test_keeps_size(self) -> None:
        img = _gradient()
        result = local_transforms.watercolor(img)
        assert result.size == img.size
        assert result.mode == "RGB"

    def test_deterministic(self) -> None:
        assert local_transforms.watercolor(_gradient()).tobytes() == local_transforms.watercolor(_gradient()).tobytes()


class TestApplyLocal:
    async def test_none_is_not_applicable(self) -> None:
        image = ImagePayload.from_bytes(make_test_image())
        assert await local_transforms.apply_local(image, Intent.NONE) is None

    @pytest.mark.parametrize("intent", [Intent.GRAYSCALE, Intent.WARM_TONE, Intent.WATERCOLOR])
    async def test_filters_return_png(self, intent: Intent) -> None:
        image = ImagePayload.from_bytes(make_test_image(12, 10))
        result = await local_transforms.apply_local(image, intent)
        assert result is not None
        assert result.mime_type == "image/png"
        decoded = _decode(result)
        assert decoded.format == "PNG"
        assert decoded.size == (12, 10)

    async def test_undecodable_image_fails(self) -> None:
        image = ImagePayload(data=b"not an image", mime_type="image/png")
        with pytest.raises(LocalTransformError):
            await local_transforms.apply_local(image, Intent.GRAYSCALE)

    async def test_background_removal_uses_rembg(self) -> None:
        cutout = make_test_image(color=(0, 0, 0, 0))
        with patch.object(local_transforms, "_rembg_remove", return_value=cutout) as mock_remove:
            image = ImagePayload.from_bytes(make_test_image())
            result = await local_transforms.apply_local(image, Intent.BACKGROUND_REMOVAL)
        assert result is not None
        assert result.data == cutout
        assert result.mime_type == "image/png"
        mock_remove.assert_called_once()

    async def test_background_removal_failure_is_recoverable_error(self) -> None:
        with patch.object(local_transforms, "_rembg_remove", side_effect=RuntimeError("model load failed")):
            image = ImagePayload.from_bytes(make_test_image())
            with pytest.raises(LocalTransformError, match="model load failed"):
                await local_transforms.apply_local(image, Intent.BACKGROUND_REMOVAL)

    async def test_remote_fetch_failure_is_local_error(self) -> None:
        image = ImagePayload(url="http://127.0.0.1/img.png")
        with pytest.raises(LocalTransformError):
            await local_transforms.apply_local(image, Intent.GRAYSCALE)
