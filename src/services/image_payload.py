import base64
import binascii
import re
from dataclasses import dataclass
from io import BytesIO

from PIL import Image

from src.core.exceptions import InvalidImageError
from src.services import image_fetcher

FORMAT_TO_MEDIA_TYPE = {
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
}

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(?:;[^;,]*)*?);base64,(?P<data>.*)$", re.DOTALL)


def detect_mime_type(image_bytes: bytes) -> str:
    fmt = _detect_image_format(image_bytes)
    return FORMAT_TO_MEDIA_TYPE.get(fmt, "image/jpeg")


def _detect_image_format(image_bytes: bytes) -> str:
    if image_bytes[:8] == b"\x89PNG\r\n\x1a\n":
        return "png"
    if image_bytes[:2] == b"\xff\xd8":
        return "jpeg"
    if image_bytes[:6] in (b"GIF87a", b"GIF89a"):
        return "gif"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "webp"
    return "jpeg"


def is_remote_url(value: str) -> bool:
    return value.lower().startswith(("http://", "https://"))


@dataclass(frozen=True)
class ImagePayload:
    """An image given either as a fetchable http(s) URL or as inline bytes."""

    url: str | None = None
    data: bytes | None = None
    mime_type: str = "image/png"

    @classmethod
    def parse(cls, value: str | None) -> "ImagePayload":
        if value is None or not value.strip():
            raise InvalidImageError("Missing image")
        value = value.strip()
        if is_remote_url(value):
            return cls(url=value)
        match = _DATA_URL_RE.match(value)
        if not match:
            raise InvalidImageError("Image must be a data URL or an http(s) URL")
        try:
            data = base64.b64decode(match.group("data"), validate=False)
        except (binascii.Error, ValueError) as e:
            raise InvalidImageError(f"Invalid base64 image data: {e}") from e
        if not data:
            raise InvalidImageError("Missing image")
        return cls(data=data, mime_type=match.group("mime") or detect_mime_type(data))

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str | None = None) -> "ImagePayload":
        return cls(data=data, mime_type=mime_type or detect_mime_type(data))

    @classmethod
    def from_base64(cls, b64_data: str, mime_type: str = "image/png") -> "ImagePayload":
        return cls.parse(f"data:{mime_type};base64,{b64_data}")

    @property
    def is_empty(self) -> bool:
        return self.url is None and not self.data

    @property
    def is_remote(self) -> bool:
        return self.url is not None

    def to_data_url(self) -> str:
        if self.data is None:
            raise ValueError("Remote image has no inline data")
        return f"data:{self.mime_type};base64,{base64.b64encode(self.data).decode()}"

    def as_reference(self) -> str:
        """The wire form: the URL for remote images, a data URL otherwise."""
        if self.url is not None:
            return self.url
        return self.to_data_url()

    async def load_bytes(self) -> tuple[bytes, str]:
        if self.data is not None:
            return self.data, self.mime_type
        if self.url is None:
            raise InvalidImageError("Missing image")
        data, declared = await image_fetcher.fetch_image(self.url)
        return data, declared or detect_mime_type(data)

    async def open_image(self) -> Image.Image:
        data, _ = await self.load_bytes()
        return open_image_bytes(data)


def open_image_bytes(data: bytes) -> Image.Image:
    img = Image.open(BytesIO(data))
    img.load()
    return img


def encode_png(img: Image.Image) -> ImagePayload:
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return ImagePayload(data=buffer.getvalue(), mime_type="image/png")
