"""Image encoding for model requests and meal display."""

import base64
from dataclasses import dataclass

DEFAULT_MIME_TYPE = "image/jpeg"


@dataclass(frozen=True)
class EncodedImage:
    """Image payload in base64 with its media type."""

    mime_type: str
    data: str

    @property
    def data_url(self) -> str:
        """Self-describing data URL used to display the photo."""
        return f"data:{self.mime_type};base64,{self.data}"


def encode_image(
    image_bytes: bytes, declared_mime_type: str | None = None
) -> EncodedImage:
    """Base64-encode an uploaded photo, resolving its media type."""
    mime_type = _declared_image_type(declared_mime_type) or detect_mime_type(
        image_bytes
    )
    encoded = base64.b64encode(image_bytes).decode("ascii")
    return EncodedImage(mime_type=mime_type, data=encoded)


def detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes[:6] in {b"GIF87a", b"GIF89a"}:
        return "image/gif"
    if image_bytes[4:12] in {b"ftypheic", b"ftypheix", b"ftypmif1"}:
        return "image/heic"
    return DEFAULT_MIME_TYPE


def _declared_image_type(declared: str | None) -> str | None:
    # Content-Type headers may carry parameters, e.g. "image/png; q=1".
    if not declared:
        return None
    mime_type = declared.split(";", 1)[0].strip().lower()
    if not mime_type.startswith("image/") or mime_type == "image/*":
        return None
    return mime_type
