from __future__ import annotations

import base64
import binascii
import hashlib
import json
from dataclasses import dataclass
from typing import Any, Sequence

from safepost.core.config import get_settings
from safepost.core.errors import EmptyCorpus, InvalidInput
from safepost.domain.types import ContentType, GuidelineRecord, ImageAttachment
from safepost.services.analysis.prompts import build_analysis_messages


DEFAULT_PLATFORM = "general"
ALLOWED_IMAGE_MIME_TYPES = frozenset({"image/png", "image/jpeg", "image/webp", "image/gif"})


@dataclass(frozen=True)
class AnalysisRequest:
    """One fully composed analysis request.

    The whole corpus travels with every request so every rule is always
    considered. Serialization is canonical (sorted keys, fixed separators),
    so equal inputs always produce byte-identical requests.
    """

    content: str
    content_type: ContentType
    platform: str
    guidelines: tuple[GuidelineRecord, ...]
    image: ImageAttachment | None = None

    def payload(self) -> dict[str, Any]:
        image_meta = None
        if self.image is not None:
            image_meta = {
                "mime_type": self.image.mime_type,
                "sha256": hashlib.sha256(self.image.data_base64.encode("ascii")).hexdigest(),
            }
        return {
            "content": self.content,
            "content_type": self.content_type.value,
            "platform": self.platform,
            "guidelines": [guideline.to_dict() for guideline in self.guidelines],
            "has_image": self.image is not None,
            "image": image_meta,
        }

    def serialize(self) -> str:
        return json.dumps(self.payload(), sort_keys=True, ensure_ascii=False, separators=(",", ":"))

    @property
    def fingerprint(self) -> str:
        return hashlib.sha256(self.serialize().encode("utf-8")).hexdigest()

    def messages(self) -> list[dict[str, str]]:
        return build_analysis_messages(self.payload())


def parse_content_type(value: ContentType | str) -> ContentType:
    if isinstance(value, ContentType):
        return value
    normalized = (value or "").strip().lower().replace("-", "_").replace(" ", "_")
    try:
        return ContentType(normalized)
    except ValueError as exc:
        allowed = ", ".join(item.value for item in ContentType)
        raise InvalidInput(f"Unsupported content type {value!r}; expected one of: {allowed}") from exc


def validate_image(image: ImageAttachment, *, max_bytes: int) -> ImageAttachment:
    mime_type = (image.mime_type or "").strip().lower()
    if mime_type not in ALLOWED_IMAGE_MIME_TYPES:
        raise InvalidInput(f"Unsupported image type {image.mime_type!r}")
    try:
        raw = base64.b64decode(image.data_base64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidInput("Image data is not valid base64") from exc
    if not raw:
        raise InvalidInput("Image data is empty")
    if len(raw) > max_bytes:
        raise InvalidInput(f"Image exceeds the {max_bytes} byte limit")
    return ImageAttachment(mime_type=mime_type, data_base64=image.data_base64)


def build_request(
    content: str,
    content_type: ContentType | str,
    platform: str | None,
    guidelines: Sequence[GuidelineRecord],
    *,
    image: ImageAttachment | None = None,
) -> AnalysisRequest:
    settings = get_settings()
    text = (content or "").strip()
    if not text:
        raise InvalidInput("Content must not be empty")
    if len(text) > settings.max_content_chars:
        raise InvalidInput(f"Content exceeds {settings.max_content_chars} characters")
    parsed_type = parse_content_type(content_type)
    if not guidelines:
        raise EmptyCorpus("No guidelines available to check content against")
    checked_image = validate_image(image, max_bytes=settings.max_image_bytes) if image else None
    return AnalysisRequest(
        content=text,
        content_type=parsed_type,
        platform=(platform or "").strip() or DEFAULT_PLATFORM,
        guidelines=tuple(guidelines),
        image=checked_image,
    )
