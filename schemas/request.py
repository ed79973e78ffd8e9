"""Campaign input schema — what the form collects before a generation call.

Nothing here is persisted: an AdGenRequest lives for one request/response
cycle and is discarded afterwards.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class ImageAsset(BaseModel):
    """One uploaded image, sent to the model as an inline data part."""
    filename: str = ""
    mime_type: str = Field(..., description="MIME type, must be image/*")
    data: bytes = Field(..., repr=False)

    @field_validator("mime_type")
    @classmethod
    def _must_be_image(cls, value: str) -> str:
        value = str(value or "").strip().lower()
        if not value.startswith("image/"):
            raise ValueError(f"Unsupported file type '{value or 'unknown'}' — only images are accepted.")
        return value


class AdGenRequest(BaseModel):
    """User-supplied campaign inputs."""
    product_description: str = Field(..., description="What is being advertised")
    product_images: list[ImageAsset] = Field(default_factory=list)
    celebrity_images: list[ImageAsset] = Field(
        default_factory=list, description="Optional celebrity / influencer images"
    )
    campaign_goals: str = ""
    brand_guidelines: str = ""
    tone: str = ""
    channels: list[str] = Field(default_factory=list)
    regions: str = Field("", description="Target regions for localization")

    @field_validator("product_description")
    @classmethod
    def _description_required(cls, value: str) -> str:
        value = str(value or "").strip()
        if not value:
            raise ValueError("Product description is required.")
        return value

    @field_validator("campaign_goals", "brand_guidelines", "tone", "regions")
    @classmethod
    def _strip_text(cls, value: str) -> str:
        return str(value or "").strip()

    @field_validator("channels")
    @classmethod
    def _dedupe_channels(cls, value: list[str]) -> list[str]:
        seen: list[str] = []
        for channel in value or []:
            clean = str(channel or "").strip()
            if clean and clean not in seen:
                seen.append(clean)
        return seen

    @property
    def image_count(self) -> int:
        return len(self.product_images) + len(self.celebrity_images)
