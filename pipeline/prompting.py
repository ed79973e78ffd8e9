"""Prompt + response-schema construction.

Turns an AdGenRequest into the instruction text and the strict JSON schema
sent to the creative model, and turns a storyboard scene into the prompt
for its image or video. Static templating only: the one decision made here
is substituting placeholder text for optional fields the user left blank.
"""

from __future__ import annotations

from typing import Any

from prompts.adgen_system import (
    AD_PACKAGE_PROMPT,
    CONCEPT_PROMPT,
    SCENE_IMAGE_PROMPT,
    SCENE_VIDEO_PROMPT,
    VARIANT_FOR_CHANNELS,
    VARIANT_FOR_UNSPECIFIED_CHANNELS,
)
from schemas.ad_package import ConceptScene, StoryboardScene
from schemas.request import AdGenRequest

NOT_SPECIFIED = "Not specified"
NONE_PROVIDED = "None provided"
DEFAULT_MOOD = "cinematic"


def _or_placeholder(value: str, placeholder: str = NOT_SPECIFIED) -> str:
    value = str(value or "").strip()
    return value or placeholder


def _template_fields(request: AdGenRequest) -> dict[str, Any]:
    return {
        "product_description": request.product_description,
        "campaign_goals": _or_placeholder(request.campaign_goals),
        "brand_guidelines": _or_placeholder(request.brand_guidelines, NONE_PROVIDED),
        "tone": _or_placeholder(request.tone),
        "channels": ", ".join(request.channels) if request.channels else NOT_SPECIFIED,
        "regions": _or_placeholder(request.regions),
        "product_image_count": len(request.product_images),
        "celebrity_image_count": len(request.celebrity_images),
    }


def build_ad_package_prompt(request: AdGenRequest) -> str:
    """Build the full ad-package instruction for the creative model."""
    fields = _template_fields(request)
    if request.channels:
        fields["variant_instruction"] = VARIANT_FOR_CHANNELS.format(channels=fields["channels"])
    else:
        fields["variant_instruction"] = VARIANT_FOR_UNSPECIFIED_CHANNELS
    return AD_PACKAGE_PROMPT.format(**fields)


def build_concept_prompt(request: AdGenRequest) -> str:
    """Build the short concept instruction (headline, body, CTA, 3 scenes)."""
    return CONCEPT_PROMPT.format(**_template_fields(request))


# ---------------------------------------------------------------------------
# Response schemas (Gemini OpenAPI-subset dialect)
# ---------------------------------------------------------------------------

def _string(description: str = "") -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "STRING"}
    if description:
        schema["description"] = description
    return schema


def _number(description: str = "") -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "NUMBER"}
    if description:
        schema["description"] = description
    return schema


def _array(items: dict[str, Any]) -> dict[str, Any]:
    return {"type": "ARRAY", "items": items}


def _object(properties: dict[str, dict[str, Any]]) -> dict[str, Any]:
    # Every property is required; the order is kept for the model's benefit.
    return {
        "type": "OBJECT",
        "properties": properties,
        "required": list(properties),
        "propertyOrdering": list(properties),
    }


_STORYBOARD_SCENE_SCHEMA = _object({
    "scene_id": _string("Scene identifier, e.g. 's1'"),
    "duration_s": _number("Scene length in seconds"),
    "shot_type": _string("e.g. 'wide shot', 'close-up'"),
    "camera_move": _string("e.g. 'slow push-in', 'static'"),
    "framing": _string(),
    "action": _string("What happens on screen"),
    "dialogue_vo": _string("Dialogue or voice-over; empty if none"),
    "onscreen_text": _string(),
    "color_palette": _array(_string("Hex color or color name")),
    "typography": _string(),
    "music_sfx": _string(),
    "transition": _string(),
    "assets_needed": _array(_string()),
})

AD_PACKAGE_RESPONSE_SCHEMA: dict[str, Any] = _object({
    "campaign_brief": _object({
        "title": _string(),
        "hook": _string(),
        "value_props": _array(_string()),
    }),
    "audience": _object({
        "age_range": _string(),
        "segments": _array(_string()),
        "insight": _string(),
    }),
    "kpi": _object({
        "primary": _string(),
        "goal": _string(),
    }),
    "variants": _array(_object({
        "id": _string(),
        "channel": _string(),
        "duration_s": _number(),
        "aspect_ratio": _string("e.g. '9:16', '16:9'"),
        "storyboard": _array(_STORYBOARD_SCENE_SCHEMA),
        "copy": _object({
            "headline": _string(),
            "body": _string(),
            "cta": _string(),
        }),
        "render_specs": _object({
            "resolution": _string(),
            "format": _string(),
            "filename": _string(),
        }),
        "ab_tests": _array(_object({
            "label": _string(),
            "change": _string(),
        })),
        "legal_note": _string(),
    })),
    "assets": _array(_object({
        "id": _string(),
        "type": {"type": "STRING", "enum": ["image", "video", "audio", "font"]},
        "purpose": _string(),
        "notes": _string(),
    })),
    "style_guide": _object({
        "colors": _array(_string()),
        "typography": _string(),
        "logo_placement": _string(),
        "motion_easing": _string(),
    }),
    "production_checklist": _array(_string()),
    "disclaimer_legal": _string(),
})

CREATIVE_OUTPUT_RESPONSE_SCHEMA: dict[str, Any] = _object({
    "headline": _string(),
    "body": _string(),
    "cta": _string(),
    "storyboard": _array(_object({
        "scene_id": _string(),
        "description": _string(),
        "action": _string(),
        "shot_type": _string(),
        "mood": _string(),
    })),
})


# ---------------------------------------------------------------------------
# Per-scene media prompts
# ---------------------------------------------------------------------------

def _scene_terms(scene: ConceptScene | StoryboardScene) -> dict[str, str]:
    if isinstance(scene, ConceptScene):
        return {
            "shot_type": _or_placeholder(scene.shot_type, "medium shot"),
            "mood": _or_placeholder(scene.mood, DEFAULT_MOOD),
            "action": scene.action,
        }

    # Full storyboard scenes carry camera + palette instead of a mood.
    shot = ", ".join(part for part in (scene.shot_type, scene.framing) if part.strip())
    mood_parts = [scene.camera_move.strip()] if scene.camera_move.strip() else []
    if scene.color_palette:
        mood_parts.append(f"{', '.join(scene.color_palette)} palette")
    return {
        "shot_type": shot or "medium shot",
        "mood": "; ".join(mood_parts) or DEFAULT_MOOD,
        "action": scene.action,
    }


def build_scene_image_prompt(scene: ConceptScene | StoryboardScene) -> str:
    return SCENE_IMAGE_PROMPT.format(**_scene_terms(scene))


def build_scene_video_prompt(scene: ConceptScene | StoryboardScene) -> str:
    return SCENE_VIDEO_PROMPT.format(**_scene_terms(scene))
