"""Generated ad package schemas.

Pure data transfer objects deserialized from the model's JSON response.
The field names mirror the response schema in pipeline.prompting exactly,
so a response that honours the schema always validates here.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Full ad package
# ---------------------------------------------------------------------------

class CampaignBrief(BaseModel):
    title: str
    hook: str
    value_props: list[str] = Field(default_factory=list)


class Audience(BaseModel):
    age_range: str
    segments: list[str] = Field(default_factory=list)
    insight: str


class Kpi(BaseModel):
    primary: str = Field(..., description="Primary KPI, e.g. 'CTR' or 'ROAS'")
    goal: str = Field(..., description="Target value for the primary KPI")


class StoryboardScene(BaseModel):
    """One shot in a variant's storyboard."""
    scene_id: str
    duration_s: float
    shot_type: str
    camera_move: str
    framing: str
    action: str
    dialogue_vo: str = ""
    onscreen_text: str = ""
    color_palette: list[str] = Field(default_factory=list)
    typography: str = ""
    music_sfx: str = ""
    transition: str = ""
    assets_needed: list[str] = Field(default_factory=list)


class Copy(BaseModel):
    headline: str
    body: str
    cta: str


class RenderSpecs(BaseModel):
    resolution: str
    format: str
    filename: str


class ABTest(BaseModel):
    label: str
    change: str


class Variant(BaseModel):
    """One channel-specific rendering of the ad package."""
    # "copy" would shadow BaseModel.copy
    model_config = ConfigDict(populate_by_name=True, serialize_by_alias=True)

    id: str
    channel: str
    duration_s: float
    aspect_ratio: str
    storyboard: list[StoryboardScene] = Field(default_factory=list)
    ad_copy: Copy = Field(..., alias="copy")
    render_specs: RenderSpecs
    ab_tests: list[ABTest] = Field(default_factory=list)
    legal_note: str = ""


class Asset(BaseModel):
    id: str
    type: Literal["image", "video", "audio", "font"]
    purpose: str
    notes: str = ""


class StyleGuide(BaseModel):
    colors: list[str] = Field(default_factory=list)
    typography: str
    logo_placement: str
    motion_easing: str


class AdPackage(BaseModel):
    campaign_brief: CampaignBrief
    audience: Audience
    kpi: Kpi
    variants: list[Variant] = Field(default_factory=list)
    assets: list[Asset] = Field(default_factory=list)
    style_guide: StyleGuide
    production_checklist: list[str] = Field(default_factory=list)
    disclaimer_legal: str = ""


# ---------------------------------------------------------------------------
# Quick creative concept (headline + 3-scene storyboard)
# ---------------------------------------------------------------------------

class ConceptScene(BaseModel):
    scene_id: str
    description: str
    action: str
    shot_type: str
    mood: str


class CreativeOutput(BaseModel):
    headline: str
    body: str
    cta: str
    storyboard: list[ConceptScene] = Field(default_factory=list)
