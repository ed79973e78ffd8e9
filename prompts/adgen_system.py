"""AdGen prompt templates.

Filled in by pipeline.prompting. Placeholders use str.format names, so
literal braces in the templates must be doubled.
"""

AD_PACKAGE_PROMPT = """You are AdGen — a multimodal advertising creative generator.
Your role is to take the campaign inputs below and produce a complete, production-ready ad package.
You MUST output a valid JSON object matching the provided schema.

**Campaign Inputs:**
- **Product Description:** {product_description}
- **Campaign Goals:** {campaign_goals}
- **Brand Guidelines:** {brand_guidelines}
- **Tone:** {tone}
- **Channels:** {channels}
- **Target Regions (for localization):** {regions}

**Attached Assets:**
- {product_image_count} product image(s).
- {celebrity_image_count} celebrity/influencer image(s).

Based on these inputs, generate an ad package including:
1. A campaign brief: a title, a one-line hook and 3-5 value propositions.
2. The target audience: age range, segments and one sharp insight.
3. A primary KPI and a measurable goal for it that serves the campaign goals.
4. {variant_instruction} Each variant needs a native duration and aspect ratio,
   a storyboard of 3-6 scenes (scene_id like 's1', duration, shot type, camera move, framing,
   action, dialogue/VO, on-screen text, color palette, typography, music/SFX, transition,
   assets needed), headline/body/CTA copy, render specs, 1-3 A/B tests and a legal note.
5. The list of assets to produce (image, video, audio or font) with their purpose.
6. A style guide (colors, typography, logo placement, motion easing) that honours the brand guidelines.
7. A production checklist and a legal disclaimer.

Localize copy and cultural references for the target regions.
If celebrity/influencer images are attached, feature that person consistently across the storyboards.
"""

VARIANT_FOR_CHANNELS = "One variant per channel, in this order: {channels}."
VARIANT_FOR_UNSPECIFIED_CHANNELS = (
    "No channels were selected: choose the 2-3 channels that best fit the product and "
    "audience and produce one variant for each."
)

CONCEPT_PROMPT = """You are AdGen — a multimodal advertising creative generator.
Your role is to take user inputs and generate a compelling ad concept.
You MUST output a valid JSON object matching the provided schema.

**User Inputs:**
- **Product Description:** {product_description}
- **Campaign Goals:** {campaign_goals}
- **Brand Guidelines:** {brand_guidelines}
- **Tone:** {tone}
- **Channels:** {channels}
- **Target Regions:** {regions}

**Attached Assets:**
- {product_image_count} product image(s).
- {celebrity_image_count} celebrity/influencer image(s).

Based on these inputs, generate an ad concept including:
1. A catchy headline.
2. A short body copy.
3. A clear call to action (CTA).
4. A storyboard with 3 distinct scenes. For each scene, provide a scene_id (e.g., 's1'), a detailed visual description, the key action, the shot_type (e.g., 'wide shot', 'close-up'), and the overall mood (e.g., 'energetic', 'serene').
"""

SCENE_IMAGE_PROMPT = (
    'Cinematic photo, {shot_type}, {mood} mood. Action: "{action}". '
    "Style: hyper-realistic, professional commercial photography."
)

SCENE_VIDEO_PROMPT = (
    'Cinematic video, {shot_type}, {mood} mood. Action: "{action}". '
    "High-resolution, professional commercial footage."
)
