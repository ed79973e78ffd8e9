from __future__ import annotations

import unittest

from pipeline import prompting
from schemas.ad_package import AdPackage, ConceptScene, CreativeOutput, StoryboardScene, Variant
from schemas.request import AdGenRequest, ImageAsset


def _image(name: str = "p.png") -> ImageAsset:
    return ImageAsset(filename=name, mime_type="image/png", data=b"\x89PNG")


class AdPackagePromptTests(unittest.TestCase):
    def test_fields_are_embedded_verbatim(self):
        req = AdGenRequest(
            product_description="Solar-powered hiking backpack",
            campaign_goals="Drive online sales by 20%",
            brand_guidelines="Primary color: #FFFFFF",
            tone="Energetic and inspiring",
            channels=["TikTok", "YouTube"],
            regions="North America, Japan",
        )
        prompt = prompting.build_ad_package_prompt(req)

        self.assertIn("Solar-powered hiking backpack", prompt)
        self.assertIn("Drive online sales by 20%", prompt)
        self.assertIn("Primary color: #FFFFFF", prompt)
        self.assertIn("Energetic and inspiring", prompt)
        self.assertIn("North America, Japan", prompt)
        self.assertIn("One variant per channel, in this order: TikTok, YouTube.", prompt)

    def test_blank_optionals_get_placeholders(self):
        req = AdGenRequest(product_description="Backpack")
        prompt = prompting.build_ad_package_prompt(req)

        self.assertIn("**Campaign Goals:** Not specified", prompt)
        self.assertIn("**Brand Guidelines:** None provided", prompt)
        self.assertIn("**Tone:** Not specified", prompt)
        self.assertIn("**Channels:** Not specified", prompt)
        self.assertIn(prompting.VARIANT_FOR_UNSPECIFIED_CHANNELS, prompt)

    def test_image_counts_are_stated(self):
        req = AdGenRequest(
            product_description="Backpack",
            product_images=[_image("a.png"), _image("b.png")],
            celebrity_images=[_image("c.png")],
        )
        prompt = prompting.build_ad_package_prompt(req)

        self.assertIn("2 product image(s)", prompt)
        self.assertIn("1 celebrity/influencer image(s)", prompt)

    def test_concept_prompt_embeds_every_field(self):
        req = AdGenRequest(
            product_description="Solar-powered hiking backpack",
            campaign_goals="Drive online sales by 20%",
            brand_guidelines="Minimalist, primary color #FFFFFF",
            tone="Serene",
            channels=["TikTok", "Billboard"],
            regions="Japan",
            product_images=[_image()],
        )
        prompt = prompting.build_concept_prompt(req)

        for value in (
            "Solar-powered hiking backpack",
            "Drive online sales by 20%",
            "Minimalist, primary color #FFFFFF",
            "Serene",
            "TikTok, Billboard",
            "Japan",
        ):
            self.assertIn(value, prompt)
        self.assertIn("3 distinct scenes", prompt)
        self.assertIn("1 product image(s)", prompt)
        self.assertIn("0 celebrity/influencer image(s)", prompt)

    def test_concept_prompt_placeholders(self):
        prompt = prompting.build_concept_prompt(AdGenRequest(product_description="Backpack"))

        self.assertIn("**Brand Guidelines:** None provided", prompt)
        self.assertIn("**Target Regions:** Not specified", prompt)


class ResponseSchemaTests(unittest.TestCase):
    def _assert_all_required(self, schema: dict):
        if schema.get("type") == "OBJECT":
            self.assertEqual(schema["required"], list(schema["properties"]))
            self.assertEqual(schema["propertyOrdering"], list(schema["properties"]))
            for child in schema["properties"].values():
                self._assert_all_required(child)
        elif schema.get("type") == "ARRAY":
            self._assert_all_required(schema["items"])

    def test_ad_package_schema_matches_model_fields(self):
        schema = prompting.AD_PACKAGE_RESPONSE_SCHEMA
        self.assertEqual(set(schema["properties"]), set(AdPackage.model_fields))

        variant = schema["properties"]["variants"]["items"]
        expected = {field.alias or name for name, field in Variant.model_fields.items()}
        self.assertEqual(set(variant["properties"]), expected)
        self.assertIn("copy", variant["properties"])

        scene = variant["properties"]["storyboard"]["items"]
        self.assertEqual(set(scene["properties"]), set(StoryboardScene.model_fields))

    def test_every_object_requires_all_properties(self):
        self._assert_all_required(prompting.AD_PACKAGE_RESPONSE_SCHEMA)
        self._assert_all_required(prompting.CREATIVE_OUTPUT_RESPONSE_SCHEMA)

    def test_concept_schema_matches_model_fields(self):
        schema = prompting.CREATIVE_OUTPUT_RESPONSE_SCHEMA
        self.assertEqual(set(schema["properties"]), set(CreativeOutput.model_fields))
        scene = schema["properties"]["storyboard"]["items"]
        self.assertEqual(set(scene["properties"]), set(ConceptScene.model_fields))

    def test_asset_type_is_enumerated(self):
        asset = prompting.AD_PACKAGE_RESPONSE_SCHEMA["properties"]["assets"]["items"]
        self.assertEqual(asset["properties"]["type"]["enum"], ["image", "video", "audio", "font"])


class ScenePromptTests(unittest.TestCase):
    def test_concept_scene_image_prompt(self):
        scene = ConceptScene(
            scene_id="s1",
            description="Hiker at dawn",
            action="Hiker unzips the backpack",
            shot_type="close-up",
            mood="serene",
        )
        self.assertEqual(
            prompting.build_scene_image_prompt(scene),
            'Cinematic photo, close-up, serene mood. Action: "Hiker unzips the backpack". '
            "Style: hyper-realistic, professional commercial photography.",
        )

    def test_concept_scene_video_prompt(self):
        scene = ConceptScene(scene_id="s2", description="", action="Sun rises", shot_type="wide shot", mood="")
        self.assertEqual(
            prompting.build_scene_video_prompt(scene),
            'Cinematic video, wide shot, cinematic mood. Action: "Sun rises". '
            "High-resolution, professional commercial footage.",
        )

    def test_storyboard_scene_uses_camera_and_palette(self):
        scene = StoryboardScene(
            scene_id="s1",
            duration_s=3,
            shot_type="wide shot",
            camera_move="slow push-in",
            framing="rule of thirds",
            action="Backpack charges a phone on a summit",
            color_palette=["#FF8800", "forest green"],
        )
        prompt = prompting.build_scene_image_prompt(scene)

        self.assertIn("wide shot, rule of thirds", prompt)
        self.assertIn("slow push-in; #FF8800, forest green palette mood", prompt)
        self.assertIn('Action: "Backpack charges a phone on a summit"', prompt)


if __name__ == "__main__":
    unittest.main()
