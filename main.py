"""AdGen — Entry Point.

Usage:
    # Generate a full ad package from a JSON request file
    python main.py generate --input request.json

    # Generate from flags, attaching product photos
    python main.py generate -d "Solar-powered hiking backpack" --image pack.jpg \
        --goals "Drive online sales" --tone "Energetic" --channel TikTok --channel YouTube

    # Quick concept (headline/body/CTA + 3 scenes) instead of the full package
    python main.py generate -d "Solar-powered hiking backpack" --concept

    # Render one scene still / video from a prompt
    python main.py image --prompt "Cinematic photo, close-up..." --out scene.jpg
    python main.py video --prompt "Cinematic video, wide shot..."

    # Serve the browser form
    python main.py serve --port 8000
"""

from __future__ import annotations

import argparse
import base64
import json
import logging
import mimetypes
import sys
from pathlib import Path

from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

import config
from pipeline.generation import (
    generate_ad_image,
    generate_ad_package,
    generate_ad_video,
    generate_creative_concept,
)
from pipeline.llm import LLMError, get_usage_summary
from schemas.ad_package import AdPackage, CreativeOutput
from schemas.request import AdGenRequest, ImageAsset

console = Console()


def setup_logging():
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _read_image(path_str: str) -> ImageAsset:
    path = Path(path_str)
    if not path.exists():
        console.print(f"[red]Image file not found: {escape(str(path))}[/red]")
        sys.exit(1)
    mime_type = mimetypes.guess_type(path.name)[0] or ""
    try:
        return ImageAsset(filename=path.name, mime_type=mime_type, data=path.read_bytes())
    except ValidationError:
        console.print(f"[red]Not an image file: {escape(str(path))}[/red]")
        sys.exit(1)


def load_request(args: argparse.Namespace) -> AdGenRequest:
    """Build the campaign request from a JSON file or CLI flags.

    JSON files use the form's field names; ``product_images`` and
    ``celebrity_images`` are lists of image paths relative to the file.
    Flags given alongside ``--input`` override the file's values.
    """
    fields: dict = {}
    base_dir = Path.cwd()
    if args.input:
        path = Path(args.input)
        if not path.exists():
            console.print(f"[red]Input file not found: {escape(str(path))}[/red]")
            sys.exit(1)
        fields = json.loads(path.read_text())
        base_dir = path.parent

    product_paths = [str(base_dir / p) for p in fields.pop("product_images", [])] + list(args.image or [])
    celebrity_paths = [str(base_dir / p) for p in fields.pop("celebrity_images", [])] + list(args.celebrity or [])

    overrides = {
        "product_description": args.description,
        "campaign_goals": args.goals,
        "brand_guidelines": args.guidelines,
        "tone": args.tone,
        "regions": args.regions,
        "channels": args.channel,
    }
    fields.update({k: v for k, v in overrides.items() if v})

    try:
        return AdGenRequest(
            product_description=fields.get("product_description", ""),
            product_images=[_read_image(p) for p in product_paths],
            celebrity_images=[_read_image(p) for p in celebrity_paths],
            campaign_goals=fields.get("campaign_goals", ""),
            brand_guidelines=fields.get("brand_guidelines", ""),
            tone=fields.get("tone", ""),
            channels=fields.get("channels", []),
            regions=fields.get("regions", ""),
        )
    except ValidationError as exc:
        for err in exc.errors():
            console.print(f"[red]{escape(str(err.get('msg', '')).removeprefix('Value error, '))}[/red]")
        sys.exit(1)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def render_ad_package(pkg: AdPackage):
    # Model text is escaped before it reaches markup.
    brief = pkg.campaign_brief
    console.print(Panel(
        f"[bold]{escape(brief.title)}[/bold]\n{escape(brief.hook)}\n\n"
        + "\n".join(f"  • {escape(v)}" for v in brief.value_props),
        title="Campaign Brief",
        border_style="bright_magenta",
    ))
    console.print(
        f"  [green]Audience:[/green] {escape(pkg.audience.age_range)}, {escape(', '.join(pkg.audience.segments))}\n"
        f"  [green]Insight:[/green] {escape(pkg.audience.insight)}\n"
        f"  [green]KPI:[/green] {escape(pkg.kpi.primary)} ({escape(pkg.kpi.goal)})"
    )

    for variant in pkg.variants:
        table = Table(
            title=escape(f"{variant.channel} — {variant.aspect_ratio}, {variant.duration_s:g}s"),
            show_lines=True,
        )
        table.add_column("Scene")
        table.add_column("Shot")
        table.add_column("Action")
        table.add_column("VO / Text")
        for scene in variant.storyboard:
            table.add_row(
                escape(scene.scene_id),
                escape(f"{scene.shot_type}, {scene.camera_move}"),
                escape(scene.action),
                escape("\n".join(x for x in (scene.dialogue_vo, scene.onscreen_text) if x)),
            )
        ad_copy = variant.ad_copy
        console.print()
        console.print(f"[bold]{escape(ad_copy.headline)}[/bold]\n{escape(ad_copy.body)}\n[cyan]{escape(ad_copy.cta)}[/cyan]")
        console.print(table)

    style = pkg.style_guide
    console.print(
        f"\n  [green]Colors:[/green] {escape(', '.join(style.colors))}\n"
        f"  [green]Typography:[/green] {escape(style.typography)}\n"
        f"  [green]Logo:[/green] {escape(style.logo_placement)}"
    )
    console.print("\n[bold]Production checklist[/bold]")
    for item in pkg.production_checklist:
        console.print(f"  • {escape(item)}")
    if pkg.disclaimer_legal:
        console.print(f"\n[dim]{escape(pkg.disclaimer_legal)}[/dim]")


def render_concept(concept: CreativeOutput):
    console.print(Panel(
        f"[bold]{escape(concept.headline)}[/bold]\n{escape(concept.body)}\n\n[cyan]{escape(concept.cta)}[/cyan]",
        title="Concept",
        border_style="bright_magenta",
    ))
    for scene in concept.storyboard:
        console.print(
            f"  [green]Scene {escape(scene.scene_id)}[/green] "
            f"{escape(f'({scene.shot_type}, {scene.mood}): {scene.description}')}"
        )
        console.print(f"    {escape(scene.action)}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def run_generate(args: argparse.Namespace):
    request = load_request(args)
    console.print(f"  Images attached: {request.image_count}, channels: {escape(', '.join(request.channels)) or 'unspecified'}")

    with console.status("AdGen is thinking..."):
        if args.concept:
            result = generate_creative_concept(request)
        else:
            result = generate_ad_package(request)

    if args.out:
        out_path = Path(args.out)
        out_path.write_text(result.model_dump_json(indent=2))
        console.print(f"  [green]Saved:[/green] {out_path}")

    if args.json:
        console.print_json(result.model_dump_json())
    elif args.concept:
        render_concept(result)
    else:
        render_ad_package(result)

    usage = get_usage_summary()
    console.print(f"\n  [dim]{usage['calls']} call(s), ${usage['total_cost']:.4f} estimated[/dim]")


def run_image(args: argparse.Namespace):
    with console.status("Generating Image..."):
        data_url = generate_ad_image(args.prompt)
    encoded = data_url.split(",", 1)[1]
    out_path = Path(args.out)
    out_path.write_bytes(base64.b64decode(encoded))
    console.print(f"  [green]Image saved:[/green] {out_path}")


def run_video(args: argparse.Namespace):
    with console.status("Sending request to the video model...") as status:
        path = generate_ad_video(
            args.prompt,
            on_status=status.update,
            max_wait=args.max_wait,
            output_dir=Path(args.out_dir) if args.out_dir else None,
        )
    console.print(f"  [green]Video saved:[/green] {path}")


def run_serve(args: argparse.Namespace):
    import uvicorn

    console.print(f"  http://localhost:{args.port}")
    uvicorn.run("server:app", host=args.host, port=args.port, log_level="info")


def main():
    parser = argparse.ArgumentParser(
        description="AdGen — AI Creative Generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # -- generate command --
    gen = subparsers.add_parser("generate", help="Generate an ad package (or a quick concept)")
    gen.add_argument("--input", "-i", help="Path to JSON request file")
    gen.add_argument("--description", "-d", help="Product description")
    gen.add_argument("--image", action="append", help="Product image path (repeatable)")
    gen.add_argument("--celebrity", action="append", help="Celebrity / influencer image path (repeatable)")
    gen.add_argument("--goals", help="Campaign goals")
    gen.add_argument("--guidelines", help="Brand guidelines")
    gen.add_argument("--tone", help="Tone of voice")
    gen.add_argument("--channel", action="append", choices=config.CHANNEL_OPTIONS, help="Target channel (repeatable)")
    gen.add_argument("--regions", help="Target regions for localization")
    gen.add_argument("--concept", action="store_true", help="Generate a single concept instead of a full package")
    gen.add_argument("--json", action="store_true", help="Print the raw JSON result")
    gen.add_argument("--out", "-o", help="Write the JSON result to this file")

    # -- image command --
    img = subparsers.add_parser("image", help="Generate one scene still from a prompt")
    img.add_argument("--prompt", required=True, help="Image prompt")
    img.add_argument("--out", "-o", required=True, help="Output image path (.jpg)")

    # -- video command --
    vid = subparsers.add_parser("video", help="Generate one scene video from a prompt")
    vid.add_argument("--prompt", required=True, help="Video prompt")
    vid.add_argument(
        "--max-wait",
        type=float,
        default=None,
        help=f"Stop polling after this many seconds, 0 for no limit (default: {config.VIDEO_POLL_MAX_WAIT:g})",
    )
    vid.add_argument("--out-dir", help=f"Directory for the video (default: {config.VIDEO_DIR})")

    # -- serve command --
    srv = subparsers.add_parser("serve", help="Serve the browser form")
    srv.add_argument("--host", default=config.HOST)
    srv.add_argument("--port", type=int, default=config.PORT)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(0)

    setup_logging()

    console.print(
        Panel(
            "[bold]ADGEN[/bold]\n"
            "AI Creative Generator",
            border_style="bright_magenta",
        )
    )

    try:
        if args.command == "generate":
            run_generate(args)
        elif args.command == "image":
            run_image(args)
        elif args.command == "video":
            run_video(args)
        elif args.command == "serve":
            run_serve(args)
    except LLMError as exc:
        console.print(f"[red]Generation Failed:[/red] {escape(str(exc))}")
        sys.exit(1)


if __name__ == "__main__":
    main()
