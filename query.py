#!/usr/bin/env python3
"""Ad hoc query runner for FridgeChef.

Runs one façade operation against the live backends and prints the result.

Usage:
    python query.py --image images/fridge.jpg            # detect, then cook with what was found
    python query.py "eggs, spinach, feta"                 # recipe from typed ingredients
    python query.py --cuisine Italian "tomato, basil"     # with a cuisine style
    python query.py --dish "Masala Omelette"              # recipe for a named dish
    python query.py --debug --dish "Pad Thai"             # also dump full JSON and the attempt trail

Features:
- Image loading from disk (sent as a data URI)
- Attempt trail (candidate, outcome, elapsed time) printed as a table
- Markdown rendering of the recipe
"""

import asyncio
import base64
import sys
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from fridgechef.hooks.hooks import AttemptRecorder, log_attempt_hook
from fridgechef.models.models import Outcome, Recipe
from fridgechef.services.kitchen import Kitchen
from fridgechef.utils.config import config
from fridgechef.utils.logger import logger

console = Console()


def recipe_to_markdown(recipe: Recipe) -> str:
    """Render a Recipe as markdown for the console."""
    lines = [f"# {recipe.title}", "", f"**Health score:** {recipe.health_score:g}/10 - {recipe.health_reasoning}", ""]
    lines.append("## Ingredients")
    lines.extend(f"- {item}" for item in recipe.ingredients)
    lines.append("")
    lines.append("## Instructions")
    lines.extend(f"{i}. {step}" for i, step in enumerate(recipe.instructions, start=1))
    if recipe.magic_spice:
        lines += ["", f"**Magic spice:** {recipe.magic_spice} - {recipe.magic_spice_reasoning}"]
    if recipe.restricted_ingredients:
        lines += ["", f"**Left out for your profile:** {', '.join(recipe.restricted_ingredients)}"]
    if recipe.search_query:
        lines += ["", f"*Video search:* `{recipe.search_query}`"]
    return "\n".join(lines)


def print_attempts(recorder: AttemptRecorder) -> None:
    table = Table(title="Attempts")
    table.add_column("#")
    table.add_column("Candidate")
    table.add_column("Outcome")
    table.add_column("ms", justify="right")
    for i, event in enumerate(recorder.events, start=1):
        table.add_row(str(i), event.candidate.backend_id, event.outcome.value, str(event.elapsed_ms))
    console.print(table)


def print_failure(outcome: Outcome) -> None:
    console.print(f"[red]✗ {outcome.error_kind.value}: {outcome.message}[/red]")


def load_image(image_path: str) -> str:
    """Read an image file and return it as a data URI."""
    image_file = Path(image_path)
    if not image_file.exists():
        console.print(f"[red]✗ Error: Image file not found: {image_path}[/red]")
        sys.exit(1)

    mime_types = {".jpg": "image/jpeg", ".jpeg": "image/jpeg", ".png": "image/png", ".webp": "image/webp"}
    mime_type = mime_types.get(image_file.suffix.lower(), "image/jpeg")
    image_data = base64.b64encode(image_file.read_bytes()).decode("utf-8")
    logger.info(f"✓ Loaded image: {image_file.name} ({len(image_data) / 1024:.1f} KB base64)")
    return f"data:{mime_type};base64,{image_data}"


async def run_query(
    text: str, image_path: str = None, dish: str = None, cuisine: str = "Any", debug: bool = False
) -> int:
    """Execute one query and print the outcome. Returns a process exit code."""
    recorder = AttemptRecorder()
    kitchen = Kitchen(hooks=[log_attempt_hook, recorder])

    if dish:
        outcome = await kitchen.generate_recipe_from_name(dish)
    else:
        ingredients = [name.strip() for name in text.split(",") if name.strip()]
        if image_path:
            detected = await kitchen.detect_ingredients(load_image(image_path))
            if not detected.ok:
                print_attempts(recorder)
                print_failure(detected)
                return 1
            console.print(f"[green]Detected:[/green] {', '.join(i.label() for i in detected.value)}")
            ingredients = detected.value + ingredients
        outcome = await kitchen.generate_recipe_from_ingredients(ingredients, cuisine=cuisine)

    if debug:
        print_attempts(recorder)
        console.print_json(data=outcome.model_dump(mode="json"))

    if not outcome.ok:
        print_failure(outcome)
        return 1

    console.print()
    console.print(Markdown(recipe_to_markdown(outcome.value)))
    return 0


if __name__ == "__main__":
    usage = 'Usage: python query.py [--debug] [--image PATH] [--cuisine NAME] [--dish NAME] ["ingredient, ..."]'
    if len(sys.argv) < 2:
        print(usage)
        sys.exit(1)

    debug_mode = False
    image_path = None
    dish_name = None
    cuisine = "Any"
    argv_start = 1

    while argv_start < len(sys.argv) and sys.argv[argv_start].startswith("--"):
        flag = sys.argv[argv_start]
        if flag == "--debug":
            debug_mode = True
            argv_start += 1
        elif flag in ("--image", "--dish", "--cuisine"):
            argv_start += 1
            if argv_start >= len(sys.argv):
                print(f"Error: {flag} flag requires a value")
                sys.exit(1)
            value = sys.argv[argv_start]
            if flag == "--image":
                image_path = value
            elif flag == "--dish":
                dish_name = value
            else:
                cuisine = value
            argv_start += 1
        else:
            print(f"Unknown flag: {flag}")
            sys.exit(1)

    query_text = " ".join(sys.argv[argv_start:])
    if not (query_text or image_path or dish_name):
        print("Error: No ingredients, image or dish provided")
        print(usage)
        sys.exit(1)

    try:
        config.validate()
    except ValueError as e:
        console.print(f"[red]✗ Configuration error: {e}[/red]")
        sys.exit(1)

    try:
        sys.exit(asyncio.run(run_query(query_text, image_path, dish_name, cuisine, debug_mode)))
    except KeyboardInterrupt:
        logger.info("\nQuery interrupted by user.")
        sys.exit(0)
