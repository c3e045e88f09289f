"""Command-line host for the docscan library."""

import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from loguru import logger
from PIL import Image, ImageOps
from rich.console import Console

from docscan.config import Config, Engine, PageSegMode, RecognitionConfig
from docscan.edges import detect_document_in_image
from docscan.engines.anthropic import AnthropicEngine
from docscan.engines.base import RecognitionEngine
from docscan.engines.openai import OpenAIEngine
from docscan.engines.tesseract import TesseractEngine
from docscan.errors import EngineError
from docscan.languages import LANGUAGES
from docscan.models import Cancelled, Completed, RecognitionProgress
from docscan.orchestrator import CancellationToken, RecognitionOrchestrator
from docscan.preprocessing import DEFAULT_MAX_DIMENSION, PreprocessingPipeline

console = Console(stderr=True)
load_dotenv()

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".bmp", ".tif", ".tiff"}

ENGINE_CHOICE = click.Choice([e.value for e in Engine], case_sensitive=False)


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def _load_image(path: Path) -> Image.Image:
    """Decode an image file, applying its EXIF orientation."""
    if path.suffix.lower() not in IMAGE_EXTENSIONS:
        console.print(f"[red]Unsupported file type:[/red] {path.suffix}")
        sys.exit(1)
    with Image.open(path) as img:
        img = ImageOps.exif_transpose(img)
        return img.convert("RGB")


def _load_config(engine: str, model=None, api_key=None, tessdata=None) -> Config:
    try:
        return Config.from_env(
            engine=Engine(engine),
            model_override=model,
            api_key_override=api_key,
            tessdata_override=tessdata,
        )
    except RuntimeError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging on stderr.")
@click.version_option()
def main(verbose):
    """Extract text from photographed documents."""
    _configure_logging(verbose)


# ── assess ─────────────────────────────────────────────────────────────────


@main.command()
@click.argument("image_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def assess(image_path):
    """Score the blur, brightness and resolution of IMAGE_PATH."""
    image = _load_image(image_path)
    quality = PreprocessingPipeline().assess(image)

    click.echo(f"Blur score:       {quality.blur_score:.2f}")
    click.echo(f"Brightness score: {quality.brightness_score:.2f}")
    click.echo(f"Resolution:       {quality.resolution_pixels:,} px")
    click.echo(f"Acceptable:       {'yes' if quality.acceptable else 'no'}")
    click.echo(f"Summary:          {quality.description}")
    for warning in quality.warnings:
        click.echo(f"  - {warning}")

    if not quality.acceptable:
        console.print("[yellow]Consider retaking the photo.[/yellow]")


# ── detect ─────────────────────────────────────────────────────────────────


@main.command()
@click.argument("image_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def detect(image_path):
    """Locate the document boundary in IMAGE_PATH."""
    image = _load_image(image_path)
    corners = detect_document_in_image(image)
    if corners is None:
        click.echo("No document detected")
        return

    labels = ("top-left", "top-right", "bottom-right", "bottom-left")
    for label, point in zip(labels, corners.points()):
        click.echo(f"{label:<13} ({point.x:.0f}, {point.y:.0f})")
    click.echo(f"Reliable:     {'yes' if corners.is_reliable else 'no'}")


# ── recognize ──────────────────────────────────────────────────────────────


@main.command()
@click.argument("image_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--engine", "-e",
    type=ENGINE_CHOICE,
    default=Engine.TESSERACT.value,
    show_default=True,
    help="Recognition engine to use.",
)
@click.option(
    "--language", "-l",
    default="eng",
    show_default=True,
    help="Document language code, e.g. eng, deu, eng+fra.",
)
@click.option(
    "--model", "-m",
    default=None,
    help="Model name override for the LLM engines.",
)
@click.option(
    "--api-key",
    default=None,
    help="API key for the LLM engines (overrides environment variable).",
)
@click.option(
    "--tessdata",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Tesseract language data directory (overrides TESSDATA_PREFIX).",
)
@click.option(
    "--psm",
    type=click.IntRange(0, 13),
    default=int(PageSegMode.AUTO),
    show_default=True,
    help="Tesseract page segmentation mode.",
)
@click.option(
    "--max-dimension",
    type=click.IntRange(min=1),
    default=DEFAULT_MAX_DIMENSION,
    show_default=True,
    help="Downscale so neither side exceeds this many pixels.",
)
@click.option(
    "--preprocess/--no-preprocess",
    default=True,
    show_default=True,
    help="Rescale, convert to grayscale and stretch contrast before recognition.",
)
@click.option(
    "--output", "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output file path. Defaults to stdout.",
)
def recognize(image_path, engine, language, model, api_key, tessdata, psm,
              max_dimension, preprocess, output):
    """Recognise the text in IMAGE_PATH.

    Results are written to stdout unless --output is specified.
    """
    config = _load_config(engine, model, api_key, tessdata)
    image = _load_image(image_path)

    quality = PreprocessingPipeline().assess(image)
    for warning in quality.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")

    run_config = RecognitionConfig(
        language=language,
        page_segmentation_mode=PageSegMode(psm),
        preprocess=preprocess,
        max_dimension=max_dimension,
    )
    orchestrator = RecognitionOrchestrator(_build_engine(config))
    token = CancellationToken()

    try:
        with console.status(f"[cyan]{RecognitionProgress.initial().status_message}") as status:
            def on_progress(progress: RecognitionProgress) -> None:
                status.update(f"[cyan]{progress.status_message}")

            future = orchestrator.submit(image, run_config, token, on_progress)
            try:
                outcome = future.result()
            except KeyboardInterrupt:
                token.cancel()
                outcome = future.result()
    finally:
        orchestrator.shutdown()

    if isinstance(outcome, Cancelled):
        console.print("[yellow]Recognition cancelled[/yellow]")
        sys.exit(130)
    if not isinstance(outcome, Completed):
        console.print(f"[red]Recognition failed:[/red] {outcome.message}")
        sys.exit(1)

    result = outcome.result
    console.print(
        f"[dim]{result.word_count} words, {result.character_count} characters, "
        f"confidence {result.confidence_percentage}, "
        f"{result.processing_time_seconds:.1f}s[/dim]"
    )
    if output:
        output.write_text(result.text, encoding="utf-8")
        console.print(f"[green]Written to {output}[/green]")
    else:
        click.echo(result.text)


# ── languages ──────────────────────────────────────────────────────────────


@main.command()
@click.option(
    "--engine", "-e",
    type=ENGINE_CHOICE,
    default=Engine.TESSERACT.value,
    show_default=True,
    help="Engine whose language availability to check.",
)
@click.option(
    "--tessdata",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Tesseract language data directory (overrides TESSDATA_PREFIX).",
)
def languages(engine, tessdata):
    """List supported languages and whether ENGINE can use them."""
    config = _load_config(engine, tessdata=tessdata)
    try:
        available = set(_build_engine(config).available_languages())
    except EngineError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    for code, name in LANGUAGES.items():
        mark = "installed" if code in available else "-"
        click.echo(f"{code:<8} {name:<24} {mark}")


def _build_engine(config: Config) -> RecognitionEngine:
    if config.engine == Engine.TESSERACT:
        return TesseractEngine(tessdata_dir=config.tessdata_dir)
    elif config.engine == Engine.ANTHROPIC:
        return AnthropicEngine(api_key=config.api_key, model=config.model)
    elif config.engine == Engine.OPENAI:
        return OpenAIEngine(api_key=config.api_key, model=config.model)
    else:
        raise ValueError(f"Unknown engine: {config.engine}")
