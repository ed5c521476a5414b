"""Typer-based CLI entry point."""

from __future__ import annotations

import functools
import logging
import math
from dataclasses import replace
from pathlib import Path
from typing import Optional

import typer
from rich import print

from .application.use_cases import CommitCropRequest, CommitCropUseCase
from .core.controller import CropController, CropperConfig
from .core.cover import crop_size_for_aspect, parse_aspect
from .core.export import ExportOptions
from .core.transform import Size
from .errors import DecodeError, ICropError, SettingsError
from .infrastructure.services.local_uploader import LocalDirectoryUploader
from .settings.manager import SettingsManager
from .utils.image_loader import PillowBitmapDecoder, read_exif_orientation

app = typer.Typer(help="Rotate, zoom and crop images with a cover-preserving viewport")


def _handle_errors(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (DecodeError, SettingsError, ValueError) as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(1) from exc
        except ICropError as exc:
            typer.echo(f"Unexpected error: {exc}", err=True)
            raise typer.Exit(1) from exc

    return wrapper


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
@_handle_errors
def crop(
    source: Path = typer.Argument(..., exists=True, dir_okay=False),
    destination: Path = typer.Argument(...),
    aspect: str = typer.Option("1:1", help="Crop aspect: W:H, 'original' or a number"),
    viewport_width: float = typer.Option(320.0, help="Width of the crop container"),
    viewport_height: float = typer.Option(320.0, help="Height of the crop container"),
    zoom: float = typer.Option(1.0, help="Zoom multiplier relative to the cover fit"),
    rotate: float = typer.Option(0.0, help="Rotation in degrees"),
    pan_x: float = typer.Option(0.0, help="Horizontal pan in viewport pixels"),
    pan_y: float = typer.Option(0.0, help="Vertical pan in viewport pixels"),
    output_width: Optional[int] = typer.Option(None, min=1),
    output_height: Optional[int] = typer.Option(None, min=1),
    output_max: Optional[int] = typer.Option(None, min=1),
    output_format: Optional[str] = typer.Option(None, "--format", help="JPEG, PNG or WEBP"),
    quality: Optional[int] = typer.Option(None, min=1, max=100),
    allow_padding: Optional[bool] = typer.Option(None, "--allow-padding/--no-padding"),
    background: Optional[str] = typer.Option(None, help="Padding colour or 'transparent'"),
    settings: Optional[Path] = typer.Option(None, help="Settings JSON to read defaults from"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Crop SOURCE through a viewport and write the result to DESTINATION."""

    _configure_logging(verbose)
    decoder = PillowBitmapDecoder()
    bitmap = decoder.decode(source)
    image = Size(bitmap.width, bitmap.height)
    crop_box = crop_size_for_aspect(Size(viewport_width, viewport_height), parse_aspect(aspect, image))

    if settings is not None:
        manager = SettingsManager(settings)
        manager.load()
        cfg = manager.cropper_config()
        options = manager.export_options(crop_box)
    else:
        cfg = CropperConfig()
        options = ExportOptions(crop_width=crop_box.width, crop_height=crop_box.height)

    if allow_padding is not None:
        cfg = replace(cfg, allow_padding=allow_padding)
        options = replace(options, allow_padding=allow_padding)
    overrides = {
        "output_width": output_width,
        "output_height": output_height,
        "output_max": output_max,
        "output_format": output_format.upper() if output_format else None,
        "quality": quality,
        "background": background,
    }
    options = replace(options, **{key: value for key, value in overrides.items() if value is not None})

    controller = CropController(image, crop_box, cfg)
    if rotate:
        controller.rotate_by(math.radians(rotate))
    if zoom != 1.0:
        controller.zoom_by(zoom)
    if pan_x or pan_y:
        controller.pan_by(pan_x, pan_y)

    destination = destination.resolve()
    use_case = CommitCropUseCase(decoder, LocalDirectoryUploader(destination.parent))
    response = use_case.execute(
        CommitCropRequest(
            source=bitmap,
            transform=controller.transform,
            options=options,
            destination=destination.name,
        )
    )
    if not response.success or response.result is None:
        typer.echo(f"Error: {response.error}", err=True)
        raise typer.Exit(1)

    rect = response.result.source_rect
    width, height = response.result.output_size
    print(f"[green]Wrote {width}x{height} crop to {response.url}")
    print(f"Source rect: sx={rect.sx} sy={rect.sy} sw={rect.sw} sh={rect.sh}")


@app.command()
@_handle_errors
def info(source: Path = typer.Argument(..., exists=True, dir_okay=False)) -> None:
    """Print the upright size and EXIF orientation of SOURCE."""

    bitmap = PillowBitmapDecoder().decode(source)
    orientation = read_exif_orientation(source)
    print(
        f"Size: {bitmap.width}x{bitmap.height}\n"
        f"Orientation: {orientation if orientation is not None else 'none'}"
    )


def main() -> None:  # pragma: no cover
    app()


if __name__ == "__main__":  # pragma: no cover
    app()
