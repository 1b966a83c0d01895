"""
render/summary.py — SummaryRenderer: the best-effort summary PNG.

Draws the total country count, the top countries by estimated GDP and the
refresh time, then atomically replaces <cache_dir>/summary.png. Failures
are logged and swallowed; a refresh never fails because of the image.

Usage:
    renderer = SummaryRenderer(RenderConfig.from_settings())
    path = renderer.render(select_top(result.committed), result.stored_total, result.refreshed_at)
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import structlog
from filelock import FileLock
from PIL import Image, ImageDraw, ImageFont

from countrydata_shared.config import Settings, settings as default_settings
from countrydata_shared.models import CountryRecord
from countrydata_pipeline.errors import RenderFailure

log = structlog.get_logger(__name__)

BACKGROUND = (30, 58, 138)
ACCENT = (251, 191, 36)
TEXT = (229, 231, 235)
MUTED = (203, 213, 225)


@dataclass(frozen=True)
class RenderConfig:
    """Where and how the summary image is drawn."""

    cache_dir: Path
    filename: str = "summary.png"
    width: int = 800
    height: int = 600
    font_path: str | None = None
    top_n: int = 5

    @classmethod
    def from_settings(cls, cfg: Settings | None = None) -> "RenderConfig":
        cfg = cfg or default_settings
        return cls(
            cache_dir=Path(cfg.cache_dir),
            filename=cfg.summary_image_name,
            font_path=cfg.summary_font_path,
            top_n=cfg.summary_top_n,
        )

    @property
    def artifact_path(self) -> Path:
        return self.cache_dir / self.filename


def select_top(records: Iterable[CountryRecord], n: int = 5) -> list[CountryRecord]:
    """Top n records by estimated GDP, descending; unknown GDPs are left out."""
    known = [r for r in records if r.estimated_gdp is not None]
    known.sort(key=lambda r: r.estimated_gdp, reverse=True)  # type: ignore[arg-type,return-value]
    return known[:n]


def format_gdp(value: Decimal | None) -> str:
    """Human-readable GDP: 1.23T, 4.56B, 7.89M, or the plain figure."""
    if value is None:
        return "N/A"
    amount = float(value)
    for threshold, suffix in ((1e12, "T"), (1e9, "B"), (1e6, "M")):
        if amount >= threshold:
            return f"{amount / threshold:,.2f}{suffix}"
    return f"{amount:,.2f}"


class SummaryRenderer:
    """Renders the refresh summary image to the configured cache location."""

    def __init__(self, config: RenderConfig) -> None:
        self._config = config

    @property
    def artifact_path(self) -> Path:
        return self._config.artifact_path

    def render(
        self,
        top_records: Sequence[CountryRecord],
        total_count: int,
        refreshed_at: datetime,
    ) -> Path | None:
        """
        Draw and write the summary image.

        Returns:
            Path of the written image, or None if anything failed.
        """
        try:
            image = self.draw(top_records[: self._config.top_n], total_count, refreshed_at)
            path = self.write(image)
        except Exception as exc:
            log.error(
                "render_failed",
                error=str(exc) or type(exc).__name__,
                path=str(self.artifact_path),
                exc_info=True,
            )
            return None
        log.info("render_complete", path=str(path), total=total_count, top=len(top_records))
        return path

    def draw(
        self,
        top_records: Sequence[CountryRecord],
        total_count: int,
        refreshed_at: datetime,
    ) -> Image.Image:
        cfg = self._config
        try:
            title_font = self._font(36)
            body_font = self._font(22)
            small_font = self._font(18)
        except OSError as exc:
            raise RenderFailure(f"font unavailable: {exc}") from exc

        image = Image.new("RGB", (cfg.width, cfg.height), color=BACKGROUND)
        draw = ImageDraw.Draw(image)

        self._centered(draw, 35, "Country Data Summary", title_font, TEXT)
        draw.rectangle((50, 100, cfg.width - 50, cfg.height - 80), outline=MUTED, width=2)
        draw.text((80, 130), f"Total Countries: {total_count}", fill=ACCENT, font=body_font)
        draw.text((80, 180), f"Top {cfg.top_n} Countries by Estimated GDP:", fill=TEXT, font=body_font)

        y = 225
        if not top_records:
            draw.text((100, y), "No GDP data available.", fill=MUTED, font=body_font)
        for idx, record in enumerate(top_records, start=1):
            colour = ACCENT if idx == 1 else TEXT
            draw.text(
                (100, y),
                f"{idx}. {record.name} - {format_gdp(record.estimated_gdp)}",
                fill=colour,
                font=body_font,
            )
            y += 38

        self._centered(
            draw, cfg.height - 55, f"Last Refreshed: {refreshed_at.isoformat()}", small_font, MUTED
        )
        return image

    def write(self, image: Image.Image) -> Path:
        """Atomically replace the artifact under a cross-process lock."""
        target = self.artifact_path
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with FileLock(str(target) + ".lock", timeout=30):
                fd, tmp_name = tempfile.mkstemp(
                    dir=target.parent, prefix=".summary-", suffix=".png"
                )
                try:
                    with os.fdopen(fd, "wb") as handle:
                        image.save(handle, format="PNG")
                    os.replace(tmp_name, target)
                except BaseException:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
        except OSError as exc:
            raise RenderFailure(f"could not write {target}: {exc}") from exc
        return target

    def _centered(self, draw: ImageDraw.ImageDraw, y: int, text: str, font, fill) -> None:
        width = draw.textlength(text, font=font)
        draw.text(((self._config.width - width) / 2, y), text, fill=fill, font=font)

    def _font(self, size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
        if self._config.font_path:
            return ImageFont.truetype(self._config.font_path, size)
        return ImageFont.load_default(size=size)
