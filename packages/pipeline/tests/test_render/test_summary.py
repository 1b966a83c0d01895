"""
tests/test_render/test_summary.py — SummaryRenderer and its helpers.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from PIL import Image

from countrydata_shared.models import CountryRecord
from countrydata_pipeline.render.summary import (
    RenderConfig,
    SummaryRenderer,
    format_gdp,
    select_top,
)

REFRESHED = datetime(2025, 10, 18, 12, 0, tzinfo=timezone.utc)


def _record(name: str, gdp: str | None) -> CountryRecord:
    return CountryRecord(
        name=name,
        population=1000,
        estimated_gdp=Decimal(gdp) if gdp is not None else None,
    )


@pytest.fixture
def records() -> list[CountryRecord]:
    return [
        _record("A", "100.00"),
        _record("B", "5000000000.00"),
        _record("C", None),
        _record("D", "2500000.00"),
        _record("E", "0"),
        _record("F", "7.5E12"),
        _record("G", "300.00"),
    ]


class TestSelectTop:
    def test_orders_by_gdp_descending(self, records):
        assert [r.name for r in select_top(records, 3)] == ["F", "B", "D"]

    def test_unknown_gdp_is_excluded(self, records):
        assert "C" not in [r.name for r in select_top(records, 10)]

    def test_fewer_than_n(self):
        assert len(select_top([_record("A", "1")], 5)) == 1


class TestFormatGdp:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (Decimal("7500000000000"), "7.50T"),
            (Decimal("5000000000"), "5.00B"),
            (Decimal("2500000"), "2.50M"),
            (Decimal("1234.5"), "1,234.50"),
            (None, "N/A"),
        ],
    )
    def test_format(self, value, expected):
        assert format_gdp(value) == expected


class TestSummaryRenderer:
    def test_render_writes_png(self, tmp_path, records):
        renderer = SummaryRenderer(RenderConfig(cache_dir=tmp_path / "cache"))
        path = renderer.render(select_top(records), 7, REFRESHED)

        assert path == tmp_path / "cache" / "summary.png"
        with Image.open(path) as image:
            assert image.format == "PNG"
            assert image.size == (800, 600)

    def test_render_replaces_existing_image(self, tmp_path, records):
        renderer = SummaryRenderer(RenderConfig(cache_dir=tmp_path))
        renderer.render(select_top(records), 7, REFRESHED)
        renderer.render([], 0, REFRESHED)

        assert renderer.artifact_path.is_file()
        leftovers = [p for p in tmp_path.iterdir() if p.name.startswith(".summary-")]
        assert leftovers == []

    def test_bad_font_returns_none(self, tmp_path, records):
        config = RenderConfig(cache_dir=tmp_path, font_path=str(tmp_path / "missing.ttf"))
        assert SummaryRenderer(config).render(select_top(records), 7, REFRESHED) is None
        assert not (tmp_path / "summary.png").exists()

    def test_unwritable_cache_dir_returns_none(self, tmp_path, records):
        blocker = tmp_path / "cache"
        blocker.write_text("not a directory")
        renderer = SummaryRenderer(RenderConfig(cache_dir=blocker))
        assert renderer.render(select_top(records), 7, REFRESHED) is None

    def test_from_settings(self, tmp_path):
        from countrydata_shared.config import Settings

        cfg = Settings(cache_dir=str(tmp_path), summary_image_name="s.png", summary_top_n=3)
        config = RenderConfig.from_settings(cfg)
        assert config.artifact_path == tmp_path / "s.png"
        assert config.top_n == 3
