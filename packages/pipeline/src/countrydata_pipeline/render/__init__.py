"""
countrydata_pipeline.render — best-effort summary image rendering.
"""

from countrydata_pipeline.render.summary import (
    RenderConfig,
    SummaryRenderer,
    format_gdp,
    select_top,
)

__all__ = ["RenderConfig", "SummaryRenderer", "format_gdp", "select_top"]
