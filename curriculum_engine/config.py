"""
Configuration for the curriculum engine.

Layout sizing comes in two profiles, ``compact`` for narrow screens and
``regular`` for everything else. The caller picks one; the engine never
inspects the display itself. Profiles can be saved to and loaded from
JSON so a front-end can ship its own tuned sizes.
"""

import json
import logging
import os
from typing import Dict, Literal

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

# =========================================================================
# Domain constants
# =========================================================================

Status = Literal["pending", "in_progress", "approved"]
STATUSES = ("pending", "in_progress", "approved")

# Terms used when a subject carries no suggested year/quarter.
DEFAULT_YEAR = 1
DEFAULT_QUARTER = 1
MAX_QUARTER = 2
MAX_YEAR = 9

# Shown instead of a grade average when nothing approved has a grade.
NO_GRADE_SENTINEL = "N/A"

CyclePolicy = Literal["break", "reject"]
DEFAULT_CYCLE_POLICY: CyclePolicy = "break"


# =========================================================================
# Layout profiles
# =========================================================================


class LayoutConfig(BaseModel):
    """Card sizes and spacing (in pixels) used by the grid layout."""

    model_config = ConfigDict(frozen=True)

    card_width: float = Field(gt=0)
    card_height: float = Field(gt=0)
    margin_x: float = Field(ge=0)
    margin_y: float = Field(ge=0)
    year_spacing: float = Field(ge=0)
    quarter_spacing: float = Field(ge=0)
    header_height: float = Field(default=30, ge=0)
    year_label_y: float = 10

    @property
    def year_width(self) -> float:
        """Horizontal distance between two consecutive year bands."""
        return self.card_width + self.margin_x + self.year_spacing

    @property
    def quarter_width(self) -> float:
        """Horizontal distance between two consecutive quarter columns."""
        return self.card_width + self.quarter_spacing

    @property
    def row_step(self) -> float:
        """Vertical shift applied when a card collides with another."""
        return self.card_height + self.margin_y


COMPACT = LayoutConfig(
    card_width=140,
    card_height=80,
    margin_x=80,
    margin_y=30,
    year_spacing=50,
    quarter_spacing=30,
    header_height=30,
)

REGULAR = LayoutConfig(
    card_width=180,
    card_height=100,
    margin_x=150,
    margin_y=50,
    year_spacing=100,
    quarter_spacing=50,
    header_height=30,
)

LAYOUT_PROFILES: Dict[str, LayoutConfig] = {
    "compact": COMPACT,
    "regular": REGULAR,
}


def get_layout_profile(name: str) -> LayoutConfig:
    """Return the named layout profile (``compact`` or ``regular``)."""
    try:
        return LAYOUT_PROFILES[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown layout profile {name!r}; "
            f"expected one of {sorted(LAYOUT_PROFILES)}"
        ) from None


def load_layout_config(path: str) -> LayoutConfig:
    """Load a layout config from JSON.

    The file may name a base ``profile`` and override any field; missing
    fields fall back to that profile (``regular`` by default).
    """
    with open(path, "r", encoding="utf-8") as fh:
        data = json.load(fh)

    base = get_layout_profile(data.pop("profile", "regular"))
    config = LayoutConfig(**{**base.model_dump(), **data})
    logger.info("Layout config loaded from %s.", path)
    return config


def save_layout_config(config: LayoutConfig, path: str) -> None:
    """Write *config* to *path* as JSON."""
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(config.model_dump(), fh, indent=2)
    logger.info("Layout config saved → %s", path)
