from __future__ import annotations

from typing import Any, Dict, Mapping

from paper.config import PaperDetectionConfig

# ISO A-series, portrait
A0_PORTRAIT = PaperDetectionConfig(expected_aspect_ratio=841 / 1189, paper_width_mm=841, paper_height_mm=1189)
A1_PORTRAIT = PaperDetectionConfig(expected_aspect_ratio=594 / 841, paper_width_mm=594, paper_height_mm=841)
A2_PORTRAIT = PaperDetectionConfig(expected_aspect_ratio=420 / 594, paper_width_mm=420, paper_height_mm=594)
A3_PORTRAIT = PaperDetectionConfig(expected_aspect_ratio=297 / 420, paper_width_mm=297, paper_height_mm=420)
A4_PORTRAIT = PaperDetectionConfig()
A5_PORTRAIT = PaperDetectionConfig(expected_aspect_ratio=148 / 210, paper_width_mm=148, paper_height_mm=210)
A6_PORTRAIT = PaperDetectionConfig(expected_aspect_ratio=105 / 148, paper_width_mm=105, paper_height_mm=148)

# Landscape keeps the short/long ratio for detection; only the physical size flips.
A3_LANDSCAPE = PaperDetectionConfig(expected_aspect_ratio=297 / 420, paper_width_mm=420, paper_height_mm=297)
A4_LANDSCAPE = PaperDetectionConfig(expected_aspect_ratio=210 / 297, paper_width_mm=297, paper_height_mm=210)
A5_LANDSCAPE = PaperDetectionConfig(expected_aspect_ratio=148 / 210, paper_width_mm=210, paper_height_mm=148)

US_LETTER_PORTRAIT = PaperDetectionConfig(expected_aspect_ratio=215.9 / 279.4, paper_width_mm=215.9, paper_height_mm=279.4)
US_LEGAL_PORTRAIT = PaperDetectionConfig(expected_aspect_ratio=215.9 / 355.6, paper_width_mm=215.9, paper_height_mm=355.6)

# ISO/IEC 7810 ID-1 and friends
BUSINESS_CARD = PaperDetectionConfig(
    expected_aspect_ratio=50 / 90, aspect_tolerance=0.2, paper_width_mm=90, paper_height_mm=50
)
CREDIT_CARD = PaperDetectionConfig(
    expected_aspect_ratio=53.98 / 85.6, aspect_tolerance=0.15, paper_width_mm=85.6, paper_height_mm=53.98
)
SQUARE = PaperDetectionConfig(expected_aspect_ratio=1.0, aspect_tolerance=0.15, paper_width_mm=100, paper_height_mm=100)
ANY_RECTANGLE = PaperDetectionConfig(expected_aspect_ratio=0.0, aspect_tolerance=1.0)

PRESETS: Dict[str, PaperDetectionConfig] = {
    "A0": A0_PORTRAIT,
    "A1": A1_PORTRAIT,
    "A2": A2_PORTRAIT,
    "A3": A3_PORTRAIT,
    "A4": A4_PORTRAIT,
    "A5": A5_PORTRAIT,
    "A6": A6_PORTRAIT,
    "A3 (landscape)": A3_LANDSCAPE,
    "A4 (landscape)": A4_LANDSCAPE,
    "A5 (landscape)": A5_LANDSCAPE,
    "US Letter": US_LETTER_PORTRAIT,
    "US Legal": US_LEGAL_PORTRAIT,
    "Business Card": BUSINESS_CARD,
    "Credit Card": CREDIT_CARD,
    "Square": SQUARE,
    "Any Rectangle": ANY_RECTANGLE,
}


def get_preset(name: str) -> PaperDetectionConfig:
    """Case-insensitive preset lookup. Raises KeyError for unknown names."""
    for key, cfg in PRESETS.items():
        if key.lower() == name.strip().lower():
            return cfg
    raise KeyError(f"Unknown paper preset: {name!r}")


def paper_config_from_params(P: Mapping[str, Any]) -> PaperDetectionConfig:
    """
    Build the detector config from the `paper` section of params.yaml:
    `preset` picks the base, every other key overrides a field.
    """
    section = dict(P.get("paper", {}) or {})
    base = get_preset(str(section.pop("preset", "A4")))
    return PaperDetectionConfig.from_dict(section, base=base)
