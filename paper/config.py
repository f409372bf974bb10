from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

A4_ASPECT = 210.0 / 297.0


@dataclass(frozen=True)
class PaperDetectionConfig:
    """
    Paper detection options.

    Attributes:
        edge_threshold_low, edge_threshold_high: Canny hysteresis thresholds.
        blur_kernel_size: Gaussian pre-smoothing kernel; 0 or even disables it.
        min_area_ratio, max_area_ratio: accepted contour area as a share of the image.
        expected_aspect_ratio: short/long side ratio to look for; 0 disables the check.
        aspect_tolerance: allowed relative deviation from expected_aspect_ratio.
        paper_width_mm, paper_height_mm: physical size for the canonical rectangle.
        focal_length_px: pinhole focal length; 0 skips pose estimation.
        principal_point_x, principal_point_y: 0 means the image centre.
    """
    edge_threshold_low: int = 50
    edge_threshold_high: int = 150
    blur_kernel_size: int = 5
    min_area_ratio: float = 0.05
    max_area_ratio: float = 0.95
    expected_aspect_ratio: float = A4_ASPECT
    aspect_tolerance: float = 0.3
    paper_width_mm: float = 210.0
    paper_height_mm: float = 297.0
    focal_length_px: float = 0.0
    principal_point_x: float = 0.0
    principal_point_y: float = 0.0

    @classmethod
    def default(cls) -> "PaperDetectionConfig":
        """A4 portrait, Canny 50/150, blur 5, area 5-95%, tolerance 30%, pose disabled."""
        return cls()

    @classmethod
    def from_dict(cls, d: Optional[Mapping[str, Any]] = None, base: Optional["PaperDetectionConfig"] = None) -> "PaperDetectionConfig":
        d = dict(d or {})
        unknown = set(d) - set(cls.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown paper detection options: {sorted(unknown)}")
        return (base or cls()).copy_with(**d)

    def copy_with(self, **changes: Any) -> "PaperDetectionConfig":
        fields = self.__dataclass_fields__
        coerced = {
            k: (int(v) if fields[k].type in ("int", int) else float(v)) if k in fields else v
            for k, v in changes.items()
        }
        # unknown names fall through to dataclasses.replace, which raises TypeError
        return dataclasses.replace(self, **coerced)

    def with_camera_intrinsics(
        self,
        focal_length_px: float,
        cx: Optional[float] = None,
        cy: Optional[float] = None,
    ) -> "PaperDetectionConfig":
        return self.copy_with(
            focal_length_px=focal_length_px,
            principal_point_x=self.principal_point_x if cx is None else cx,
            principal_point_y=self.principal_point_y if cy is None else cy,
        )

    def for_camera(self) -> "PaperDetectionConfig":
        """
        Live camera tuning: the sheet must fill 10-90% of the frame and a
        7px blur suppresses sensor noise. Paper size and intrinsics are kept.
        """
        return self.copy_with(
            min_area_ratio=0.1,
            max_area_ratio=0.9,
            edge_threshold_low=50,
            edge_threshold_high=150,
            blur_kernel_size=7,
        )

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)
