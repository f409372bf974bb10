from __future__ import annotations
"""
Feature extraction & matching oracle for the anchor matcher.

- FeatureOracle protocol: detect_and_describe(gray) + knn_match(desc_a, desc_b, k)
- FeatureExtractor(method='orb'|'akaze'): OpenCV implementation with a
  brute-force Hamming kNN matcher
- Lowe ratio test (+ optional one-to-one filtering on the train side)
"""

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Protocol, Sequence, Tuple

import cv2
import numpy as np


class FeatureOracle(Protocol):
    """Anything that can describe an image and kNN-match two descriptor sets."""

    def detect_and_describe(self, gray_u8: np.ndarray) -> Tuple[Sequence[Any], np.ndarray]:
        ...

    def knn_match(self, des1: np.ndarray, des2: np.ndarray, k: int) -> List[Sequence[Any]]:
        ...


# -----------------------------
# Extractors
# -----------------------------

@dataclass
class FeatureExtractor:
    method: str = "orb"
    nfeatures: int = 1000
    fast_threshold: int = 20
    nlevels: int = 8
    scale_factor: float = 1.2
    _det: Any = field(init=False, repr=False)
    _matcher: Any = field(init=False, repr=False)

    def __post_init__(self):
        m = self.method.lower()
        if m == "orb":
            self._det = cv2.ORB_create(
                nfeatures=int(self.nfeatures),
                scaleFactor=float(self.scale_factor),
                nlevels=int(self.nlevels),
                edgeThreshold=31,
                firstLevel=0,
                WTA_K=2,
                scoreType=cv2.ORB_HARRIS_SCORE,
                patchSize=31,
                fastThreshold=int(self.fast_threshold),
            )
        elif m == "akaze":
            self._det = cv2.AKAZE_create(
                descriptor_type=cv2.AKAZE_DESCRIPTOR_MLDB,
                descriptor_size=0,
                descriptor_channels=3,
                threshold=0.001,
                nOctaves=4,
                nOctaveLayers=4,
                diffusivity=cv2.KAZE_DIFF_PM_G2,
            )
        else:
            raise ValueError(f"Unsupported method: {self.method}")
        # both descriptors are binary
        self._matcher = cv2.BFMatcher(cv2.NORM_HAMMING, crossCheck=False)

    @classmethod
    def from_dict(cls, d: Optional[Mapping[str, Any]] = None) -> "FeatureExtractor":
        d = dict(d or {})
        return cls(
            method=str(d.get("method", "orb")),
            nfeatures=int(d.get("nfeatures", 1000)),
            fast_threshold=int(d.get("fast_threshold", 20)),
        )

    def detect_and_describe(self, gray_u8: np.ndarray, mask: Optional[np.ndarray] = None):
        kps, des = self._det.detectAndCompute(gray_u8, mask)
        if des is None:
            des = np.zeros((0, 32), dtype=np.uint8)
        return list(kps), des

    def knn_match(self, des1: np.ndarray, des2: np.ndarray, k: int = 2) -> List[Sequence[cv2.DMatch]]:
        if des1 is None or des2 is None or len(des1) == 0 or len(des2) == 0:
            return []
        return list(self._matcher.knnMatch(des1, des2, k=k))


# -----------------------------
# Matching
# -----------------------------

def ratio_test(
    knn: Sequence[Sequence[Any]],
    ratio: float = 0.75,
    *,
    enforce_uniqueness: bool = False,
) -> List[Any]:
    """
    Lowe ratio on k=2 neighbours: keep the nearest only when it is clearly
    closer than the second. Entries with fewer than two neighbours are dropped.
    Optionally enforce one-to-one on the train side.
    """
    good: List[Any] = []
    used_train = set()
    for pair in knn:
        if len(pair) < 2:
            continue
        m, n = pair[0], pair[1]
        if m.distance < ratio * n.distance:
            if not enforce_uniqueness or (m.trainIdx not in used_train):
                good.append(m)
                used_train.add(m.trainIdx)
    return good
