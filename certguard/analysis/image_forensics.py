from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from PIL import Image

from certguard.analysis.models import ImageEditAnalysis, ImageSource
from certguard.logging.logger import ComponentLog, Log
from certguard.ocr.models import OcrWord

COMPRESSION_BLOCK = 8
EDGE_BLOCK = 20
MAX_COLOR_REGION = 50
COLOR_DEVIATION_LIMIT = 0.03
EDGE_BOUNDARY_RATIO = 2.5
EDGE_BOUNDARY_FLOOR = 30.0
EDGE_REGION_REPORT_LIMIT = 5
EDGE_ANOMALY_MIN_BLOCKS = 3
MAX_ANALYSIS_EDGE = 2400

OCR_MIN_WORDS = 5
OCR_MIN_WORD_LENGTH = 3
OCR_STD_FACTOR = 1.5
OCR_CONFIDENCE_FLOOR = 70.0


@dataclass(frozen=True)
class EditScoringProfile:
    """Thresholds turning raw pixel signals into an edit confidence."""

    strong_compression: float
    weak_compression: float
    color_weight: int
    edge_weight: int
    many_regions: int
    some_regions: int
    likely_edited_at: int


IMAGE_PROFILE = EditScoringProfile(
    strong_compression=0.5,
    weak_compression=0.25,
    color_weight=15,
    edge_weight=25,
    many_regions=5,
    some_regions=2,
    likely_edited_at=60,
)

PDF_RENDER_PROFILE = EditScoringProfile(
    strong_compression=0.6,
    weak_compression=0.3,
    color_weight=15,
    edge_weight=20,
    many_regions=6,
    some_regions=3,
    likely_edited_at=45,
)


def to_luma(rgb: np.ndarray) -> np.ndarray:
    return rgb[..., 0] * 0.299 + rgb[..., 1] * 0.587 + rgb[..., 2] * 0.114


def compression_quality_variance(luma: np.ndarray) -> float:
    """Variance of per-block gradient energy over 8x8 blocks, scaled to [0, 1].

    Regions re-saved after editing carry a different quality level than the
    rest of the image, which widens the spread of block energies.
    """
    height, width = luma.shape
    rows = len(range(0, height - COMPRESSION_BLOCK, COMPRESSION_BLOCK))
    cols = len(range(0, width - COMPRESSION_BLOCK, COMPRESSION_BLOCK))
    if rows == 0 or cols == 0:
        return 0.0

    horizontal = np.abs(luma[:-1, :-1] - luma[:-1, 1:])
    vertical = np.abs(luma[:-1, :-1] - luma[1:, :-1])
    gradient = (horizontal + vertical)[: rows * COMPRESSION_BLOCK, : cols * COMPRESSION_BLOCK]
    blocks = gradient.reshape(rows, COMPRESSION_BLOCK, cols, COMPRESSION_BLOCK)
    # The last row/column of each block has no in-block neighbour.
    energies = blocks[:, : COMPRESSION_BLOCK - 1, :, : COMPRESSION_BLOCK - 1].sum(axis=(1, 3))
    return float(min(1.0, energies.var() / 1000))


def color_inconsistent_regions(rgb: np.ndarray, luma: np.ndarray) -> list[str]:
    """Describe tiles whose midtone colour balance drifts from the image mean."""
    height, width = luma.shape
    size = min(MAX_COLOR_REGION, width // 10)
    if size <= 0:
        return []

    midtones = (luma > 50) & (luma < 200)
    origins: list[tuple[int, int]] = []
    balances: list[np.ndarray] = []
    for y in range(0, height - size, size):
        for x in range(0, width - size, size):
            mask = midtones[y : y + size, x : x + size]
            if mask.sum() <= size * size * 0.3:
                continue
            sums = rgb[y : y + size, x : x + size][mask].sum(axis=0)
            total = sums.sum()
            if total > 0:
                origins.append((x, y))
                balances.append(sums / total)

    if len(balances) < 4:
        return []
    ratios = np.vstack(balances)
    deviations = np.linalg.norm(ratios - ratios.mean(axis=0), axis=1)
    return [
        f"Region at ({x}, {y}) has unusual color balance"
        for (x, y), deviation in zip(origins, deviations)
        if deviation > COLOR_DEVIATION_LIMIT
    ]


def edge_anomaly_regions(luma: np.ndarray) -> tuple[int, list[str]]:
    """Find blocks whose border is much sharper than their interior.

    Returns:
        (flagged_block_count, up to five example descriptions)
    """
    height, width = luma.shape
    if height < 3 or width < 3:
        return 0, []

    edges = np.zeros_like(luma)
    gx = luma[1:-1, 2:] - luma[1:-1, :-2]
    gy = luma[2:, 1:-1] - luma[:-2, 1:-1]
    edges[1:-1, 1:-1] = np.hypot(gx, gy)

    block = EDGE_BLOCK
    flagged = 0
    regions: list[str] = []
    for y in range(block, height - block, block):
        for x in range(block, width - block, block):
            boundary = (
                edges[y, x : x + block].sum()
                + edges[y + block - 1, x : x + block].sum()
                + edges[y : y + block, x].sum()
                + edges[y : y + block, x + block - 1].sum()
            ) / (block * 4)
            interior = edges[y + 2 : y + block - 2, x + 2 : x + block - 2]
            active = interior[interior > 0]
            interior_mean = float(active.mean()) if active.size else 0.0
            if boundary > interior_mean * EDGE_BOUNDARY_RATIO and boundary > EDGE_BOUNDARY_FLOOR:
                flagged += 1
                if len(regions) < EDGE_REGION_REPORT_LIMIT:
                    regions.append(
                        f"Rectangular edge pattern at ({x}, {y}) may indicate pasted content"
                    )
    return flagged, regions


def ocr_confidence_variance(words: Sequence[OcrWord]) -> tuple[float, list[str]]:
    """Spread of word confidences and the words falling well below the rest.

    Returns:
        (normalized_variance, suspicious_words)
    """
    if len(words) < OCR_MIN_WORDS:
        return 0.0, []
    valid = [word for word in words if len(word.text) >= OCR_MIN_WORD_LENGTH]
    if len(valid) < 3:
        return 0.0, []

    confidences = np.array([word.confidence for word in valid], dtype=np.float64)
    mean = float(confidences.mean())
    variance = float(confidences.var())
    cutoff = mean - float(np.sqrt(variance)) * OCR_STD_FACTOR
    suspicious = [
        word.text
        for word in valid
        if word.confidence < cutoff and word.confidence < OCR_CONFIDENCE_FLOOR
    ]
    return min(1.0, variance / 500), suspicious


class ImageForensicsAnalyzer:
    """Pixel-level manipulation detector for photos and rendered PDF pages."""

    def __init__(self, log: ComponentLog | None = None) -> None:
        self._log = log or Log.bind("image_forensics")

    def analyze(
        self,
        image: Image.Image,
        source: ImageSource,
        words: Sequence[OcrWord] = (),
    ) -> ImageEditAnalysis:
        profile = IMAGE_PROFILE if source == "image" else PDF_RENDER_PROFILE
        try:
            rgb_image = image.convert("RGB")
            if max(rgb_image.size) > MAX_ANALYSIS_EDGE:
                rgb_image.thumbnail((MAX_ANALYSIS_EDGE, MAX_ANALYSIS_EDGE))
            rgb = np.asarray(rgb_image, dtype=np.float32)
            luma = to_luma(rgb)

            variance = compression_quality_variance(luma)
            color_regions = color_inconsistent_regions(rgb, luma)
            edge_count, edge_regions = edge_anomaly_regions(luma)
            ocr_variance, suspicious_words = (
                ocr_confidence_variance(words) if source == "image" else (0.0, [])
            )
        except Exception as exc:
            self._log.warning(f"Pixel analysis failed for {source}: {exc}")
            return ImageEditAnalysis(source=source)

        has_edge_anomalies = edge_count >= EDGE_ANOMALY_MIN_BLOCKS
        regions = color_regions + edge_regions
        score = 0
        if variance > profile.strong_compression:
            score += 25
        elif variance > profile.weak_compression:
            score += 15
        if color_regions:
            score += profile.color_weight
        if has_edge_anomalies:
            score += profile.edge_weight
        if len(regions) > profile.many_regions:
            score += 15
        elif len(regions) > profile.some_regions:
            score += 5

        confidence = min(100, score)
        self._log.debug(
            f"{source}: compression={variance:.4f} color_regions={len(color_regions)} "
            f"edge_blocks={edge_count} score={confidence}"
        )
        return ImageEditAnalysis(
            source=source,
            likely_edited=confidence >= profile.likely_edited_at,
            edit_confidence=confidence,
            suspicious_regions=tuple(regions),
            compression_quality_variance=variance,
            color_inconsistencies=bool(color_regions),
            edge_anomalies=has_edge_anomalies,
            ocr_confidence_variance=ocr_variance,
            suspicious_words=tuple(suspicious_words),
        )
