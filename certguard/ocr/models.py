from dataclasses import dataclass, field


@dataclass(frozen=True)
class OcrWord:
    """Single recognized word with its confidence (0-100) and pixel box."""

    text: str
    confidence: float
    bbox: tuple[int, int, int, int]


@dataclass(frozen=True)
class OcrPage:
    """Recognition output for one bitmap."""

    text: str
    confidence: float
    words: tuple[OcrWord, ...] = field(default_factory=tuple)
