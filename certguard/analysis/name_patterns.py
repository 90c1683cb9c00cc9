import re
from dataclasses import dataclass

NAME_CHARS = r"([A-Za-z][A-Za-z\s\.\']{2,50})"

HONORIFIC_PATTERN = re.compile(
    r"^(mr\.?|ms\.?|mrs\.?|dr\.?|shri|smt\.?|kumari|miss|sri|srimati)\s+", re.IGNORECASE
)

COMMON_WORDS: frozenset[str] = frozenset(
    {
        "certificate", "completion", "participation", "achievement", "excellence",
        "the", "this", "that", "with", "for", "and", "has", "been", "from",
        "course", "program", "training", "workshop", "seminar", "conference",
        "successfully", "completed", "awarded", "presented", "certified",
        "hereby", "certify", "given", "recognition", "appreciation", "date",
        "place", "organization", "institution", "university", "college", "dear",
        "sir", "madam", "regards", "thank", "you", "sincerely",
    }
)

COMMON_PHRASES: tuple[str, ...] = (
    "dear sir",
    "best regards",
    "thank you",
    "your name",
    "date of",
    "place of",
    "this is to",
    "has been",
    "on the",
    "in the",
)


@dataclass(frozen=True)
class NamePattern:
    """Template yielding a raw name candidate in its first capture group."""

    regex: re.Pattern[str]
    normalize: bool = True
    min_words: int = 1
    max_words: int | None = None

    def accepts_word_count(self, candidate: str) -> bool:
        count = len(candidate.split())
        if count < self.min_words:
            return False
        return self.max_words is None or count <= self.max_words


@dataclass(frozen=True)
class NamePatternLibrary:
    """Ordered, immutable set of name-extraction templates and stop lists.

    Built once and shared by reference between matchers; earlier patterns
    take priority when candidates are de-duplicated.
    """

    patterns: tuple[NamePattern, ...]
    common_words: frozenset[str] = COMMON_WORDS
    common_phrases: tuple[str, ...] = COMMON_PHRASES
    honorific: re.Pattern[str] = HONORIFIC_PATTERN


def build_default_library() -> NamePatternLibrary:
    phrase_intro = (
        r"(?:this\s+is\s+to\s+certify\s+that|certify\s+that|awarded\s+to|presented\s+to"
        r"|conferred\s+upon|granted\s+to|given\s+to|successfully\s+completed\s+by"
        r"|completed\s+by|has\s+been\s+awarded\s+to|certificate\s+is\s+awarded\s+to"
        r"|hereby\s+certif(?:y|ies)\s+that|has\s+successfully|is\s+hereby\s+awarded)"
    )
    return NamePatternLibrary(
        patterns=(
            # certify / awarded / presented idioms
            NamePattern(re.compile(phrase_intro + r"\s*[:\-]?\s*" + NAME_CHARS, re.IGNORECASE)),
            # label: value fields
            NamePattern(
                re.compile(
                    r"(?:name|recipient|awardee|student|participant|candidate|holder"
                    r"|person|learner)[\s:]+" + NAME_CHARS,
                    re.IGNORECASE,
                )
            ),
            # honorific + name
            NamePattern(
                re.compile(
                    r"(?:mr\.?|ms\.?|mrs\.?|dr\.?|shri|smt\.?|kumari|miss|sri|srimati)\s+"
                    r"([A-Za-z][A-Za-z\s\']{2,50})",
                    re.IGNORECASE,
                )
            ),
            NamePattern(re.compile(r"(?:for|to)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+){1,3})")),
            NamePattern(
                re.compile(
                    r"(?:certify that|awarded to|presented to|completed by)\s+([A-Z][A-Z\s]{3,40})"
                )
            ),
            NamePattern(re.compile(r"\b([A-Z][A-Z]+(?:\s+[A-Z][A-Z]+){1,3})\b")),
            # bare ALL-CAPS runs
            NamePattern(re.compile(r"\b([A-Z][A-Z\s]{3,40})\b"), min_words=2, max_words=4),
            # bare Title-Case runs
            NamePattern(
                re.compile(r"\b([A-Z][a-z]+(?:\s+[A-Z][a-z]+){1,3})\b"),
                normalize=False,
                min_words=2,
            ),
        )
    )


DEFAULT_NAME_PATTERNS = build_default_library()
