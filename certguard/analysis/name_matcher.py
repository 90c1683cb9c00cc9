import re

from certguard.analysis.models import NameMatchResult, NameVerificationStatus
from certguard.analysis.name_patterns import DEFAULT_NAME_PATTERNS, NamePatternLibrary
from certguard.logging.logger import ComponentLog, Log

# Common OCR confusions, applied one rule at a time in both directions.
OCR_SUBSTITUTIONS: tuple[tuple[str, str], ...] = (
    ("0", "o"), ("o", "0"),
    ("1", "l"), ("l", "1"), ("1", "i"), ("i", "1"),
    ("5", "s"), ("s", "5"),
    ("8", "b"), ("b", "8"),
    ("rn", "m"), ("m", "rn"),
    ("vv", "w"), ("w", "vv"),
    ("cl", "d"), ("d", "cl"),
    ("ii", "u"), ("u", "ii"),
)

SLIDING_WINDOW_RATIO = 0.8
VOWELS = re.compile(r"[aeiou]")


def levenshtein_distance(first: str, second: str) -> int:
    previous = list(range(len(second) + 1))
    for i, left in enumerate(first, start=1):
        current = [i]
        for j, right in enumerate(second, start=1):
            if left == right:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j], current[j - 1], previous[j - 1]))
        previous = current
    return previous[-1]


def string_similarity(first: str, second: str) -> int:
    """Levenshtein-derived similarity in percent, case-insensitive."""
    left = first.lower().strip()
    right = second.lower().strip()
    if left == right:
        return 100
    if not left or not right:
        return 0
    max_len = max(len(left), len(right))
    return int((1 - levenshtein_distance(left, right) / max_len) * 100 + 0.5)


def name_parts_match(expected_parts: list[str], candidate_parts: list[str]) -> tuple[bool, int]:
    """Count expected tokens with a close or prefix-related counterpart.

    Single-letter initials are ignored on both sides.

    Returns:
        (matched, matched_parts)
    """
    matched_parts = 0
    for expected in expected_parts:
        if len(expected) <= 1:
            continue
        for candidate in candidate_parts:
            if len(candidate) <= 1:
                continue
            if string_similarity(expected, candidate) >= 85:
                matched_parts += 1
                break
            if (expected.startswith(candidate) or candidate.startswith(expected)) and min(
                len(expected), len(candidate)
            ) >= 3:
                matched_parts += 1
                break
    needed = min(2, max(len(expected_parts), len(candidate_parts)))
    return matched_parts >= needed, matched_parts


def fuzzy_find_in_text(needle: str, haystack: str) -> bool:
    """Look for a name token in text while tolerating typical OCR noise."""
    if len(needle) < 3:
        return False
    if needle in haystack:
        return True

    for source, target in OCR_SUBSTITUTIONS:
        variant = needle.replace(source, target)
        if variant != needle and variant in haystack:
            return True

    stripped_needle = VOWELS.sub("", needle)
    if len(stripped_needle) >= 3:
        for word in haystack.split():
            stripped_word = VOWELS.sub("", word)
            if len(stripped_word) >= 3 and stripped_needle in stripped_word:
                return True

    size = len(needle)
    required = size * SLIDING_WINDOW_RATIO
    for start in range(len(haystack) - size + 1):
        window = haystack[start : start + size]
        if sum(1 for a, b in zip(needle, window) if a == b) >= required:
            return True
    return False


def searchable_text(text: str) -> str:
    """Lower-case text with punctuation turned into single spaces."""
    return " ".join(re.sub(r"[^\w\s]", " ", text.lower()).split())


def name_variations(prepared_name: str) -> list[str]:
    """Name-order variants of an expected name for verbatim text search.

    Covers the full name with and without spaces, first+last without middle
    names, and last-first orderings.
    """
    parts = prepared_name.split()
    if not parts:
        return []
    variations = [" ".join(parts), "".join(parts)]
    if len(parts) > 2:
        variations += [f"{parts[0]} {parts[-1]}", f"{parts[0]}{parts[-1]}"]
    if len(parts) >= 2:
        variations += [f"{parts[-1]} {parts[0]}", f"{parts[-1]}{parts[0]}"]
        if len(parts) == 3:
            variations.append(f"{parts[2]} {parts[0]} {parts[1]}")
    return list(dict.fromkeys(variations))


class NameMatcher:
    """Extracts name candidates from certificate text and matches an expected identity.

    Matching is deliberately lenient: OCR noise makes rigid equality unsafe,
    so a mismatch is reported only when no plausible overlap exists anywhere
    in the text.
    """

    def __init__(
        self,
        library: NamePatternLibrary = DEFAULT_NAME_PATTERNS,
        log: ComponentLog | None = None,
    ) -> None:
        self._library = library
        self._log = log or Log.bind("name_matcher")

    def normalize_name(self, name: str) -> str:
        """Collapse whitespace, title-case ALL-CAPS and drop a leading honorific."""
        normalized = " ".join(name.split())
        if normalized == normalized.upper() and len(normalized) > 3:
            normalized = re.sub(r"\b\w", lambda m: m.group().upper(), normalized.lower())
        return self._library.honorific.sub("", normalized)

    def prepare_name(self, name: str) -> str:
        prepared = self._library.honorific.sub("", name.strip())
        return " ".join(prepared.split()).lower()

    def is_valid_name(self, text: str) -> bool:
        lowered = text.lower().strip()
        words = lowered.split()
        if len(text) < 3 or len(text) > 50:
            return False
        if not re.search(r"[a-zA-Z]{2,}", text):
            return False
        if re.search(r"\d{3,}", text):
            return False
        if len(words) <= 2 and any(word in self._library.common_words for word in words):
            return False
        return not any(phrase in lowered for phrase in self._library.common_phrases)

    def extract_names(self, text: str) -> list[str]:
        """Return de-duplicated candidates in pattern priority order."""
        names: dict[str, None] = {}
        for pattern in self._library.patterns:
            for match in pattern.regex.finditer(text):
                raw = match.group(1)
                if not raw:
                    continue
                candidate = self.normalize_name(raw) if pattern.normalize else raw.strip()
                if not pattern.accepts_word_count(candidate):
                    continue
                if self.is_valid_name(candidate):
                    names.setdefault(candidate)
        return list(names)

    def match(
        self, extracted_names: list[str], expected_name: str | None, full_text: str = ""
    ) -> NameMatchResult:
        if not expected_name:
            return NameMatchResult(
                matched=True,
                confidence=100,
                extracted_name=extracted_names[0] if extracted_names else "",
                expected_name="",
                match_type="exact",
            )

        prepared = searchable_text(self.prepare_name(expected_name))
        parts = [part for part in prepared.split() if len(part) > 1]
        self._log.debug(
            f"Matching '{expected_name}' against {len(extracted_names)} candidate(s) "
            f"and {len(full_text)} chars of text"
        )

        if len(full_text) > 10:
            result = self._search_text(expected_name, prepared, parts, full_text)
            if result is not None:
                return result

        if not extracted_names:
            return self._match_without_candidates(expected_name, parts, full_text)
        return self._compare_candidates(expected_name, parts, extracted_names)

    def _search_text(
        self, expected_name: str, prepared: str, parts: list[str], full_text: str
    ) -> NameMatchResult | None:
        text = searchable_text(full_text)
        padded = f" {text} "

        for variation in name_variations(prepared):
            if len(variation) >= 3 and f" {variation} " in padded:
                self._log.debug(f"Found name variation '{variation}' verbatim")
                return self._exact(expected_name, 100)

        if not parts:
            return None
        found = [part for part in parts if part in text or fuzzy_find_in_text(part, text)]
        if len(found) == len(parts):
            return self._exact(expected_name, 100)
        if len(found) >= 2 or (found and len(parts) == 2):
            return self._exact(expected_name, 95 if len(found) == len(parts) - 1 else 90)
        if any(len(part) >= 4 for part in found):
            return NameMatchResult(
                matched=True,
                confidence=85,
                extracted_name=" ".join(found),
                expected_name=expected_name,
                match_type="partial",
                discrepancies=(f"Found {len(found)}/{len(parts)} name parts",),
            )
        return None

    @staticmethod
    def _exact(expected_name: str, confidence: int) -> NameMatchResult:
        return NameMatchResult(
            matched=True,
            confidence=confidence,
            extracted_name=expected_name,
            expected_name=expected_name,
            match_type="exact",
        )

    @staticmethod
    def _match_without_candidates(
        expected_name: str, parts: list[str], full_text: str
    ) -> NameMatchResult:
        if len(full_text) > 30:
            text = " ".join(full_text.lower().split())
            for part in parts:
                if len(part) >= 3 and part in text:
                    return NameMatchResult(
                        matched=True,
                        confidence=85,
                        extracted_name=part,
                        expected_name=expected_name,
                        match_type="partial",
                    )
            return NameMatchResult(
                matched=True,
                confidence=80,
                extracted_name="",
                expected_name=expected_name,
                match_type="partial",
                discrepancies=("Certificate text present but name pattern not recognized",),
            )
        return NameMatchResult(
            matched=True,
            confidence=70,
            extracted_name="",
            expected_name=expected_name,
            match_type="fuzzy",
            discrepancies=("Could not extract text from certificate image",),
        )

    def _compare_candidates(
        self, expected_name: str, parts: list[str], extracted_names: list[str]
    ) -> NameMatchResult:
        target = self.normalize_name(expected_name).lower()
        best_name, best_similarity, best_type, best_parts = "", 0, "no_match", 0

        for candidate in extracted_names:
            normalized = self.normalize_name(candidate).lower()
            candidate_parts = [part for part in normalized.split() if len(part) > 1]
            if normalized == target:
                best_name, best_similarity, best_type, best_parts = (
                    candidate, 100, "exact", len(parts)
                )
                break

            similarity = string_similarity(normalized, target)
            parts_matched, matched_parts = name_parts_match(parts, candidate_parts)
            if parts_matched and matched_parts >= 2:
                adjusted = max(similarity, 70 + matched_parts * 10)
                if adjusted > best_similarity:
                    best_name, best_parts = candidate, matched_parts
                    best_similarity = min(100, adjusted)
                    best_type = "exact" if adjusted >= 90 else "partial"
            elif matched_parts >= 1:
                adjusted = max(similarity, 50 + matched_parts * 15)
                if adjusted > best_similarity:
                    best_name, best_similarity, best_type, best_parts = (
                        candidate, adjusted, "partial", matched_parts
                    )
            elif similarity > best_similarity:
                if similarity >= 80:
                    best_type = "partial"
                elif similarity >= 60:
                    best_type = "fuzzy"
                else:
                    best_type = "no_match"
                best_name, best_similarity, best_parts = candidate, similarity, matched_parts

        match_type, confidence = best_type, best_similarity
        if best_similarity >= 95 or (best_parts >= 2 and best_similarity >= 85):
            match_type, confidence = "exact", 100
        elif best_similarity >= 85 or (best_parts >= 2 and best_similarity >= 70):
            match_type, confidence = "exact", max(confidence, 95)
        elif best_similarity >= 70 or best_parts >= 2:
            match_type, confidence = "partial", max(confidence, 85)
        elif best_similarity >= 50 or best_parts >= 1:
            match_type = "fuzzy"

        discrepancies: tuple[str, ...] = ()
        if match_type == "no_match":
            discrepancies = (
                f'Name mismatch detected. Expected: "{expected_name}"',
                f'Certificate shows: "{best_name}" ({best_similarity}% match)',
            )
        elif match_type == "fuzzy":
            discrepancies = (f"Approximate name match ({best_similarity}%)",)

        return NameMatchResult(
            matched=match_type != "no_match",
            confidence=confidence,
            extracted_name=best_name,
            expected_name=expected_name,
            match_type=match_type,  # type: ignore[arg-type]
            discrepancies=discrepancies,
        )

    @staticmethod
    def verification_status(
        result: NameMatchResult | None, expected_name: str | None
    ) -> NameVerificationStatus:
        """Map a match result onto the reported name-verification status."""
        if not expected_name or result is None:
            return "not_found"
        if result.match_type in ("exact", "partial") or result.confidence >= 80:
            return "verified"
        if result.match_type == "fuzzy" or result.confidence >= 60 or result.matched:
            return "suspicious"
        return "mismatch"
