import re
import zlib
from dataclasses import dataclass
from datetime import datetime

from certguard.analysis.fingerprints import find_suspicious_software
from certguard.analysis.models import ImageExif, MetadataIndicators, PdfStructure
from certguard.documents.models import DocumentKind
from certguard.logging.logger import ComponentLog, Log

PDF_DATE_PATTERN = re.compile(r"D:(\d{4})(\d{2})(\d{2})(\d{2})?(\d{2})?(\d{2})?")
EXIF_DATE_PATTERN = re.compile(r"(\d{4}):(\d{2}):(\d{2}) (\d{2}):(\d{2}):(\d{2})")
PDF_VERSION_PATTERN = re.compile(r"%PDF-(\d+\.\d+)")
PAGE_COUNT_PATTERN = re.compile(r"/Count\s+(\d+)")
OBJECT_PATTERN = re.compile(r"\d+\s+\d+\s+obj\b")
STREAM_START_PATTERN = re.compile(r"(?<![A-Za-z])stream(?:\r\n|\r|\n)")
STREAM_END_PATTERN = re.compile(r"\bendstream\b")
STREAM_BODY_PATTERN = re.compile(rb"(?<![A-Za-z])stream\r?\n(.*?)endstream", re.DOTALL)

OBJECT_STREAM_LIMIT = 20
ANNOTATION_LIMIT = 10
OBJECT_COUNT_LIMIT = 500
EXIF_PREVIEW_CHARS = 200

JPEG_APP1 = 0xE1
JPEG_START_OF_SCAN = 0xDA


def _operator_pattern(*operators: str) -> re.Pattern[str]:
    """Match content-stream operators as standalone tokens."""
    alternatives = "|".join(operators)
    return re.compile(rf"(?<![A-Za-z0-9*'\"])(?:{alternatives})(?![A-Za-z0-9*])")


@dataclass(frozen=True)
class OperatorRule:
    pattern: re.Pattern[str]
    limit: int
    message: str


CONTENT_OPERATOR_RULES: tuple[OperatorRule, ...] = (
    OperatorRule(
        _operator_pattern("Tm", "Td", "TD", r"T\*"),
        1000,
        "Excessive text positioning commands ({count}) - may indicate text overlay",
    ),
    OperatorRule(
        _operator_pattern(r"W\*", "W"),
        500,
        "Excessive clipping operations ({count}) - may indicate content editing",
    ),
    OperatorRule(
        _operator_pattern("cm"),
        200,
        "Excessive transformation operations ({count}) - may indicate content manipulation",
    ),
    OperatorRule(
        _operator_pattern("q", "Q"),
        2000,
        "Excessive graphics state operations ({count}) - may indicate complex editing",
    ),
    OperatorRule(
        _operator_pattern("RG", "rg", "K", "k"),
        5000,
        "Excessive color operations ({count}) - may indicate color corrections",
    ),
)


def decode_metadata_string(value: str) -> str:
    """Decode a PDF info-dictionary string given in literal or hex form."""
    if value and re.fullmatch(r"[0-9A-Fa-f]+", value):
        if len(value) % 2:
            value += "0"
        value = bytes.fromhex(value).decode("latin-1")
    if value.startswith("\xfe\xff"):
        value = value[2:].encode("latin-1").decode("utf-16-be", errors="ignore")
    return value.replace("\x00", "")


def parse_pdf_date(value: str) -> datetime | None:
    """Parse ``D:YYYYMMDD[HHmmSS]``; missing time parts default to zero."""
    match = PDF_DATE_PATTERN.search(value)
    if match is None:
        return None
    parts = [int(part) if part else 0 for part in match.groups()]
    try:
        return datetime(*parts)
    except ValueError:
        return None


def _is_textual(chunk: bytes) -> bool:
    if not chunk:
        return False
    printable = sum(1 for byte in chunk if 32 <= byte < 127 or byte in (9, 10, 13))
    return printable / len(chunk) > 0.95


def content_stream_text(data: bytes) -> str:
    """Concatenate the textual content streams, inflating Flate-encoded ones.

    Streams that remain binary after decoding (images, fonts) are skipped so
    operator counting only sees page-description syntax.
    """
    chunks: list[str] = []
    for match in STREAM_BODY_PATTERN.finditer(data):
        body = match.group(1)
        try:
            decoded = zlib.decompressobj().decompress(body)
        except zlib.error:
            decoded = body
        if _is_textual(decoded):
            chunks.append(decoded.decode("latin-1"))
    return "\n".join(chunks)


class MetadataForensicsAnalyzer:
    """Extracts structural and metadata indicators from PDF and image bytes.

    Parsing failures are logged and yield neutral indicators: a document the
    parser cannot read is not evidence of fraud on its own.
    """

    def __init__(self, log: ComponentLog | None = None) -> None:
        self._log = log or Log.bind("metadata")

    def analyze(self, kind: DocumentKind, data: bytes) -> MetadataIndicators:
        try:
            if kind == "pdf":
                return self._analyze_pdf(data)
            if kind == "jpeg":
                return self._analyze_jpeg(data)
            if kind == "png":
                return self._analyze_png(data)
        except Exception as exc:
            self._log.warning(f"Metadata parsing failed for {kind} document: {exc}")
            if kind == "pdf":
                return MetadataIndicators(pdf=PdfStructure())
            if kind in ("jpeg", "png"):
                return MetadataIndicators(image=ImageExif())
        return MetadataIndicators()

    def _analyze_pdf(self, data: bytes) -> MetadataIndicators:
        text = data.decode("latin-1")
        if not text.startswith("%PDF-"):
            return MetadataIndicators(
                pdf=PdfStructure(), suspicious_indicators=("Invalid PDF structure",)
            )

        indicators: list[str] = []
        version_match = PDF_VERSION_PATTERN.search(text)
        creation = self._info_date(text, "CreationDate")
        modification = self._info_date(text, "ModDate")

        has_text = any(token in text for token in ("/Font", "/Text", "/TJ", "/Tj"))
        has_image = "/Image" in text
        if has_text and has_image and "/Font" not in text:
            indicators.append("Scanned document with overlaid text - may have been edited")

        object_streams = text.count("/ObjStm")
        if object_streams > OBJECT_STREAM_LIMIT:
            indicators.append(f"Excessive compressed object streams ({object_streams})")

        if "/EmbeddedFile" in text or "/EF" in text:
            indicators.append("Contains embedded files")

        annotations = text.count("/Annot")
        if annotations > ANNOTATION_LIMIT:
            indicators.append(f"Excessive annotations ({annotations})")

        if "/AcroForm" in text or "/Fields" in text:
            indicators.append("Contains form fields")

        if len(STREAM_START_PATTERN.findall(text)) != len(STREAM_END_PATTERN.findall(text)):
            indicators.append("Unbalanced stream/endstream pairs")

        objects = len(OBJECT_PATTERN.findall(text))
        if objects > OBJECT_COUNT_LIMIT:
            indicators.append(f"Very high object count ({objects})")

        indicators.extend(self._content_structure_indicators(data))

        page_match = PAGE_COUNT_PATTERN.search(text)
        return MetadataIndicators(
            creation_software=self._info_string(text, "Creator"),
            producer=self._info_string(text, "Producer"),
            author=self._info_string(text, "Author"),
            creation_date=creation,
            modification_date=modification,
            has_digital_signature=any(
                token in text for token in ("/Sig", "/ByteRange", "/SigFlags")
            ),
            multiple_modifications=text.count("%%EOF") > 1,
            metadata_stripped="/Info" not in text and "xmp" not in text,
            suspicious_indicators=tuple(indicators),
            pdf=PdfStructure(
                pdf_version=version_match.group(1) if version_match else None,
                page_count=int(page_match.group(1)) if page_match else None,
                is_scanned=has_image and "/Font" not in text and "/Text" not in text,
                has_layers="/OCG" in text or "/OCProperties" in text,
            ),
        )

    @staticmethod
    def _info_string(text: str, key: str) -> str | None:
        match = re.search(rf"/{key}\s*\(([^)]*)\)", text, re.IGNORECASE) or re.search(
            rf"/{key}\s*<([^>]+)>", text, re.IGNORECASE
        )
        if match is None:
            return None
        return decode_metadata_string(match.group(1))

    @staticmethod
    def _info_date(text: str, key: str) -> datetime | None:
        match = re.search(rf"/{key}\s*\(([^)]+)\)", text, re.IGNORECASE)
        return parse_pdf_date(match.group(1)) if match else None

    @staticmethod
    def _content_structure_indicators(data: bytes) -> list[str]:
        content = content_stream_text(data)
        indicators: list[str] = []
        for rule in CONTENT_OPERATOR_RULES:
            count = len(rule.pattern.findall(content))
            if count > rule.limit:
                indicators.append(rule.message.format(count=count))
        return indicators

    def _analyze_jpeg(self, data: bytes) -> MetadataIndicators:
        exif_payload = self._find_exif_payload(data)
        if exif_payload is None:
            return MetadataIndicators(
                metadata_stripped=True,
                suspicious_indicators=("Image metadata has been stripped",),
                image=ImageExif(has_exif=False),
            )

        exif_text = exif_payload.decode("latin-1")
        indicators: list[str] = []
        software = find_suspicious_software(exif_text)
        if software is not None:
            indicators.append(f"Image edited with {software}")

        creation = None
        date_match = EXIF_DATE_PATTERN.search(exif_text)
        if date_match is not None:
            try:
                creation = datetime(*(int(part) for part in date_match.groups()))
            except ValueError:
                creation = None

        preview = "".join(
            char if char.isprintable() else "." for char in exif_text[:EXIF_PREVIEW_CHARS]
        )
        return MetadataIndicators(
            modification_software=software,
            creation_date=creation,
            suspicious_indicators=tuple(indicators),
            image=ImageExif(has_exif=True, raw_preview=preview),
        )

    @staticmethod
    def _find_exif_payload(data: bytes) -> bytes | None:
        """Walk JPEG marker segments and return the APP1 payload, if any."""
        offset = 2
        while offset + 3 < len(data):
            if data[offset] != 0xFF:
                return None
            marker = data[offset + 1]
            if marker == JPEG_START_OF_SCAN:
                return None
            length = (data[offset + 2] << 8) | data[offset + 3]
            if marker == JPEG_APP1:
                return data[offset + 4 : offset + 2 + length]
            offset += 2 + length
        return None

    def _analyze_png(self, data: bytes) -> MetadataIndicators:
        text = data.decode("latin-1")
        software = find_suspicious_software(text)
        indicators = (f"Image edited with {software}",) if software else ()
        return MetadataIndicators(
            modification_software=software,
            metadata_stripped="tEXt" not in text and "iTXt" not in text,
            suspicious_indicators=indicators,
            image=ImageExif(has_exif=False),
        )
