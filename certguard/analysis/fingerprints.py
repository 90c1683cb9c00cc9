"""Software fingerprints used by metadata forensics and base scoring."""

# Lowercase token -> display name for tools commonly used to doctor documents.
SUSPICIOUS_SOFTWARE: dict[str, str] = {
    "photoshop": "Adobe Photoshop",
    "gimp": "GIMP",
    "paint": "Paint",
    "canva": "Canva",
    "illustrator": "Adobe Illustrator",
    "corel": "CorelDRAW",
    "inkscape": "Inkscape",
    "affinity": "Affinity",
    "pixlr": "Pixlr",
    "fotor": "Fotor",
    "befunky": "BeFunky",
}

LEGITIMATE_PDF_PRODUCERS: tuple[str, ...] = (
    "adobe acrobat",
    "microsoft",
    "google docs",
    "libreoffice",
    "openoffice",
    "wps office",
    "apple",
    "preview",
    "quartz",
    "cups",
    "ghostscript",
    "pdflib",
    "itext",
    "reportlab",
    "fpdf",
    "mpdf",
    "prince",
    "wkhtmltopdf",
    "puppeteer",
    "chromium",
    "chrome",
    "firefox",
    "edge",
    "safari",
)


def find_suspicious_software(text: str) -> str | None:
    """Return the display name of the first editor fingerprint found in text."""
    lowered = text.lower()
    for token, name in SUSPICIOUS_SOFTWARE.items():
        if token in lowered:
            return name
    return None


def is_legitimate_producer(producer: str) -> bool:
    lowered = producer.lower()
    return any(name in lowered for name in LEGITIMATE_PDF_PRODUCERS)
