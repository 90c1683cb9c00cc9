import json
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal
from urllib.parse import urlsplit

import httpx
from PIL import Image

from certguard.analysis.models import QrCodeAnalysis, QrCodeData
from certguard.config.settings import DEFAULT_VERIFICATION_DOMAINS
from certguard.logging.logger import ComponentLog, Log
from certguard.qr.base import BaseQrDecoder, DecodedQr
from certguard.qr.exceptions import QrDecodeError

TRUSTED_SUFFIXES = (".edu", ".org")
CERTIFICATE_KEYS = frozenset(
    {
        "certificateId",
        "certificate_id",
        "studentId",
        "student_id",
        "verificationCode",
        "verification_code",
    }
)
CERTIFICATE_TEXT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"certificate.*id|id.*certificate", re.IGNORECASE),
    re.compile(r"student.*id|verification.*code", re.IGNORECASE),
    re.compile(r"diploma|degree|graduation", re.IGNORECASE),
    re.compile(r"serial.*number|cert.*number", re.IGNORECASE),
)
COPIED_TEXT_MIN_LENGTH = 10

Verdict = Literal["valid", "invalid", "suspicious", "inconclusive"]


@dataclass(frozen=True)
class PayloadVerdict:
    verdict: Verdict
    message: str

    @property
    def is_valid(self) -> bool | None:
        if self.verdict == "inconclusive":
            return None
        return self.verdict == "valid"


class QrCodeVerifier:
    """Decodes QR codes from a bitmap and judges whether their payloads look genuine.

    URL payloads on unknown hosts get a single HEAD request with a short
    timeout. Network failures make the payload inconclusive rather than
    invalid, and are never retried.
    """

    def __init__(
        self,
        decoder: BaseQrDecoder,
        *,
        http_client: httpx.Client | None = None,
        verification_domains: Sequence[str] = DEFAULT_VERIFICATION_DOMAINS,
        url_check_timeout_seconds: float = 3.0,
        log: ComponentLog | None = None,
    ) -> None:
        self._decoder = decoder
        self._http_client = http_client
        self._domains = tuple(domain.lower() for domain in verification_domains)
        self._url_check_timeout = url_check_timeout_seconds
        self._log = log or Log.bind("qr_verifier")

    def analyze(self, image: Image.Image) -> QrCodeAnalysis:
        try:
            decoded = self._decoder.decode(image)
        except QrDecodeError as exc:
            self._log.warning(f"QR decoding failed: {exc}")
            return QrCodeAnalysis(verification_details=("QR code scan could not be completed",))

        if not decoded:
            return QrCodeAnalysis(verification_details=("No QR codes found in certificate",))

        verdicts = [self.validate_payload(item.data) for item in decoded]
        for verdict in verdicts:
            self._log.info(f"QR payload judged {verdict.verdict}: {verdict.message}")
        codes = [self._to_code(item, verdict) for item, verdict in zip(decoded, verdicts)]
        return self._summarize(codes, verdicts)

    @staticmethod
    def _to_code(item: DecodedQr, verdict: PayloadVerdict) -> QrCodeData:
        return QrCodeData(
            data=item.data,
            format=item.format,
            position=item.position,
            is_valid=verdict.is_valid,
            validation_result=verdict.message,
        )

    @staticmethod
    def _summarize(codes: list[QrCodeData], verdicts: list[PayloadVerdict]) -> QrCodeAnalysis:
        details = []
        for code in codes:
            if code.is_valid:
                details.append("QR code contains valid certificate verification data")
            elif code.is_valid is None:
                details.append(f"QR code could not be confirmed: {code.validation_result}")
            else:
                details.append(f"QR code validation failed: {code.validation_result}")

        found = {verdict.verdict for verdict in verdicts}
        if "valid" in found:
            status = "verified"
        elif "invalid" in found:
            status = "invalid"
        else:
            status = "suspicious"
        return QrCodeAnalysis(
            qr_codes_found=len(codes),
            qr_codes=tuple(codes),
            verification_status=status,  # type: ignore[arg-type]
            verification_details=tuple(details),
            inconclusive=found == {"inconclusive"},
        )

    def validate_payload(self, payload: str) -> PayloadVerdict:
        """Classify one decoded payload."""
        if payload.startswith(("http://", "https://")):
            return self._validate_url(payload)

        if payload.startswith(("{", "[")):
            try:
                parsed = json.loads(payload)
            except (ValueError, RecursionError):
                return PayloadVerdict("invalid", "Invalid JSON structure")
            if isinstance(parsed, dict) and any(parsed.get(key) for key in CERTIFICATE_KEYS):
                return PayloadVerdict("valid", "Valid certificate data structure")

        if any(pattern.search(payload) for pattern in CERTIFICATE_TEXT_PATTERNS):
            return PayloadVerdict("valid", "Contains certificate-related data")
        if len(payload) > COPIED_TEXT_MIN_LENGTH:
            return PayloadVerdict(
                "suspicious", "QR code contains unrecognized data - may be copied"
            )
        return PayloadVerdict("invalid", "QR code data format not recognized")

    def _validate_url(self, url: str) -> PayloadVerdict:
        try:
            host = (urlsplit(url).hostname or "").lower()
        except ValueError:
            return PayloadVerdict("invalid", "Malformed verification URL")
        if not host:
            return PayloadVerdict("invalid", "Malformed verification URL")

        trusted = any(host == domain or host.endswith(f".{domain}") for domain in self._domains)
        if trusted or host.endswith(TRUSTED_SUFFIXES):
            return PayloadVerdict("valid", "Valid certificate verification URL")
        return self._check_reachable(url)

    def _check_reachable(self, url: str) -> PayloadVerdict:
        try:
            if self._http_client is not None:
                self._http_client.head(url, timeout=self._url_check_timeout, follow_redirects=True)
            else:
                httpx.head(url, timeout=self._url_check_timeout, follow_redirects=True)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            self._log.warning(f"Verification URL check failed for {url}: {exc}")
            return PayloadVerdict("inconclusive", "Verification URL could not be reached")
        return PayloadVerdict("valid", "Accessible verification URL")
