from unittest.mock import MagicMock

import httpx
from PIL import Image

from certguard.analysis.scoring import FraudScoringEngine
from certguard.logging.logger import ComponentLog
from certguard.qr.base import BaseQrDecoder, DecodedQr
from certguard.qr.exceptions import QrDecodeError
from certguard.qr.verifier import QrCodeVerifier

IMAGE = Image.new("RGB", (50, 50), "white")


def _decoded(*payloads: str) -> list[DecodedQr]:
    return [DecodedQr(data=payload, position=(0, 0, 10, 10)) for payload in payloads]


def _verifier(
    decoder: MagicMock | None = None,
    handler=None,  # type: ignore[no-untyped-def]
) -> QrCodeVerifier:
    client = httpx.Client(transport=httpx.MockTransport(handler)) if handler else None
    return QrCodeVerifier(
        decoder or MagicMock(spec=BaseQrDecoder),
        http_client=client,
        log=MagicMock(spec=ComponentLog),
    )


def _unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


class TestValidatePayload:
    def test_allow_listed_host_is_valid(self) -> None:
        verdict = _verifier().validate_payload("https://verify.certificates.com/c/123")
        assert verdict.verdict == "valid"
        assert verdict.message == "Valid certificate verification URL"

    def test_subdomain_of_allow_listed_host_is_valid(self) -> None:
        verdict = _verifier().validate_payload("https://eu.verify.certificates.com/c/123")
        assert verdict.is_valid is True

    def test_lookalike_host_is_not_allow_listed(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200)

        verdict = _verifier(handler=handler).validate_payload(
            "https://fakeverify.certificates.com.evil.io/c/1"
        )

        assert verdict.message == "Accessible verification URL"
        assert requests[0].method == "HEAD"

    def test_edu_host_is_trusted(self) -> None:
        assert _verifier().validate_payload("http://registrar.state.edu/x").verdict == "valid"

    def test_unreachable_url_is_inconclusive(self) -> None:
        verdict = _verifier(handler=_unreachable).validate_payload("https://example.com/verify")
        assert verdict.verdict == "inconclusive"
        assert verdict.is_valid is None

    def test_json_with_certificate_key_is_valid(self) -> None:
        verdict = _verifier().validate_payload('{"certificateId": "ABC-1", "issuer": "X"}')
        assert verdict.message == "Valid certificate data structure"

    def test_broken_json_is_invalid(self) -> None:
        verdict = _verifier().validate_payload('{"certificateId": ')
        assert verdict.verdict == "invalid"
        assert verdict.message == "Invalid JSON structure"

    def test_deeply_nested_json_is_invalid(self) -> None:
        verdict = _verifier().validate_payload("[" * 100000)
        assert verdict.verdict == "invalid"
        assert verdict.message == "Invalid JSON structure"

    def test_certificate_text_is_valid(self) -> None:
        verdict = _verifier().validate_payload("Diploma serial 4411")
        assert verdict.message == "Contains certificate-related data"

    def test_long_unrelated_text_may_be_copied(self) -> None:
        verdict = _verifier().validate_payload("visit our bakery today")
        assert verdict.verdict == "suspicious"

    def test_short_unrelated_text_is_invalid(self) -> None:
        assert _verifier().validate_payload("hello").verdict == "invalid"


class TestAnalyze:
    def test_verified_url_scores_negative(self) -> None:
        decoder = MagicMock(spec=BaseQrDecoder)
        decoder.decode.return_value = _decoded("https://verify.certificates.com/c/123")

        analysis = _verifier(decoder).analyze(IMAGE)

        assert analysis.verification_status == "verified"
        assert analysis.qr_codes_found == 1
        assert analysis.qr_codes_verified == 1
        assert analysis.verification_details == (
            "QR code contains valid certificate verification data",
        )
        assert FraudScoringEngine.qr_component(analysis) == -10

    def test_no_codes(self) -> None:
        decoder = MagicMock(spec=BaseQrDecoder)
        decoder.decode.return_value = []

        analysis = _verifier(decoder).analyze(IMAGE)

        assert analysis.verification_status == "not_found"
        assert analysis.verification_details == ("No QR codes found in certificate",)
        assert FraudScoringEngine.qr_component(analysis) == 0

    def test_decoder_failure_is_not_found(self) -> None:
        decoder = MagicMock(spec=BaseQrDecoder)
        decoder.decode.side_effect = QrDecodeError("opencv exploded")

        analysis = _verifier(decoder).analyze(IMAGE)

        assert analysis.verification_status == "not_found"
        assert analysis.verification_details == ("QR code scan could not be completed",)

    def test_all_invalid_codes_add_extra_penalty(self) -> None:
        decoder = MagicMock(spec=BaseQrDecoder)
        decoder.decode.return_value = _decoded("hello", "{broken")

        analysis = _verifier(decoder).analyze(IMAGE)

        assert analysis.verification_status == "invalid"
        assert analysis.all_invalid is True
        assert FraudScoringEngine.qr_component(analysis) == 35

    def test_valid_code_wins_over_invalid(self) -> None:
        decoder = MagicMock(spec=BaseQrDecoder)
        decoder.decode.return_value = _decoded("hello", "https://verify.certificates.com/1")

        analysis = _verifier(decoder).analyze(IMAGE)

        assert analysis.verification_status == "verified"
        assert analysis.all_invalid is False

    def test_only_unreachable_urls_are_inconclusive(self) -> None:
        decoder = MagicMock(spec=BaseQrDecoder)
        decoder.decode.return_value = _decoded("https://example.com/verify/1")

        analysis = _verifier(decoder, handler=_unreachable).analyze(IMAGE)

        assert analysis.verification_status == "suspicious"
        assert analysis.inconclusive is True
        assert analysis.qr_codes[0].is_valid is None
        assert analysis.verification_details[0].startswith("QR code could not be confirmed")
        assert FraudScoringEngine.qr_component(analysis) == 0

    def test_copied_payload_is_suspicious(self) -> None:
        decoder = MagicMock(spec=BaseQrDecoder)
        decoder.decode.return_value = _decoded("visit our bakery today")

        analysis = _verifier(decoder).analyze(IMAGE)

        assert analysis.verification_status == "suspicious"
        assert analysis.inconclusive is False
        assert FraudScoringEngine.qr_component(analysis) == 25
