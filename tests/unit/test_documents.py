from certguard.documents.hashing import content_hash
from certguard.documents.sniffer import classify, declared_kind, sniff


class TestContentHash:
    def test_sha256_hex_of_known_input(self) -> None:
        assert content_hash(b"abc") == (
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )

    def test_single_byte_change_changes_hash(self) -> None:
        assert content_hash(b"certificate-1") != content_hash(b"certificate-2")


class TestClassify:
    def test_pdf_signature(self, certificate_pdf_bytes: bytes) -> None:
        assert classify(certificate_pdf_bytes) == "pdf"

    def test_png_signature(self, png_bytes: bytes) -> None:
        assert classify(png_bytes) == "png"

    def test_jpeg_signature(self, jpeg_bytes: bytes) -> None:
        assert classify(jpeg_bytes) == "jpeg"

    def test_unknown_bytes_are_unsupported(self) -> None:
        assert classify(b"GIF89a....") == "unsupported"

    def test_empty_bytes_are_unsupported(self) -> None:
        assert classify(b"") == "unsupported"


class TestSniff:
    def test_declared_type_agrees(self, png_bytes: bytes) -> None:
        assert sniff("image/png", png_bytes) == ("png", True)

    def test_content_wins_over_declared_type(self, png_bytes: bytes) -> None:
        assert sniff("application/pdf", png_bytes) == ("png", False)

    def test_declared_type_is_normalized(self) -> None:
        assert declared_kind(" Image/JPG ") == "jpeg"

    def test_unknown_declared_type(self) -> None:
        assert declared_kind("text/plain") == "unsupported"
