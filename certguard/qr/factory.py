from certguard.config.settings import Settings
from certguard.qr.base import BaseQrDecoder
from certguard.qr.opencv_adapter import OpenCvQrDecoder
from certguard.qr.pyzbar_adapter import PyzbarQrDecoder


class QrDecoderFactory:
    """Creates the configured QR decoder."""

    ADAPTERS: dict[str, type[BaseQrDecoder]] = {
        "opencv": OpenCvQrDecoder,
        "pyzbar": PyzbarQrDecoder,
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseQrDecoder:
        decoder = settings.qr_decoder.lower()
        adapter_cls = cls.ADAPTERS.get(decoder)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown QR decoder '{decoder}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls()
