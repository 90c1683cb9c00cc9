from abc import ABC, abstractmethod
from dataclasses import dataclass

from PIL import Image


@dataclass(frozen=True)
class DecodedQr:
    """Raw payload located in a bitmap."""

    data: str
    position: tuple[int, int, int, int]
    format: str = "QR_CODE"


class BaseQrDecoder(ABC):
    """Contract for QR pixel decoders."""

    @abstractmethod
    def decode(self, image: Image.Image) -> list[DecodedQr]:
        """Locate and decode every QR code in the image.

        Returns:
            Distinct payloads in discovery order; empty when none is found.

        Raises:
            QrDecodeError: if the decoder fails for any reason.
        """
