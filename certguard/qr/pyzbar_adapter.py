import cv2
import numpy as np
from PIL import Image

from certguard.qr.base import BaseQrDecoder, DecodedQr
from certguard.qr.exceptions import QrDecodeError


class PyzbarQrDecoder(BaseQrDecoder):
    """Decodes QR codes with zbar, retrying on grayscale and boosted contrast."""

    def decode(self, image: Image.Image) -> list[DecodedQr]:
        try:
            # pyzbar loads the native zbar library on import.
            from pyzbar import pyzbar

            original = np.asarray(image.convert("RGB"))
            gray = cv2.cvtColor(original, cv2.COLOR_RGB2GRAY)
            enhanced = cv2.convertScaleAbs(gray, alpha=1.5, beta=30)

            decoded: list[DecodedQr] = []
            for variant in (original, gray, enhanced):
                for obj in pyzbar.decode(variant):
                    data = obj.data.decode("utf-8", errors="ignore")
                    if not data or any(item.data == data for item in decoded):
                        continue
                    rect = obj.rect
                    decoded.append(
                        DecodedQr(
                            data=data,
                            position=(rect.left, rect.top, rect.width, rect.height),
                            format=obj.type,
                        )
                    )
            return decoded
        except QrDecodeError:
            raise
        except Exception as exc:
            raise QrDecodeError(f"pyzbar QR decoding failed: {exc}") from exc
