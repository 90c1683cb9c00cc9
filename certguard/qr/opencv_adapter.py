import cv2
import numpy as np
from PIL import Image

from certguard.qr.base import BaseQrDecoder, DecodedQr
from certguard.qr.exceptions import QrDecodeError


class OpenCvQrDecoder(BaseQrDecoder):
    """Decodes QR codes with OpenCV's built-in detector."""

    def decode(self, image: Image.Image) -> list[DecodedQr]:
        try:
            bgr = cv2.cvtColor(np.asarray(image.convert("RGB")), cv2.COLOR_RGB2BGR)
            detector = cv2.QRCodeDetector()
            found, payloads, points, _ = detector.detectAndDecodeMulti(bgr)
        except Exception as exc:
            raise QrDecodeError(f"opencv QR decoding failed: {exc}") from exc

        if not found:
            return []
        decoded: list[DecodedQr] = []
        for payload, corners in zip(payloads, points):
            if not payload or any(item.data == payload for item in decoded):
                continue
            xs = [int(x) for x, _ in corners]
            ys = [int(y) for _, y in corners]
            decoded.append(
                DecodedQr(
                    data=payload,
                    position=(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys)),
                )
            )
        return decoded
