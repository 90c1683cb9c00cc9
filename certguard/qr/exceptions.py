class QrDecodeError(Exception):
    """Raised when a QR decoder cannot scan a bitmap."""
