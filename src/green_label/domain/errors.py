"""Errors surfaced to the primary views."""


class InvalidBarcodeError(ValueError):
    """Raised when a barcode is empty after trimming."""


class ProductNotFoundError(LookupError):
    """No configured source knows the barcode."""

    retryable = False

    def __init__(self, barcode: str) -> None:
        super().__init__(f"Product not found: {barcode}")
        self.barcode = barcode


class ConnectivityError(ConnectionError):
    """No product source could be reached."""

    retryable = True

    def __init__(self, barcode: str) -> None:
        super().__init__(f"No product source reachable for {barcode}")
        self.barcode = barcode


class BasketAnalysisError(RuntimeError):
    """The backend answered without a basket analysis."""

    retryable = True


class ConfirmationRequiredError(ValueError):
    """A destructive operation was called without explicit confirmation."""


class HistoryUnavailableError(RuntimeError):
    """The history ledger could not be read or cleared."""

    retryable = True


class CameraError(RuntimeError):
    """Camera or decoder failure."""

    user_message = "Failed to access camera. Please check permissions and connection."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)


class CameraPermissionError(CameraError):
    """Camera access was denied."""

    user_message = (
        "Camera access denied. Please allow camera permissions in your browser "
        "settings."
    )


class NoCameraError(CameraError):
    """No video input device is available."""

    user_message = (
        "No camera found on this device. Please ensure a camera is connected."
    )


class CameraBusyError(CameraError):
    """The camera is held by another application."""

    user_message = "Camera is already in use by another application."


class InsecureContextError(CameraError):
    """Camera access requires a secure (HTTPS) context."""

    user_message = "Camera access requires a secure connection (HTTPS)."
