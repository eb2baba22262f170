"""Camera barcode scanning session."""

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Protocol

from green_label.domain.errors import (
    CameraBusyError,
    CameraError,
    CameraPermissionError,
    InsecureContextError,
    NoCameraError,
)

_REAR_CAMERA_HINTS = ("back", "rear")
_ERROR_TYPES: dict[str, type[CameraError]] = {
    "NotAllowedError": CameraPermissionError,
    "PermissionDeniedError": CameraPermissionError,
    "NotReadableError": CameraBusyError,
    "TrackStartError": CameraBusyError,
    "NotFoundError": NoCameraError,
}

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CameraDevice:
    device_id: str
    label: str = ""


class DecoderFailure(Exception):
    """Raised by decoders; ``name`` carries the platform error name."""

    def __init__(self, name: str, message: str = "") -> None:
        super().__init__(message or name)
        self.name = name


class BarcodeDecoder(Protocol):
    """Continuous barcode decoding capability of the host platform."""

    def is_secure_context(self) -> bool:
        """Whether the camera may be opened at all."""

    async def list_video_devices(self) -> list[CameraDevice]:
        """Enumerate video input devices."""

    def decode(self, device_id: str) -> AsyncIterator[str]:
        """Yield decoded barcode strings from the device."""

    def reset(self) -> None:
        """Stop decoding and release the camera."""


def select_camera(devices: list[CameraDevice]) -> CameraDevice:
    """Prefer a rear-facing camera, else the first device."""
    if not devices:
        raise NoCameraError()
    for device in devices:
        label = device.label.lower()
        if any(hint in label for hint in _REAR_CAMERA_HINTS):
            return device
    return devices[0]


def camera_error(exc: Exception) -> CameraError:
    """Translate a decoder failure into a camera error."""
    if isinstance(exc, CameraError):
        return exc
    name = getattr(exc, "name", type(exc).__name__)
    error_type = _ERROR_TYPES.get(name)
    if error_type is None:
        return CameraError()
    return error_type()


@dataclass
class ScannerSession:
    """One scan: open a camera, wait for a barcode, release the camera."""

    decoder: BarcodeDecoder

    async def scan_once(self) -> str:
        """Return the first decoded barcode.

        The decode stream is closed and the decoder reset on every exit path,
        including cancellation.
        """
        if not self.decoder.is_secure_context():
            raise InsecureContextError()
        stream: AsyncIterator[str] | None = None
        try:
            device = select_camera(await self.decoder.list_video_devices())
            _logger.info("Scanning with camera %s", device.label or device.device_id)
            stream = self.decoder.decode(device.device_id)
            async for code in stream:
                if code:
                    return code
            raise CameraError()
        except CameraError:
            raise
        except Exception as exc:
            _logger.warning("Camera decoding failed: %s", exc)
            raise camera_error(exc) from exc
        finally:
            try:
                await _close_stream(stream)
            finally:
                self.decoder.reset()


async def _close_stream(stream: AsyncIterator[str] | None) -> None:
    aclose = getattr(stream, "aclose", None)
    if aclose is not None:
        await aclose()
