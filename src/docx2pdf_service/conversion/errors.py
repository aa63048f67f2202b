"""Failure taxonomy for conversion jobs.

Every failure a caller can observe is a `ConversionServiceError`. The `code`
is stable and meant for machines (HTTP/WebSocket payloads); the message is
meant for humans. `retryable` is a hint only: nothing here retries.
"""


class ConversionServiceError(Exception):
    code = "error"
    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class InvalidInputError(ConversionServiceError):
    code = "invalid_input"


class PayloadTooLargeError(InvalidInputError):
    code = "payload_too_large"

    def __init__(self, size: int, max_bytes: int) -> None:
        super().__init__(f"File too large ({size} bytes), max {max_bytes}")
        self.size = size
        self.max_bytes = max_bytes


class LaunchError(ConversionServiceError):
    code = "launch_failed"


class UnsupportedPlatformError(LaunchError):
    code = "unsupported_platform"

    def __init__(self, platform: str) -> None:
        super().__init__(f"Unsupported platform for conversion: {platform}")
        self.platform = platform


class ConversionError(ConversionServiceError):
    code = "conversion_failed"

    def __init__(self, returncode: int | None, signal: str | None = None) -> None:
        msg = f"Conversion failed with code {returncode}"
        if signal:
            msg += f" signal {signal}"
        super().__init__(msg)
        self.returncode = returncode
        self.signal = signal


class BackendTimeoutError(ConversionServiceError):
    code = "timeout"
    retryable = True

    def __init__(self, timeout: float) -> None:
        super().__init__(f"Conversion timed out after {timeout:g}s")
        self.timeout = timeout


class ResourceError(ConversionServiceError):
    code = "resource_error"
