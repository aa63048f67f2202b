from .errors import InvalidInputError, PayloadTooLargeError

DEFAULT_MAX_BYTES = 15 * 1024 * 1024

# DOCX is a ZIP container: every archive starts with a local file header
ZIP_MAGIC = b"PK\x03\x04"


def validate_docx_buffer(buffer: bytes | bytearray | memoryview | None, max_bytes: int = DEFAULT_MAX_BYTES) -> None:
    """Reject anything that is obviously not a bounded DOCX upload.

    Only the container signature is sniffed; the archive is not parsed and
    no embedded metadata is trusted. Pure and synchronous, so callers can run
    it before any disk write or process spawn.
    """
    if buffer is None or len(buffer) == 0:
        raise InvalidInputError("No file received")
    size = len(buffer)
    if size > max_bytes:
        raise PayloadTooLargeError(size, max_bytes)
    if size < len(ZIP_MAGIC):
        raise InvalidInputError("File too small to be a docx")
    if bytes(buffer[: len(ZIP_MAGIC)]) != ZIP_MAGIC:
        raise InvalidInputError("Invalid DOCX file (not a zip archive)")
