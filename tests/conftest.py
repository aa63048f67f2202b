import io
import sys
import zipfile

import pytest

from docx2pdf_service.conversion import Invocation

PDF_BYTES = b"%PDF-1.4\n% test backend\n%%EOF\n"

# Stand-in for a real converter: argv = input, output, mode[, marker_dir]
BACKEND_SCRIPT = r"""
import os, sys, time
src, dst, mode = sys.argv[1], sys.argv[2], sys.argv[3]
marker = None
if len(sys.argv) > 4:
    marker = os.path.join(sys.argv[4], str(os.getpid()))
    open(marker, "w").close()
try:
    if mode == "sleep":
        time.sleep(30)
    if mode == "slow":
        time.sleep(0.4)
    if mode == "fail":
        sys.exit(1)
    if mode in ("ok", "slow"):
        with open(src, "rb") as f:
            if f.read(4) != b"PK\x03\x04":
                sys.exit(2)
        with open(dst, "wb") as f:
            f.write(%r)
finally:
    if marker:
        os.remove(marker)
""" % PDF_BYTES


class PythonBackend:
    """Backend descriptor that runs the current interpreter instead of Word/unoconv."""

    name = "python"

    def __init__(self, mode: str = "ok", marker_dir: str | None = None) -> None:
        self.mode = mode
        self.marker_dir = marker_dir
        self.calls: list[tuple[str, str, bool]] = []

    def build_invocation(self, input_path: str, output_path: str, keep_active: bool) -> Invocation:
        self.calls.append((input_path, output_path, keep_active))
        args = ["-c", BACKEND_SCRIPT, input_path, output_path, self.mode]
        if self.marker_dir:
            args.append(self.marker_dir)
        return Invocation(sys.executable, tuple(args))


def make_docx(text: str = "Hello", media: dict[str, bytes] | None = None) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(
            "[Content_Types].xml",
            '<?xml version="1.0" encoding="UTF-8"?>'
            '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types"/>',
        )
        zf.writestr(
            "word/document.xml",
            '<?xml version="1.0" encoding="UTF-8"?>'
            '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
            f"<w:body><w:p><w:r><w:t>{text}</w:t></w:r></w:p></w:body></w:document>",
        )
        for name, data in (media or {}).items():
            zf.writestr(f"word/media/{name}", data)
    return buf.getvalue()


@pytest.fixture
def docx_bytes() -> bytes:
    return make_docx()


@pytest.fixture
def work_dir(tmp_path):
    d = tmp_path / "work"
    d.mkdir()
    return d
