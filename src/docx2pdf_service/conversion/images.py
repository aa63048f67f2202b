import logging
import os
import shutil
import zipfile
from pathlib import Path

from .errors import InvalidInputError

logger = logging.getLogger(__name__)

MEDIA_PREFIX = "word/media/"

# Upper bound on the decompressed size of all media entries together
DEFAULT_MAX_MEDIA_BYTES = 256 * 1024 * 1024


def extract_media(docx_path: str, output_dir: str, *, max_total_bytes: int = DEFAULT_MAX_MEDIA_BYTES) -> list[str]:
    """Copy every embedded image of a DOCX into `output_dir`.

    Entries are written under their base name only, so archive paths can
    never escape `output_dir`. Entries are streamed, and the declared sizes
    are summed and checked before anything is written (zipfile refuses to
    inflate an entry past its declared size). Blocking; run it in a thread
    from async code.
    """
    if not os.path.exists(docx_path):
        return []
    out = Path(output_dir)
    written: list[str] = []
    try:
        with zipfile.ZipFile(docx_path) as zf:
            entries = []
            for info in zf.infolist():
                if info.is_dir() or not info.filename.startswith(MEDIA_PREFIX):
                    continue
                name = info.filename.rsplit("/", 1)[-1]
                if not name or name in {".", ".."}:
                    continue
                entries.append((info, name))
            total = sum(info.file_size for info, _ in entries)
            if total > max_total_bytes:
                raise InvalidInputError(
                    f"Embedded media too large ({total} bytes uncompressed), max {max_total_bytes}"
                )
            out.mkdir(parents=True, exist_ok=True)
            for info, name in entries:
                target = out / name
                with zf.open(info) as src, target.open("wb") as dst:
                    shutil.copyfileobj(src, dst)
                written.append(str(target))
    except zipfile.BadZipFile as e:
        raise InvalidInputError(f"Invalid DOCX file: {e}") from e
    logger.info("extracted %s media file(s) to %s", len(written), output_dir)
    return written
