import asyncio
import logging
import os
import shutil
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from .errors import ResourceError
from .interfaces import Workspace

logger = logging.getLogger(__name__)

INPUT_NAME = "input.docx"
OUTPUT_NAME = "output.pdf"


class WorkspaceManager:
    """Per-job scratch directories under a common base.

    Uniqueness comes from `tempfile.mkdtemp`, which picks a random name and
    creates it exclusively (retrying on collision), so concurrent acquires
    never share a directory. Directories are created 0700.
    """

    def __init__(self, base_dir: str | None = None, *, prefix: str = "docx2pdf-") -> None:
        self._base = str(Path(base_dir).resolve()) if base_dir else None
        self._prefix = prefix
        self.cleanup_failures = 0

    @property
    def base_dir(self) -> str:
        return self._base or tempfile.gettempdir()

    @property
    def prefix(self) -> str:
        return self._prefix

    async def acquire(self) -> Workspace:
        try:
            directory = await asyncio.to_thread(tempfile.mkdtemp, prefix=self._prefix, dir=self._base)
        except OSError as e:
            raise ResourceError(f"Could not allocate workspace: {e}") from e
        return Workspace(
            directory=directory,
            input_path=os.path.join(directory, INPUT_NAME),
            output_path=os.path.join(directory, OUTPUT_NAME),
        )

    async def write_input(self, workspace: Workspace, payload: bytes) -> None:
        def _write() -> None:
            # owner-only: the document may be sensitive
            fd = os.open(workspace.input_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            with os.fdopen(fd, "wb") as f:
                f.write(payload)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            raise ResourceError(f"Could not write input file: {e}") from e

    async def release(self, workspace: Workspace) -> None:
        """Remove the workspace recursively. Never raises."""
        try:
            await asyncio.to_thread(shutil.rmtree, workspace.directory)
        except FileNotFoundError:
            pass
        except OSError:
            self.cleanup_failures += 1
            logger.warning("workspace cleanup failed: %s", workspace.directory, exc_info=True)

    @asynccontextmanager
    async def workspace(self) -> AsyncIterator[Workspace]:
        ws = await self.acquire()
        try:
            yield ws
        finally:
            # shielded so a cancelled job still gets its directory removed
            await asyncio.shield(self.release(ws))
