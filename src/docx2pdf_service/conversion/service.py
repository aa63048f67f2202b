import asyncio
import logging
import os

from .adapters import select_backend
from .errors import ResourceError, UnsupportedPlatformError
from .images import DEFAULT_MAX_MEDIA_BYTES, extract_media
from .interfaces import BackendDescriptor, ConversionRequest
from .invoker import DEFAULT_TIMEOUT, BackendInvoker
from .scheduler import DEFAULT_CONCURRENCY, JobScheduler
from .validation import DEFAULT_MAX_BYTES, validate_docx_buffer
from .workspace import WorkspaceManager

logger = logging.getLogger(__name__)


class ConversionService:
    """Core domain service orchestrating DOCX to PDF conversions.

    This service is framework-agnostic. Input is validated synchronously
    before anything is queued; the rest of a job (workspace, backend run,
    output read) executes under the scheduler's concurrency limit.
    """

    def __init__(
        self,
        backend: BackendDescriptor | None,
        *,
        scheduler: JobScheduler | None = None,
        workspaces: WorkspaceManager | None = None,
        invoker: BackendInvoker | None = None,
        max_bytes: int = DEFAULT_MAX_BYTES,
        timeout: float = DEFAULT_TIMEOUT,
        platform: str | None = None,
    ) -> None:
        self._backend = backend
        self._scheduler = scheduler or JobScheduler(DEFAULT_CONCURRENCY)
        self._workspaces = workspaces or WorkspaceManager()
        self._invoker = invoker or BackendInvoker()
        self._max_bytes = max_bytes
        self._timeout = timeout
        self._platform = platform

    @classmethod
    def from_settings(cls, settings) -> "ConversionService":
        try:
            backend = select_backend(
                settings.PLATFORM,
                script_dir=settings.SCRIPT_DIR,
                unoconv_bin=settings.UNOCONV_BIN,
            )
        except UnsupportedPlatformError:
            logger.warning("no conversion backend for platform %s; conversions will fail", settings.PLATFORM)
            backend = None
        return cls(
            backend,
            scheduler=JobScheduler(settings.CONCURRENCY),
            workspaces=WorkspaceManager(settings.WORK_DIR),
            max_bytes=settings.MAX_BYTES,
            timeout=settings.TIMEOUT_MS / 1000,
            platform=settings.PLATFORM,
        )

    @property
    def scheduler(self) -> JobScheduler:
        return self._scheduler

    @property
    def workspaces(self) -> WorkspaceManager:
        return self._workspaces

    @property
    def max_bytes(self) -> int:
        return self._max_bytes

    async def stop(self) -> None:
        await self._scheduler.stop()

    async def convert(
        self,
        payload: bytes,
        *,
        max_bytes: int | None = None,
        timeout: float | None = None,
        keep_active: bool = False,
        output_path: str | None = None,
    ) -> bytes:
        """Convert a DOCX payload and return the PDF bytes.

        Raises a `ConversionServiceError` subclass on any failure; invalid
        input is rejected before the job is queued.
        """
        limit = max_bytes or self._max_bytes
        validate_docx_buffer(payload, limit)
        request = ConversionRequest(
            payload=bytes(payload),
            max_bytes=limit,
            timeout=timeout or self._timeout,
            keep_active=bool(keep_active),
            output_path=os.path.abspath(output_path) if output_path else None,
        )
        if self._backend is None:
            raise UnsupportedPlatformError(self._platform or "unknown")
        backend = self._backend
        return await self._scheduler.submit(lambda: self._run(backend, request))

    async def _run(self, backend: BackendDescriptor, request: ConversionRequest) -> bytes:
        async with self._workspaces.workspace() as ws:
            await self._workspaces.write_input(ws, request.payload)
            output_path = request.output_path or ws.output_path
            invocation = backend.build_invocation(ws.input_path, output_path, request.keep_active)
            await self._invoker.invoke(invocation, request.timeout)
            return await self._read_output(output_path)

    @staticmethod
    async def _read_output(path: str) -> bytes:
        def _read() -> bytes:
            with open(path, "rb") as f:
                return f.read()

        try:
            pdf = await asyncio.to_thread(_read)
        except OSError as e:
            raise ResourceError(f"Backend reported success but produced no output: {e}") from e
        if not pdf:
            raise ResourceError("Backend reported success but produced an empty output file")
        return pdf

    async def extract_images(
        self, payload: bytes, output_dir: str, *, max_media_bytes: int = DEFAULT_MAX_MEDIA_BYTES
    ) -> list[str]:
        """Copy the DOCX's embedded media into `output_dir`; returns written paths."""
        validate_docx_buffer(payload, self._max_bytes)
        async with self._workspaces.workspace() as ws:
            await self._workspaces.write_input(ws, bytes(payload))
            return await asyncio.to_thread(
                extract_media, ws.input_path, output_dir, max_total_bytes=max_media_bytes
            )

    def describe(self) -> dict[str, object]:
        return {
            "backend": self._backend.name if self._backend else None,
            "running": self._scheduler.running,
            "waiting": self._scheduler.waiting,
            "concurrency": self._scheduler.concurrency,
            "cleanup_failures": self._workspaces.cleanup_failures,
            "jobs": [job.to_dict() for job in self._scheduler.jobs()],
        }

