"""
Domain layer for DOCX to PDF conversion.
Provides the validator, workspace manager, backend invoker and FIFO job
scheduler, and a service composing them so front-ends (HTTP, WebSocket or
others) share the same core logic.
"""

from .adapters import MacScriptBackend, PowerShellWordBackend, UnoconvBackend, select_backend
from .errors import (
    BackendTimeoutError,
    ConversionError,
    ConversionServiceError,
    InvalidInputError,
    LaunchError,
    PayloadTooLargeError,
    ResourceError,
    UnsupportedPlatformError,
)
from .interfaces import BackendDescriptor, ConversionRequest, Invocation, Workspace
from .invoker import BackendInvoker
from .scheduler import Job, JobScheduler, JobStatus
from .service import ConversionService
from .validation import validate_docx_buffer
from .workspace import WorkspaceManager
