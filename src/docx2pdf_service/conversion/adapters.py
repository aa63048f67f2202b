import sys
from pathlib import Path

from .errors import UnsupportedPlatformError
from .interfaces import BackendDescriptor, Invocation

SCRIPT_DIR = str(Path(__file__).resolve().parent.parent / "scripts")


def _flag(keep_active: bool) -> str:
    return "true" if keep_active else "false"


class PowerShellWordBackend(BackendDescriptor):
    """Drives Microsoft Word through COM automation via `convert.ps1`."""

    name = "windows"

    def __init__(self, script_dir: str = SCRIPT_DIR, *, executable: str = "powershell") -> None:
        self._script = str(Path(script_dir) / "convert.ps1")
        self._executable = executable

    def build_invocation(self, input_path: str, output_path: str, keep_active: bool) -> Invocation:
        return Invocation(
            self._executable,
            (
                "-NoProfile",
                "-NonInteractive",
                "-ExecutionPolicy",
                "Bypass",
                "-File",
                self._script,
                input_path,
                output_path,
                _flag(keep_active),
            ),
        )


class MacScriptBackend(BackendDescriptor):
    """Drives Microsoft Word for Mac through `convert.sh` (osascript)."""

    name = "macos"

    def __init__(self, script_dir: str = SCRIPT_DIR, *, shell: str = "sh") -> None:
        self._script = str(Path(script_dir) / "convert.sh")
        self._shell = shell

    def build_invocation(self, input_path: str, output_path: str, keep_active: bool) -> Invocation:
        return Invocation(self._shell, (self._script, input_path, output_path, _flag(keep_active)))


class UnoconvBackend(BackendDescriptor):
    """Headless LibreOffice through unoconv. There is no application to keep active."""

    name = "linux"

    def __init__(self, executable: str = "unoconv") -> None:
        self._executable = executable

    def build_invocation(self, input_path: str, output_path: str, keep_active: bool) -> Invocation:
        return Invocation(self._executable, ("-f", "pdf", "-o", output_path, input_path))


_PLATFORM_ALIASES = {
    "win32": "windows",
    "windows": "windows",
    "darwin": "macos",
    "macos": "macos",
    "linux": "linux",
}


def platform_key(platform: str) -> str | None:
    key = platform.lower()
    if key.startswith("linux"):
        key = "linux"
    return _PLATFORM_ALIASES.get(key)


def select_backend(
    platform: str | None = None,
    *,
    script_dir: str = SCRIPT_DIR,
    unoconv_bin: str = "unoconv",
) -> BackendDescriptor:
    """Pick the backend for a platform identifier (defaults to `sys.platform`)."""
    platform = platform or sys.platform
    key = platform_key(platform)
    if key == "windows":
        return PowerShellWordBackend(script_dir)
    if key == "macos":
        return MacScriptBackend(script_dir)
    if key == "linux":
        return UnoconvBackend(unoconv_bin)
    raise UnsupportedPlatformError(platform)
