import asyncio
import logging
import os
import signal as _signal
import sys

from .errors import BackendTimeoutError, ConversionError, LaunchError
from .interfaces import Invocation

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0

# POSIX backends get their own process group so the whole tree can be killed
_USE_PROCESS_GROUP = sys.platform != "win32"


def _signal_name(returncode: int) -> str | None:
    if returncode >= 0:
        return None
    try:
        return _signal.Signals(-returncode).name
    except ValueError:
        return str(-returncode)


class BackendInvoker:
    """Runs one backend process per call under a wall-clock deadline.

    Whatever the outcome, the child has been reaped by the time `invoke`
    returns or raises, and on POSIX nothing else in its process group
    survives it. A process that outlives its deadline is SIGKILLed along
    with everything it spawned.
    """

    async def invoke(self, invocation: Invocation, timeout: float = DEFAULT_TIMEOUT) -> None:
        try:
            proc = await asyncio.create_subprocess_exec(
                invocation.program,
                *invocation.args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
                start_new_session=_USE_PROCESS_GROUP,
            )
        except OSError as e:
            logger.warning("backend launch failed: %s: %s", invocation.program, e)
            raise LaunchError(f"Could not start {invocation.program}: {e}") from e

        logger.debug("backend started pid=%s program=%s", proc.pid, invocation.program)
        try:
            returncode = await asyncio.wait_for(proc.wait(), timeout)
        except asyncio.TimeoutError:
            logger.warning("backend pid=%s exceeded %ss, killing", proc.pid, timeout)
            await self._kill(proc)
            raise BackendTimeoutError(timeout) from None
        except asyncio.CancelledError:
            await self._kill(proc)
            raise
        # leftovers (e.g. a helper forked by a wrapper script) die with the job
        self._kill_group(proc.pid)

        if returncode != 0:
            sig = _signal_name(returncode)
            logger.warning("backend pid=%s exited rc=%s signal=%s", proc.pid, returncode, sig)
            raise ConversionError(returncode, sig)

    @staticmethod
    def _kill_group(pgid: int) -> None:
        if not _USE_PROCESS_GROUP:
            return
        try:
            os.killpg(pgid, _signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            # group already gone (or only zombies left, on macOS)
            pass

    @classmethod
    async def _kill(cls, proc: asyncio.subprocess.Process) -> None:
        cls._kill_group(proc.pid)
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()
