from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class Invocation:
    program: str
    args: tuple[str, ...] = ()

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]


class BackendDescriptor(Protocol):
    name: str

    def build_invocation(self, input_path: str, output_path: str, keep_active: bool) -> Invocation:
        """Return the command that reads `input_path` and writes a PDF to `output_path`.
        Pure; must not touch the filesystem or spawn anything.
        """


@dataclass(frozen=True)
class Workspace:
    directory: str
    input_path: str
    output_path: str


@dataclass(frozen=True)
class ConversionRequest:
    payload: bytes
    max_bytes: int
    timeout: float
    keep_active: bool = False
    output_path: str | None = None
