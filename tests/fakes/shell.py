"""Fake ShellExecutor: scripted results keyed by command prefix."""

import subprocess
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

Handler = Callable[[List[str], Optional[Path]], subprocess.CompletedProcess]
Scripted = Union[subprocess.CompletedProcess, Handler, Exception]


def completed(cmd: List[str], returncode: int = 0, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr=stderr)


class FakeShell:
    """Records every command; answers with the longest matching scripted prefix.

    Unscripted commands succeed with empty output.
    """

    def __init__(self):
        self.scripts: Dict[Tuple[str, ...], Scripted] = {}
        self.calls: List[Tuple[List[str], Optional[Path]]] = []

    def script(self, prefix: List[str], returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        self.scripts[tuple(prefix)] = completed(list(prefix), returncode, stdout, stderr)

    def script_handler(self, prefix: List[str], handler: Handler) -> None:
        self.scripts[tuple(prefix)] = handler

    def script_error(self, prefix: List[str], error: Exception) -> None:
        self.scripts[tuple(prefix)] = error

    def run_command(self, cmd, cwd=None, capture=True, check=True, timeout=None, output_file=None):
        cmd = [str(part) for part in cmd]
        self.calls.append((cmd, Path(cwd) if cwd else None))

        match = None
        for prefix in sorted(self.scripts, key=len, reverse=True):
            if tuple(cmd[:len(prefix)]) == prefix:
                match = self.scripts[prefix]
                break

        if match is None:
            result = completed(cmd)
        elif isinstance(match, Exception):
            raise match
        elif callable(match):
            result = match(cmd, Path(cwd) if cwd else None)
        else:
            result = completed(cmd, match.returncode, match.stdout, match.stderr)

        if check and result.returncode != 0:
            raise subprocess.CalledProcessError(result.returncode, cmd, result.stdout, result.stderr)
        return result

    def commands(self, program: Optional[str] = None) -> List[List[str]]:
        return [cmd for cmd, _ in self.calls if program is None or cmd[0] == program]
