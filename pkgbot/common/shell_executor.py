"""
Shell Executor Module - Handles external command execution with logging
"""

import os
import subprocess
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class ShellExecutor:
    """Single seam for running external tools (makepkg, pacman, repo-add, vercmp)"""

    def __init__(self, debug_mode: bool = False):
        self.debug_mode = debug_mode

    def run_command(self, cmd, cwd=None, capture=True, check=True, timeout=None, output_file=None):
        """
        Run a command given as an argument list.

        Args:
            cmd: Argument list
            cwd: Working directory (defaults to the current directory)
            capture: Capture stdout/stderr as text
            check: Raise CalledProcessError on non-zero exit
            timeout: Seconds before TimeoutExpired; None means unbounded
            output_file: Send combined stdout/stderr to this file instead of capturing

        Returns:
            subprocess.CompletedProcess
        """
        cmd_text = ' '.join(str(part) for part in cmd)
        logger.debug(f"RUNNING COMMAND: {cmd_text}")

        if cwd is None:
            cwd = Path.cwd()

        env = os.environ.copy()
        env['LC_ALL'] = 'C'

        try:
            if output_file is not None:
                with open(output_file, 'w', encoding='utf-8') as out:
                    result = subprocess.run(
                        [str(part) for part in cmd],
                        cwd=cwd,
                        stdout=out,
                        stderr=subprocess.STDOUT,
                        text=True,
                        check=check,
                        env=env,
                        timeout=timeout
                    )
            else:
                result = subprocess.run(
                    [str(part) for part in cmd],
                    cwd=cwd,
                    capture_output=capture,
                    text=True,
                    check=check,
                    env=env,
                    timeout=timeout
                )
        except subprocess.TimeoutExpired:
            logger.error(f"⚠️ Command timed out after {timeout} seconds: {cmd_text}")
            raise
        except subprocess.CalledProcessError as e:
            logger.debug(f"Command failed ({e.returncode}): {cmd_text}")
            raise

        if self.debug_mode and capture and output_file is None:
            if result.stdout:
                logger.debug(f"STDOUT: {result.stdout[:500]}")
            if result.stderr:
                logger.debug(f"STDERR: {result.stderr[:500]}")
            logger.debug(f"EXIT CODE: {result.returncode}")

        return result
