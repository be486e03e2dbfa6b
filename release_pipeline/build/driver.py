"""Build driver for the release pipeline.

Runs the external build toolchain as an ordered sequence of processes
and stops at the first one that fails.
"""

import logging
import shlex
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from release_pipeline.errors import BuildStepFailed

logger = logging.getLogger("release_pipeline.build")

# Lines of process output kept on failure
OUTPUT_TAIL_LINES = 40

# Exit code reported when the executable cannot be found
COMMAND_NOT_FOUND = 127


@dataclass
class BuildStep:
    """One external command and the directory it runs in."""
    command: str
    working_dir: Path
    name: Optional[str] = None

    def __post_init__(self):
        self.working_dir = Path(self.working_dir)
        if not self.name:
            self.name = self.command

    def argv(self) -> Union[str, List[str]]:
        """Command as passed to subprocess for the current platform."""
        # yarn and npm are .cmd shims on Windows and need the shell
        if sys.platform == "win32":
            return self.command
        return shlex.split(self.command)


def _tail(output: Optional[str], lines: int = OUTPUT_TAIL_LINES) -> str:
    if not output:
        return ""
    return "\n".join(output.splitlines()[-lines:])


class BuildDriver:
    """Runs build steps in order as external processes."""

    def __init__(self, runner: Callable[..., subprocess.CompletedProcess] = subprocess.run):
        """
        Initialize the build driver.

        Args:
            runner: subprocess.run compatible callable
        """
        self._runner = runner

    def run_step(self, step: BuildStep) -> None:
        """
        Run a single step and wait for it to exit.

        Raises:
            BuildStepFailed: If the process exits non-zero or cannot start
        """
        logger.info(f"Running {step.name} in {step.working_dir}...")
        try:
            result = self._runner(
                step.argv(),
                cwd=str(step.working_dir),
                shell=sys.platform == "win32",
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except FileNotFoundError as e:
            logger.error(f"Error during {step.name}: {e}")
            raise BuildStepFailed(step.name, COMMAND_NOT_FOUND, original_error=e)

        if result.stdout:
            logger.debug(result.stdout)

        if result.returncode != 0:
            output = _tail(result.stdout)
            logger.error(f"Error during {step.name} (exit code {result.returncode})")
            if output:
                logger.error(output)
            raise BuildStepFailed(step.name, result.returncode, output)

        logger.info(f"Finished {step.name}.")

    def run_pipeline(self, steps: Sequence[BuildStep]) -> None:
        """
        Run steps in order, aborting at the first failure.

        Args:
            steps: Build steps to run

        Raises:
            BuildStepFailed: For the first step that fails
        """
        for step in steps:
            self.run_step(step)

    def check_toolchain(self, command: str, working_dir: Union[str, Path] = ".") -> None:
        """
        Verify a toolchain executable is available (e.g. "yarn --version").

        Raises:
            BuildStepFailed: If the probe fails
        """
        self.run_step(BuildStep(command=command, working_dir=Path(working_dir)))
