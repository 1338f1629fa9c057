"""
Radar Module: Revert Commands
Infrastructure / application reverts and live-version checks as shell commands.

Commands are templates; {environment}, {version} and {artifact} are
substituted before running. Dry-run mode (default) only logs the command.
"""

import logging
import shlex
import subprocess
from typing import List, Optional

from rct_core.errors import RevertError
from rct_core.models import ArtifactRef, Environment

logger = logging.getLogger(__name__)


class ShellCommandReverter:
    """
    Run a revert command.

    Used as InfraReverter (revert(environment, version)) and as
    ApplicationReverter (revert(environment, artifact)).
    """

    def __init__(
        self,
        command_template: Optional[str],
        name: str = "revert",
        dry_run: bool = True,
        timeout_seconds: float = 900.0,
    ):
        self.command_template = command_template
        self.name = name
        self.dry_run = dry_run
        self.timeout_seconds = timeout_seconds

    def build_command(self, environment: Environment, version: str, artifact: str = "") -> List[str]:
        return _split_command(
            self.command_template,
            self.name,
            environment=Environment.parse(environment).value,
            version=version,
            artifact=artifact,
        )

    def revert(self, environment: Environment, target) -> None:
        """
        Args:
            environment: Environment to revert
            target: Version string (infrastructure) or ArtifactRef (application)

        Raises:
            RevertError: command missing, malformed, not runnable, timed out
                or exited non-zero
        """
        environment = Environment.parse(environment)
        if isinstance(target, ArtifactRef):
            version, artifact = target.version, target.uri
        else:
            version, artifact = str(target), ""

        if not self.command_template:
            if self.dry_run:
                logger.info(f"[DRY-RUN] No {self.name} command configured for {environment.value} -> {version}")
                return
            raise RevertError(f"No {self.name} command configured")

        command = self.build_command(environment, version, artifact)

        if self.dry_run:
            logger.info(f"[DRY-RUN] Would run {self.name}: {' '.join(command)}")
            return

        logger.info(f"[LIVE] Running {self.name}: {' '.join(command)}")
        _run(command, self.name, self.timeout_seconds)


class CommandVersionVerifier:
    """Read the live version of an environment from a command's stdout."""

    def __init__(self, command_template: str, timeout_seconds: float = 60.0):
        self.command_template = command_template
        self.timeout_seconds = timeout_seconds

    def current_version(self, environment: Environment) -> Optional[str]:
        environment = Environment.parse(environment)
        command = _split_command(
            self.command_template, "version check", environment=environment.value
        )
        output = _run(command, "version check", self.timeout_seconds)
        version = output.strip().splitlines()[-1].strip() if output.strip() else None
        logger.info(f"Live version of {environment.value}: {version}")
        return version


def _split_command(template: str, name: str, **values: str) -> List[str]:
    try:
        command = shlex.split(template.format(**values))
    except (KeyError, IndexError) as e:
        raise RevertError(f"{name} command has an unknown placeholder {e}: {template}") from e
    except ValueError as e:
        raise RevertError(f"{name} command is malformed ({e}): {template}") from e

    if not command:
        raise RevertError(f"{name} command is empty")
    return command


def _run(command: List[str], name: str, timeout_seconds: float) -> str:
    try:
        result = subprocess.run(
            command, capture_output=True, text=True, timeout=timeout_seconds
        )
    except FileNotFoundError as e:
        raise RevertError(f"{name} command not found: {command[0]}") from e
    except subprocess.TimeoutExpired as e:
        raise RevertError(f"{name} timed out after {timeout_seconds:.0f}s") from e
    except OSError as e:
        raise RevertError(f"{name} command could not be started: {e}") from e

    if result.returncode != 0:
        stderr = (result.stderr or "").strip()
        raise RevertError(f"{name} failed with exit code {result.returncode}: {stderr}")

    return result.stdout
