"""Subprocess execution service for fluxstage."""

import subprocess
from typing import Iterable, List, Optional

from fluxstage.errors import DeployError
from fluxstage.services.redaction import redact_secrets


class CommandRunner:
    """Runs external commands with consistent error handling.

    Everything the runner logs or raises goes through ``redact_secrets`` first,
    so tokens embedded in clone URLs never reach the log. Captured output is
    returned unmodified to the caller.
    """

    def __init__(
        self,
        logger,
        default_timeout: Optional[float] = None,
        known_secrets: Iterable[str] = (),
    ):
        self.logger = logger
        self.default_timeout = default_timeout
        self.known_secrets = tuple(secret for secret in known_secrets if secret)

    def redact(self, text: Optional[str]) -> str:
        return redact_secrets(text, self.known_secrets)

    def run(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
        timeout: Optional[float] = None,
        cwd: Optional[str] = None,
        show_output: bool = False,
    ) -> subprocess.CompletedProcess:
        cmd_str = self.redact(" ".join(cmd))
        self.logger.debug("Executing: %s", cmd_str)

        effective_timeout = timeout if timeout is not None else self.default_timeout
        if show_output:
            capture_output = True

        try:
            result = subprocess.run(
                cmd,
                text=True,
                capture_output=capture_output,
                timeout=effective_timeout,
                cwd=cwd,
            )
        except FileNotFoundError as exc:
            raise DeployError(
                f"Required command not found: {cmd[0]}. Please install it and try again."
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise DeployError(f"Command timed out after {effective_timeout}s: {cmd_str}") from exc
        except Exception as exc:
            raise DeployError(
                f"Failed to execute command: {cmd_str}. {self.redact(str(exc))}"
            ) from exc

        if show_output:
            combined = "\n".join(
                part.strip() for part in (result.stdout, result.stderr) if part and part.strip()
            )
            if combined:
                self.logger.info("%s", self.redact(combined))
        elif capture_output and result.stdout:
            self.logger.debug("Command output: %s", self.redact(result.stdout.strip()))

        if result.returncode == 0:
            return result

        stderr = (result.stderr or "").strip() if capture_output else ""
        message = f"Command failed ({result.returncode}): {cmd_str}"
        if stderr:
            message = f"{message}\n{self.redact(stderr)}"

        if check:
            raise DeployError(message)

        self.logger.debug(message)
        return result
