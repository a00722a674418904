"""Filesystem helpers for fluxstage."""

import logging
import os
import shutil

from rich.console import Console

from fluxstage.errors import DeployError


class FileSystemService:
    """Encapsulates file and directory side effects."""

    def __init__(self, logger: logging.Logger, console: Console):
        self.logger = logger
        self.console = console

    def write_text(self, path: str, content: str):
        """Write ``content`` with fixed encoding and newlines so reruns are byte-identical."""
        try:
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
            with open(path, "w", encoding="utf-8", newline="\n") as file_obj:
                file_obj.write(content)
        except OSError as exc:
            raise DeployError(f"Could not write {path}: {exc}") from exc
        self.logger.debug("Wrote %s", path)

    def copy_preserving(self, source: str, destination: str):
        os.makedirs(os.path.dirname(destination) or ".", exist_ok=True)
        try:
            shutil.copy2(source, destination)
        except OSError as exc:
            raise DeployError(f"Could not copy {source} to {destination}: {exc}") from exc
        self.logger.debug("Copied %s to %s", source, destination)
