"""Manifest schema validation and security policy scanning."""

import os
from typing import Callable, List

from fluxstage.constants import CHECKOV_IMAGE, KUBEVAL_IMAGE
from fluxstage.models import RenderedManifest

SECURITY_CONTEXT_TOKEN = "securityContext:"
CONTAINER_APP_DIR = "/app"


class ManifestValidator:
    """Runs kubeval on every manifest and checkov on manifests declaring a securityContext."""

    def __init__(
        self,
        logger,
        docker_runtime_service,
        kubeval_version: str,
        kubeval_skip_kinds: str,
        checkov_version: str,
        checkov_skip_checks: str,
    ):
        self.logger = logger
        self.docker_runtime_service = docker_runtime_service
        self.kubeval_version = kubeval_version
        self.kubeval_skip_kinds = kubeval_skip_kinds
        self.checkov_version = checkov_version
        self.checkov_skip_checks = checkov_skip_checks

    @staticmethod
    def requires_security_scan(manifest_path: str) -> bool:
        """Return True when the manifest text declares a ``securityContext:``."""
        if not os.path.isfile(manifest_path):
            return False
        with open(manifest_path, "r", encoding="utf-8") as file_obj:
            return SECURITY_CONTEXT_TOKEN in file_obj.read()

    def build_schema_command(self, manifest: RenderedManifest) -> List[str]:
        manifest_dir, file_name = os.path.split(manifest.path)
        return self.docker_runtime_service.build_run_command(
            f"{KUBEVAL_IMAGE}:{self.kubeval_version}",
            [
                f"{CONTAINER_APP_DIR}/{file_name}",
                "--strict",
                "--skip-kinds",
                self.kubeval_skip_kinds,
            ],
            volumes={manifest_dir: CONTAINER_APP_DIR},
        )

    def build_scan_command(self, manifest: RenderedManifest) -> List[str]:
        manifest_dir, file_name = os.path.split(manifest.path)
        return self.docker_runtime_service.build_run_command(
            f"{CHECKOV_IMAGE}:{self.checkov_version}",
            [
                "--quiet",
                "--skip-check",
                self.checkov_skip_checks,
                "-f",
                f"{CONTAINER_APP_DIR}/{file_name}",
            ],
            volumes={manifest_dir: CONTAINER_APP_DIR},
        )

    def validate_schema(self, manifest: RenderedManifest, run_cmd: Callable):
        run_cmd(self.build_schema_command(manifest))
        self.logger.info("Manifest %s passed schema validation", manifest.path)

    def scan_policies(self, manifest: RenderedManifest, run_cmd: Callable):
        run_cmd(self.build_scan_command(manifest))
        self.logger.info("Manifest %s passed security policy scan", manifest.path)
