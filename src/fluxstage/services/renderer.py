"""Manifest rendering service backed by ``helm template``."""

import os
from typing import Callable

from fluxstage.constants import HELM_IMAGE
from fluxstage.errors import DeployError
from fluxstage.errors_catalog import actionable_error
from fluxstage.models import ChartCheckout, DeploymentContext, RenderedManifest

CONTAINER_APP_DIR = "/app"
CONTAINER_CHART_DIR = "/chart"


class ManifestRenderer:
    """Renders the release manifest from the chart, instance values and commit hash."""

    def __init__(self, logger, docker_runtime_service, filesystem_service, helm_version: str, values_dir: str):
        self.logger = logger
        self.docker_runtime_service = docker_runtime_service
        self.filesystem_service = filesystem_service
        self.helm_version = helm_version
        self.values_dir = values_dir

    @property
    def image(self) -> str:
        return f"{HELM_IMAGE}:{self.helm_version}"

    def values_file_for(self, context: DeploymentContext) -> str:
        return f"{self.values_dir}/{context.app_instance}-values.yml"

    def build_command(self, context: DeploymentContext, chart: ChartCheckout, work_dir: str):
        # image.tag must stay a string so hash-like tags such as 1234e56 are not parsed as numbers
        args = [
            "template",
            context.app_name,
            CONTAINER_CHART_DIR,
            "--set-string",
            f"image.tag={context.commit_hash}",
            "-f",
            f"{CONTAINER_APP_DIR}/{self.values_file_for(context)}",
        ]
        return self.docker_runtime_service.build_run_command(
            self.image,
            args,
            volumes={work_dir: CONTAINER_APP_DIR, chart.path: CONTAINER_CHART_DIR},
        )

    def render(
        self,
        context: DeploymentContext,
        chart: ChartCheckout,
        work_dir: str,
        run_cmd: Callable,
    ) -> RenderedManifest:
        values_file = self.values_file_for(context)
        values_path = os.path.join(work_dir, values_file)
        if not os.path.isfile(values_path):
            raise DeployError(actionable_error("values_file_not_found", path=values_file))

        result = run_cmd(self.build_command(context, chart, work_dir), capture_output=True)

        manifest_path = os.path.join(work_dir, context.manifest_file_name)
        self.filesystem_service.write_text(manifest_path, result.stdout)
        self.logger.info("Rendered manifest written to %s", manifest_path)
        return RenderedManifest(path=manifest_path, values_file=values_file)
