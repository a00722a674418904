"""Helm chart retrieval service."""

from typing import Callable

from fluxstage.constants import GITHUB_HOST
from fluxstage.models import ChartCheckout


class ChartFetcher:
    """Shallow-clones a versioned chart repository."""

    def __init__(self, logger, owner: str, chart_name: str, branch: str):
        self.logger = logger
        self.owner = owner
        self.chart_name = chart_name
        self.branch = branch

    @property
    def repository_path(self) -> str:
        return f"{self.owner}/{self.chart_name}"

    @property
    def repository_url(self) -> str:
        return f"https://{GITHUB_HOST}/{self.repository_path}.git"

    def checkout_for(self, local_dir: str) -> ChartCheckout:
        return ChartCheckout(path=local_dir, repository=self.repository_path, branch=self.branch)

    def fetch(self, local_dir: str, run_cmd: Callable) -> ChartCheckout:
        run_cmd(
            [
                "git",
                "clone",
                "--depth",
                "1",
                self.repository_url,
                "--branch",
                self.branch,
                local_dir,
            ],
            show_output=True,
        )
        self.logger.info("Chart %s (%s) cloned to %s", self.repository_path, self.branch, local_dir)
        return self.checkout_for(local_dir)
