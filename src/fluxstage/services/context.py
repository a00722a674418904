"""Deployment context resolution for fluxstage."""

from typing import Optional

from fluxstage.constants import (
    DEFAULT_APP_INSTANCE,
    DEV_FLUX_INSTANCE,
    DEV_PROJECT,
    PROD_INSTANCE,
    PROD_PROJECT,
    PRODUCTION_BRANCHES,
)
from fluxstage.errors import DeployError
from fluxstage.errors_catalog import actionable_error
from fluxstage.models import DeploymentContext


class ContextResolver:
    """Classifies the source branch and derives every per-run identifier."""

    def __init__(self, logger):
        self.logger = logger

    @staticmethod
    def is_production_branch(source_branch: str) -> bool:
        return source_branch in PRODUCTION_BRANCHES

    def resolve(
        self,
        release_name: str,
        commit_hash: str,
        source_branch: str,
        app_instance: Optional[str] = None,
    ) -> DeploymentContext:
        for name, value in (
            ("RELEASE_NAME", release_name),
            ("COMMIT_HASH", commit_hash),
            ("GIT_REPO_BRANCH", source_branch),
        ):
            if not value:
                raise DeployError(actionable_error("missing_setting", name=name))

        if self.is_production_branch(source_branch):
            if app_instance and app_instance != PROD_INSTANCE:
                self.logger.warning(
                    "Ignoring APP_INSTANCE=%s: branch %s always deploys the prod instance.",
                    app_instance,
                    source_branch,
                )
            resolved_instance = PROD_INSTANCE
            flux_instance = PROD_INSTANCE
            target_project = PROD_PROJECT
            suffix = ""
        else:
            resolved_instance = app_instance or DEFAULT_APP_INSTANCE
            flux_instance = DEV_FLUX_INSTANCE
            target_project = DEV_PROJECT
            suffix = "" if resolved_instance == DEFAULT_APP_INSTANCE else f"-{resolved_instance}"

        return DeploymentContext(
            release_name=release_name,
            commit_hash=commit_hash,
            source_branch=source_branch,
            app_instance=resolved_instance,
            flux_instance=flux_instance,
            target_project=target_project,
            manifest_file_name=f"{release_name}{suffix}.yaml",
            release_branch_name=f"release/{flux_instance}/{release_name}/{commit_hash}",
        )
