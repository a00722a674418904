"""GitOps repository staging service."""

import os
from typing import Callable

from fluxstage.constants import GITHUB_HOST
from fluxstage.errors import DeployError
from fluxstage.errors_catalog import actionable_error
from fluxstage.models import DeploymentContext, RenderedManifest, StagedRelease


class GitOpsStager:
    """Lands a rendered manifest on a fresh release branch of the flux repository.

    Every git call that can echo the clone URL runs with ``show_output=True`` so
    its output reaches the log only after secret redaction.
    """

    def __init__(self, logger, filesystem_service, owner: str, auth_token: str, base_branch: str):
        self.logger = logger
        self.filesystem_service = filesystem_service
        self.owner = owner
        self.auth_token = auth_token
        self.base_branch = base_branch

    def repository_path(self, context: DeploymentContext) -> str:
        return f"{self.owner}/{context.flux_repo_name}"

    def repository_url(self, context: DeploymentContext) -> str:
        return f"https://{self.auth_token}@{GITHUB_HOST}/{self.repository_path(context)}.git"

    @staticmethod
    def commit_message(context: DeploymentContext, repo_slug: str, build_number: str) -> str:
        return (
            f"Automated {context.flux_instance} deploy of "
            f"{repo_slug}:{context.commit_hash} build {build_number}"
        )

    def clone(self, context: DeploymentContext, local_dir: str, run_cmd: Callable):
        run_cmd(
            [
                "git",
                "clone",
                "--depth",
                "1",
                self.repository_url(context),
                "--branch",
                self.base_branch,
                local_dir,
            ],
            show_output=True,
        )

    def branch_exists(self, branch: str, local_dir: str, run_cmd: Callable) -> bool:
        remote = run_cmd(
            ["git", "ls-remote", "--exit-code", "--heads", "origin", branch],
            check=False,
            cwd=local_dir,
            show_output=True,
        )
        if remote.returncode == 0:
            return True
        if remote.returncode != 2:
            raise DeployError(f"Could not query origin for branch {branch} (exit {remote.returncode}).")

        local = run_cmd(
            ["git", "rev-parse", "--verify", "--quiet", f"refs/heads/{branch}"],
            check=False,
            capture_output=True,
            cwd=local_dir,
        )
        return local.returncode == 0

    def create_release_branch(self, context: DeploymentContext, local_dir: str, run_cmd: Callable):
        branch = context.release_branch_name
        if self.branch_exists(branch, local_dir, run_cmd):
            raise DeployError(
                actionable_error(
                    "release_branch_exists",
                    branch=branch,
                    repository=self.repository_path(context),
                )
            )
        run_cmd(["git", "checkout", "-b", branch], cwd=local_dir, show_output=True)

    def commit_and_push(
        self,
        context: DeploymentContext,
        manifest: RenderedManifest,
        local_dir: str,
        commit_message: str,
        run_cmd: Callable,
    ) -> StagedRelease:
        release_manifest = context.release_manifest_path
        self.filesystem_service.copy_preserving(
            manifest.path,
            os.path.join(local_dir, *release_manifest.split("/")),
        )

        run_cmd(["git", "add", release_manifest], cwd=local_dir)
        run_cmd(["git", "status"], cwd=local_dir, show_output=True)
        run_cmd(
            ["git", "commit", "-m", commit_message, release_manifest],
            cwd=local_dir,
            show_output=True,
        )
        run_cmd(
            ["git", "push", "origin", context.release_branch_name],
            cwd=local_dir,
            show_output=True,
        )
        run_cmd(["git", "status"], cwd=local_dir, show_output=True)

        return StagedRelease(
            repository_dir=local_dir,
            branch=context.release_branch_name,
            manifest_path=release_manifest,
            commit_message=commit_message,
        )
