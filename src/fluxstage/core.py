import logging
import os
import subprocess
from dataclasses import asdict
from typing import List, Optional

import requests
from rich.console import Console
from rich.markup import escape

from . import constants
from .errors import DeployError
from .errors_catalog import actionable_error
from .models import ChartCheckout, PullRequestRecord, RenderedManifest, StagedRelease
from .services.chart import ChartFetcher
from .services.command_runner import CommandRunner
from .services.context import ContextResolver
from .services.docker_runtime import DockerRuntimeService
from .services.filesystem import FileSystemService
from .services.gitops import GitOpsStager
from .services.pull_request import PullRequestService
from .services.renderer import ManifestRenderer
from .services.report import RunReportService
from .services.validation import ManifestValidator

console = Console()
logger = logging.getLogger("fluxstage")


class FluxDeployer:
    """Stages a release manifest into the flux repository as a pull request."""

    def __init__(
        self,
        release_name: str,
        commit_hash: str,
        source_branch: str,
        repo_slug: str,
        build_number: str,
        build_web_url: str,
        auth_token: str,
        app_instance: Optional[str] = None,
        helm_version: str = constants.HELM_APP_VERSION,
        chart_branch: str = constants.HELM_CHART_BRANCH,
        kubeval_version: str = constants.KUBEVAL_VERSION,
        kubeval_skip_kinds: str = constants.KUBEVAL_SKIP_KINDS,
        checkov_version: str = constants.CHECKOV_VERSION,
        checkov_skip_checks: str = constants.CHECKOV_SKIP_CHECKS,
        dry_run: bool = False,
        github_owner: str = constants.GITHUB_OWNER,
        chart_name: str = constants.HELM_CHART_NAME,
        values_dir: str = constants.VALUES_DIR,
        flux_base_branch: str = constants.FLUX_BASE_BRANCH,
        api_url: str = constants.GITHUB_API_URL,
        work_dir: Optional[str] = None,
    ):
        self._require_settings(
            RELEASE_NAME=release_name,
            COMMIT_HASH=commit_hash,
            GIT_REPO_BRANCH=source_branch,
            GIT_REPO_SLUG=repo_slug,
            BUILD_NUMBER=build_number,
            BUILD_WEB_URL=build_web_url,
            GH_AUTH_TOKEN=auth_token,
        )

        self.repo_slug = repo_slug
        self.build_number = build_number
        self.build_web_url = build_web_url
        self.dry_run = dry_run
        self.prefix = constants.DRY_RUN_PREFIX if dry_run else ""

        self.context_resolver = ContextResolver(logger=logger)
        self.context = self.context_resolver.resolve(
            release_name=release_name,
            commit_hash=commit_hash,
            source_branch=source_branch,
            app_instance=app_instance,
        )

        self.work_dir = os.path.abspath(work_dir or os.getcwd())
        self.chart_dir = os.path.join(self.work_dir, chart_name)
        self.flux_dir = os.path.join(self.work_dir, self.context.flux_repo_name)
        self.pull_request_file = os.path.join(self.work_dir, self.context.pull_request_file_name)
        self.report_file = os.path.join(self.work_dir, constants.REPORT_FILE_NAME)
        self.current_step_name: Optional[str] = None

        self.command_runner = CommandRunner(logger=logger, known_secrets=(auth_token,))
        self.filesystem_service = FileSystemService(logger=logger, console=console)
        self.docker_runtime_service = DockerRuntimeService(logger=logger, console=console)
        self.report_service = RunReportService(
            report_file=self.report_file,
            logger=logger,
            filesystem_service=self.filesystem_service,
            redact=self.command_runner.redact,
            enabled=not dry_run,
        )
        self.chart_fetcher = ChartFetcher(
            logger=logger,
            owner=github_owner,
            chart_name=chart_name,
            branch=chart_branch,
        )
        self.manifest_renderer = ManifestRenderer(
            logger=logger,
            docker_runtime_service=self.docker_runtime_service,
            filesystem_service=self.filesystem_service,
            helm_version=helm_version,
            values_dir=values_dir,
        )
        self.manifest_validator = ManifestValidator(
            logger=logger,
            docker_runtime_service=self.docker_runtime_service,
            kubeval_version=kubeval_version,
            kubeval_skip_kinds=kubeval_skip_kinds,
            checkov_version=checkov_version,
            checkov_skip_checks=checkov_skip_checks,
        )
        self.gitops_stager = GitOpsStager(
            logger=logger,
            filesystem_service=self.filesystem_service,
            owner=github_owner,
            auth_token=auth_token,
            base_branch=flux_base_branch,
        )
        self.pull_request_service = PullRequestService(
            logger=logger,
            filesystem_service=self.filesystem_service,
            api_url=api_url,
            owner=github_owner,
            auth_token=auth_token,
            base_branch=flux_base_branch,
            requests_module=requests,
        )

        self.commit_message = self.gitops_stager.commit_message(
            self.context, self.repo_slug, self.build_number
        )
        self.pull_request_body = self.pull_request_service.pull_request_body(
            self.context, self.repo_slug, self.build_number, self.build_web_url
        )

    @staticmethod
    def _require_settings(**settings):
        for name, value in settings.items():
            if value is None or str(value).strip() == "":
                raise DeployError(actionable_error("missing_setting", name=name))

    def _announce(self, message: str):
        line = f"{self.prefix}{message}"
        console.print(escape(line))
        logger.debug(line)

    def _run_step(self, name: str, callback, *args, **kwargs):
        outcome = self.report_service.step_started(name)
        self.current_step_name = name

        try:
            result = callback(*args, **kwargs)
        except KeyboardInterrupt:
            self.report_service.step_finished(outcome, "aborted", error="Operation cancelled by user.")
            raise
        except Exception as exc:
            self.report_service.step_finished(outcome, "failed", error=str(exc))
            raise

        self.report_service.step_finished(outcome, "success")
        self.current_step_name = None
        return result

    def _run_cmd(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
        cwd: Optional[str] = None,
        show_output: bool = False,
    ) -> subprocess.CompletedProcess:
        return self.command_runner.run(
            cmd,
            check=check,
            capture_output=capture_output,
            cwd=cwd,
            show_output=show_output,
        )

    def describe_context(self):
        banner = "#" * 37
        console.print(banner)
        console.print(escape(f"{self.prefix}DEPLOY {self.context.app_name} in {self.context.target_project}"))
        console.print(banner)
        for field, value in asdict(self.context).items():
            logger.info("%s: %s", field, value)

    def validate_docker_environment(self):
        self.docker_runtime_service.validate_environment(self._run_cmd)

    def fetch_chart(self) -> ChartCheckout:
        self._announce(
            f"CLONE chart repository {self.chart_fetcher.repository_path} ({self.chart_fetcher.branch})"
        )
        if self.dry_run:
            return self.chart_fetcher.checkout_for(self.chart_dir)

        return self.chart_fetcher.fetch(self.chart_dir, self._run_cmd)

    def render_manifest(self, chart: ChartCheckout) -> RenderedManifest:
        values_file = self.manifest_renderer.values_file_for(self.context)
        self._announce(f"GENERATE release manifest {self.context.manifest_file_name} using {values_file}")
        if self.dry_run:
            return RenderedManifest(
                path=os.path.join(self.work_dir, self.context.manifest_file_name),
                values_file=values_file,
            )

        return self.manifest_renderer.render(self.context, chart, self.work_dir, self._run_cmd)

    def validate_manifest(self, manifest: RenderedManifest):
        self._announce(f"VALIDATE generated manifest {self.context.manifest_file_name}")
        if self.dry_run:
            return

        self.manifest_validator.validate_schema(manifest, self._run_cmd)

    def scan_manifest(self, manifest: RenderedManifest):
        self._announce(f"SCAN generated manifest {self.context.manifest_file_name} against security policies")
        if self.dry_run:
            return

        self.manifest_validator.scan_policies(manifest, self._run_cmd)

    def clone_flux_repository(self):
        self._announce(f"CLONE flux repository {self.gitops_stager.repository_path(self.context)}")
        if self.dry_run:
            return

        self.gitops_stager.clone(self.context, self.flux_dir, self._run_cmd)

    def create_release_branch(self):
        self._announce(f"CREATE branch {self.context.release_branch_name}")
        if self.dry_run:
            return

        self.gitops_stager.create_release_branch(self.context, self.flux_dir, self._run_cmd)

    def commit_release(self, manifest: RenderedManifest) -> Optional[StagedRelease]:
        self._announce(f"ADD {self.context.release_manifest_path} and COMMIT")
        if self.dry_run:
            return None

        return self.gitops_stager.commit_and_push(
            self.context,
            manifest,
            self.flux_dir,
            self.commit_message,
            self._run_cmd,
        )

    def submit_pull_request(self, staged: Optional[StagedRelease]) -> Optional[PullRequestRecord]:
        self._announce(f"SUBMIT {self.context.release_branch_name} pull request")
        if self.dry_run:
            return None

        payload = self.pull_request_service.build_payload(staged, self.pull_request_body)
        record = self.pull_request_service.submit(self.context, payload, self.pull_request_file)
        console.print(escape(f"SUBMITTED {record.html_url}"))
        logger.info("Pull request response saved to %s", record.response_file)
        return record

    def merge_pull_request(self, record: Optional[PullRequestRecord]):
        target = record.html_url if record else self.context.release_branch_name
        self._announce(f"MERGING {target}")
        if self.dry_run:
            return

        self.pull_request_service.merge(self.context, self.pull_request_file, self.pull_request_body)
        console.print(escape(f"MERGED {target}"))

    def _gate_policy_scan(self, manifest: RenderedManifest):
        if self.dry_run:
            logger.info(
                "Dry-run renders nothing, so whether %s needs a policy scan is unknown.",
                self.context.manifest_file_name,
            )
            return

        if self.manifest_validator.requires_security_scan(manifest.path):
            self._run_step("scan_manifest", self.scan_manifest, manifest)
            self.report_service.record_policy_scan(ran=True)
        else:
            logger.info("No securityContext declared in %s, skipping policy scan.", manifest.path)
            self.report_service.record_policy_scan(ran=False)

    def run(self) -> int:
        exit_code = 1
        report_status = "failed"
        report_error: Optional[str] = None

        try:
            logger.info("Starting fluxstage...")
            self.report_service.start_run(self.context)
            self.describe_context()

            if not self.dry_run:
                self._run_step("validate_docker_environment", self.validate_docker_environment)

            chart = self._run_step("fetch_chart", self.fetch_chart)
            manifest = self._run_step("render_manifest", self.render_manifest, chart)
            self._run_step("validate_manifest", self.validate_manifest, manifest)
            self._gate_policy_scan(manifest)

            self._run_step("clone_flux_repository", self.clone_flux_repository)
            self._run_step("create_release_branch", self.create_release_branch)
            staged = self._run_step("commit_release", self.commit_release, manifest)
            record = self._run_step("submit_pull_request", self.submit_pull_request, staged)
            if record is not None:
                self.report_service.record_pull_request(record)

            if not self.context.is_production:
                self._run_step("merge_pull_request", self.merge_pull_request, record)
                if not self.dry_run:
                    self.report_service.record_merge()
            else:
                logger.info("Production release %s left open for review.", self.context.release_branch_name)

            report_status = "success"
            exit_code = 0
            return exit_code

        except KeyboardInterrupt:
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            report_status = "aborted"
            report_error = "Operation cancelled by user."
            return exit_code
        except DeployError as exc:
            message = self.command_runner.redact(str(exc))
            console.print(f"[bold red]Error:[/bold red] {escape(message)}")
            logger.error(message)
            report_error = message
            return exit_code
        except Exception as exc:
            message = self.command_runner.redact(str(exc))
            console.print(f"[bold red]Unexpected error:[/bold red] {escape(message)}")
            logger.error("Unexpected error in step %s: %s", self.current_step_name or "run", message)
            report_error = message
            return exit_code
        finally:
            self.report_service.finalize(report_status, error=report_error)
