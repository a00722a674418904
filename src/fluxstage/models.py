"""Shared domain models for fluxstage."""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from fluxstage.constants import PROD_INSTANCE


@dataclass(frozen=True)
class DeploymentContext:
    """Environment-specific identifiers resolved once per run."""

    release_name: str
    commit_hash: str
    source_branch: str
    app_instance: str
    flux_instance: str
    target_project: str
    manifest_file_name: str
    release_branch_name: str

    @property
    def is_production(self) -> bool:
        return self.flux_instance == PROD_INSTANCE

    @property
    def app_name(self) -> str:
        return f"{self.release_name}-prod-{self.app_instance}"

    @property
    def flux_repo_name(self) -> str:
        return f"gcp-flux-{self.flux_instance}"

    @property
    def release_manifest_path(self) -> str:
        return f"releases/{self.flux_instance}/{self.manifest_file_name}"

    @property
    def pull_request_file_name(self) -> str:
        return f"pr-{self.flux_instance}-{self.release_name}-{self.commit_hash}.json"


@dataclass(frozen=True)
class ChartCheckout:
    path: str
    repository: str
    branch: str


@dataclass(frozen=True)
class RenderedManifest:
    path: str
    values_file: str


@dataclass(frozen=True)
class StagedRelease:
    repository_dir: str
    branch: str
    manifest_path: str
    commit_message: str


@dataclass(frozen=True)
class PullRequestPayload:
    """Body of ``POST /repos/<owner>/<repo>/pulls``."""

    title: str
    body: str
    head: str
    base: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MergePayload:
    """Body of ``PUT <pull-url>/merge``."""

    commit_title: str
    commit_message: str
    sha: str
    merge_method: str = "merge"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PullRequestRecord:
    response_file: str
    html_url: str
    api_url: str
    head_sha: str


@dataclass
class StepOutcome:
    name: str
    status: str
    started_at: str
    finished_at: Optional[str] = None
    error: Optional[str] = None


@dataclass
class RunReport:
    """What one run staged, and how far it got.

    ``policy_scan`` is ``"ran"`` when the manifest declared a
    ``securityContext:`` and checkov was invoked, ``"skipped"`` when the
    content gate left it out, and ``None`` until the gate is evaluated.
    """

    release_name: str
    commit_hash: str
    source_branch: str
    flux_instance: str
    app_instance: str
    release_branch: str
    release_manifest_path: str
    status: str = "running"
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    policy_scan: Optional[str] = None
    pull_request_url: Optional[str] = None
    merged: bool = False
    error: Optional[str] = None
    steps: List[StepOutcome] = field(default_factory=list)

    @classmethod
    def for_context(cls, context: DeploymentContext, started_at: str) -> "RunReport":
        return cls(
            release_name=context.release_name,
            commit_hash=context.commit_hash,
            source_branch=context.source_branch,
            flux_instance=context.flux_instance,
            app_instance=context.app_instance,
            release_branch=context.release_branch_name,
            release_manifest_path=context.release_manifest_path,
            started_at=started_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
