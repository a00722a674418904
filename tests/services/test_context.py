import pytest

from fluxstage.errors import DeployError
from fluxstage.services.context import ContextResolver


class DummyLogger:
    def __init__(self):
        self.warnings = []

    def warning(self, *args, **_kwargs):
        self.warnings.append(args)


@pytest.mark.parametrize("branch", ["main", "master"])
def test_production_branches_force_prod_instance(branch):
    context = ContextResolver(DummyLogger()).resolve("foo", "abc1234", branch)

    assert context.app_instance == "prod"
    assert context.flux_instance == "prod"
    assert context.target_project == "uwit-mci-0011"
    assert context.manifest_file_name == "foo.yaml"
    assert context.release_branch_name == "release/prod/foo/abc1234"
    assert context.is_production is True


def test_production_branch_ignores_instance_override():
    logger = DummyLogger()

    context = ContextResolver(logger).resolve("foo", "abc1234", "main", app_instance="eval")

    assert context.app_instance == "prod"
    assert context.manifest_file_name == "foo.yaml"
    assert logger.warnings


@pytest.mark.parametrize("branch", ["develop", "feature/x", "mainline"])
def test_non_production_branches_default_to_test_instance(branch):
    context = ContextResolver(DummyLogger()).resolve("foo", "abc1234", branch)

    assert context.app_instance == "test"
    assert context.flux_instance == "dev"
    assert context.target_project == "uwit-mci-0010"
    assert context.manifest_file_name == "foo.yaml"
    assert context.is_production is False


def test_named_instance_gets_manifest_suffix():
    context = ContextResolver(DummyLogger()).resolve("foo", "abc1234", "develop", app_instance="eval")

    assert context.app_instance == "eval"
    assert context.manifest_file_name == "foo-eval.yaml"
    assert context.manifest_file_name.endswith("-eval.yaml")
    assert context.app_name == "foo-prod-eval"
    assert context.release_manifest_path == "releases/dev/foo-eval.yaml"


def test_develop_scenario_paths():
    context = ContextResolver(DummyLogger()).resolve("foo", "abc1234", "develop")

    assert context.release_branch_name == "release/dev/foo/abc1234"
    assert context.release_manifest_path == "releases/dev/foo.yaml"
    assert context.flux_repo_name == "gcp-flux-dev"
    assert context.pull_request_file_name == "pr-dev-foo-abc1234.json"


def test_missing_branch_is_rejected():
    with pytest.raises(DeployError, match="GIT_REPO_BRANCH"):
        ContextResolver(DummyLogger()).resolve("foo", "abc1234", "")
