import logging
import os

import click
from rich.logging import RichHandler

from . import constants
from .core import DeployError, FluxDeployer
from .services.config_loader import ConfigLoader


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


@click.command()
@click.option("--release-name", required=False, help="Application name as deployed in the cluster [RELEASE_NAME]")
@click.option("--commit-hash", required=False, help="Source commit to deploy [COMMIT_HASH]")
@click.option("--branch", required=False, help="Source branch being deployed [GIT_REPO_BRANCH]")
@click.option("--repo-slug", required=False, help="Source repository owner/name [GIT_REPO_SLUG]")
@click.option("--build-number", required=False, help="Build identifier [BUILD_NUMBER]")
@click.option("--build-web-url", required=False, help="Build output URL [BUILD_WEB_URL]")
@click.option(
    "--app-instance",
    required=False,
    help="Instance in the dev project, also the values file prefix [APP_INSTANCE]",
)
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help="Path to a YAML configuration file. Defaults to .fluxstage.yml if present.",
)
@click.option("--helm-version", required=False, help="alpine/helm image tag [HELM_APP_VERSION]")
@click.option("--chart-branch", required=False, help="Helm chart repository branch [HELM_CHART_BRANCH]")
@click.option("--kubeval-version", required=False, help="garethr/kubeval image tag [KUBEVAL_VERSION]")
@click.option(
    "--kubeval-skip-kinds",
    required=False,
    help="Comma separated kinds kubeval should skip [KUBEVAL_SKIP_KINDS]",
)
@click.option("--checkov-version", required=False, help="bridgecrew/checkov image tag [CHECKOV_VERSION]")
@click.option(
    "--checkov-skip-checks",
    required=False,
    help="Comma separated accepted checkov violations [CHECKOV_SKIP_CHECKS]",
)
@click.option("--work-dir", required=False, type=click.Path(), help="Working directory (default: cwd)")
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
@click.option(
    "--dry-run",
    is_flag=True,
    default=None,
    help="Print the steps that would run without running them [DRY_RUN]",
)
def main(
    release_name,
    commit_hash,
    branch,
    repo_slug,
    build_number,
    build_web_url,
    app_instance,
    config,
    helm_version,
    chart_branch,
    kubeval_version,
    kubeval_skip_kinds,
    checkov_version,
    checkov_skip_checks,
    work_dir,
    verbose,
    log_file,
    dry_run,
):
    """Stage RELEASE_NAME as a flux repository pull request for deployment."""
    logger = logging.getLogger("fluxstage")

    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), ".fluxstage.yml")
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = config_loader.load(resolved_config)
        config_values.update(config_loader.load_environment(os.environ))
    except DeployError as exc:
        raise click.ClickException(str(exc)) from exc

    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    try:
        deployer = FluxDeployer(
            release_name=_resolve_option(release_name, config_values, "release_name"),
            commit_hash=_resolve_option(commit_hash, config_values, "commit_hash"),
            source_branch=_resolve_option(branch, config_values, "branch"),
            repo_slug=_resolve_option(repo_slug, config_values, "repo_slug"),
            build_number=_resolve_option(build_number, config_values, "build_number"),
            build_web_url=_resolve_option(build_web_url, config_values, "build_web_url"),
            auth_token=config_values.get("auth_token"),
            app_instance=_resolve_option(app_instance, config_values, "app_instance"),
            helm_version=_resolve_option(
                helm_version, config_values, "helm_version", default=constants.HELM_APP_VERSION
            ),
            chart_branch=_resolve_option(
                chart_branch, config_values, "chart_branch", default=constants.HELM_CHART_BRANCH
            ),
            kubeval_version=_resolve_option(
                kubeval_version, config_values, "kubeval_version", default=constants.KUBEVAL_VERSION
            ),
            kubeval_skip_kinds=_resolve_option(
                kubeval_skip_kinds,
                config_values,
                "kubeval_skip_kinds",
                default=constants.KUBEVAL_SKIP_KINDS,
            ),
            checkov_version=_resolve_option(
                checkov_version, config_values, "checkov_version", default=constants.CHECKOV_VERSION
            ),
            checkov_skip_checks=_resolve_option(
                checkov_skip_checks,
                config_values,
                "checkov_skip_checks",
                default=constants.CHECKOV_SKIP_CHECKS,
            ),
            dry_run=bool(_resolve_option(dry_run, config_values, "dry_run", default=False)),
            github_owner=config_values.get("github_owner", constants.GITHUB_OWNER),
            chart_name=config_values.get("chart_name", constants.HELM_CHART_NAME),
            values_dir=config_values.get("values_dir", constants.VALUES_DIR),
            flux_base_branch=config_values.get("flux_base_branch", constants.FLUX_BASE_BRANCH),
            api_url=config_values.get("api_url", constants.GITHUB_API_URL),
            work_dir=_resolve_option(work_dir, config_values, "work_dir"),
        )
    except DeployError as exc:
        raise click.ClickException(str(exc)) from exc

    raise SystemExit(deployer.run())


if __name__ == "__main__":
    main()
