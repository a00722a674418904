"""Configuration loader for fluxstage."""

from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from fluxstage.errors import DeployError


class ConfigLoader:
    """Loads YAML configuration files and build environment variables."""

    ENVIRONMENT_KEYS = {
        "RELEASE_NAME": "release_name",
        "COMMIT_HASH": "commit_hash",
        "GIT_REPO_BRANCH": "branch",
        "GIT_REPO_SLUG": "repo_slug",
        "BUILD_NUMBER": "build_number",
        "BUILD_WEB_URL": "build_web_url",
        "GH_AUTH_TOKEN": "auth_token",
        "APP_INSTANCE": "app_instance",
        "HELM_APP_VERSION": "helm_version",
        "HELM_CHART_BRANCH": "chart_branch",
        "KUBEVAL_VERSION": "kubeval_version",
        "KUBEVAL_SKIP_KINDS": "kubeval_skip_kinds",
        "CHECKOV_VERSION": "checkov_version",
        "CHECKOV_SKIP_CHECKS": "checkov_skip_checks",
        "DRY_RUN": "dry_run",
    }

    SUPPORTED_KEYS = set(ENVIRONMENT_KEYS.values()) | {
        "github_owner",
        "chart_name",
        "values_dir",
        "flux_base_branch",
        "api_url",
        "work_dir",
        "verbose",
        "log_file",
    }

    FLAG_KEYS = {"verbose", "dry_run"}

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise DeployError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise DeployError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise DeployError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(str(key) for key in set(parsed) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise DeployError(f"Unknown configuration keys: {unknown_list}")

        for key, value in parsed.items():
            if key in self.FLAG_KEYS:
                if not isinstance(value, bool):
                    raise DeployError(f"Configuration key '{key}' must be true or false, got {value!r}.")
            elif not isinstance(value, str):
                raise DeployError(
                    f"Configuration key '{key}' must be a string, got {value!r}. "
                    "Quote the value in the config file."
                )

        return parsed

    def load_environment(self, environ: Mapping[str, str]) -> Dict[str, Any]:
        """Map set, non-empty build variables to configuration keys.

        ``DRY_RUN`` enables dry-run for any non-empty value.
        """
        values: Dict[str, Any] = {}
        for env_name, key in self.ENVIRONMENT_KEYS.items():
            value = environ.get(env_name)
            if not value:
                continue
            values[key] = True if key == "dry_run" else value
        return values
