"""Actionable error catalog for fluxstage."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "missing_setting": {
        "what": "Missing required setting: {name}",
        "next": "Export {name} in the build environment or pass it on the command line.",
    },
    "values_file_not_found": {
        "what": "Helm values file not found: {path}",
        "next": "Add {path} to the application repository or set APP_INSTANCE to an existing instance.",
    },
    "release_branch_exists": {
        "what": "Release branch {branch} already exists in {repository}.",
        "next": "Deploy a new commit or delete the stale branch from the flux repository.",
    },
    "api_request_failed": {
        "what": "GitHub API {action} failed with status {status}: {message}",
        "next": "Check that GH_AUTH_TOKEN can open and merge pull requests on {repository}.",
    },
    "invalid_pull_request": {
        "what": "Pull request response {path} is missing '{field}'.",
        "next": "Inspect {path} for the API error and rerun the deployment.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
