"""GitHub pull request submission and merge service."""

import json
from typing import Any, Dict

import requests

from fluxstage.errors import DeployError
from fluxstage.errors_catalog import actionable_error
from fluxstage.models import (
    DeploymentContext,
    MergePayload,
    PullRequestPayload,
    PullRequestRecord,
    StagedRelease,
)


class PullRequestService:
    """Opens the release pull request and, for non-production targets, merges it.

    The merge reads the pull request ``url`` and head ``sha`` back from the
    persisted response file rather than from memory, so a saved response is
    enough to inspect or repeat the merge.
    """

    def __init__(
        self,
        logger,
        filesystem_service,
        api_url: str,
        owner: str,
        auth_token: str,
        base_branch: str,
        requests_module=requests,
        timeout: float = 30.0,
    ):
        self.logger = logger
        self.filesystem_service = filesystem_service
        self.api_url = api_url.rstrip("/")
        self.owner = owner
        self.auth_token = auth_token
        self.base_branch = base_branch
        self.requests = requests_module
        self.timeout = timeout

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.auth_token}",
            "Accept": "application/vnd.github+json",
            "Content-Type": "application/json",
        }

    def repository_path(self, context: DeploymentContext) -> str:
        return f"{self.owner}/{context.flux_repo_name}"

    def pulls_url(self, context: DeploymentContext) -> str:
        return f"{self.api_url}/repos/{self.repository_path(context)}/pulls"

    @staticmethod
    def pull_request_body(
        context: DeploymentContext,
        repo_slug: str,
        build_number: str,
        build_web_url: str,
    ) -> str:
        return (
            f"Automated {context.flux_instance} deploy of "
            f"[{repo_slug}:{context.commit_hash}](/{repo_slug}/commit/{context.commit_hash})  "
            f"Generated build [{build_number}]({build_web_url})"
        )

    def build_payload(self, staged: StagedRelease, body: str) -> PullRequestPayload:
        return PullRequestPayload(
            title=staged.commit_message,
            body=body,
            head=staged.branch,
            base=self.base_branch,
        )

    def submit(
        self,
        context: DeploymentContext,
        payload: PullRequestPayload,
        response_file: str,
    ) -> PullRequestRecord:
        url = self.pulls_url(context)
        self.logger.debug("POST %s (head=%s, base=%s)", url, payload.head, payload.base)

        try:
            response = self.requests.post(
                url,
                json=payload.to_dict(),
                headers=self.headers,
                timeout=self.timeout,
            )
        except self.requests.RequestException as exc:
            raise DeployError(f"Pull request submission failed: {exc}") from exc

        self.filesystem_service.write_text(response_file, response.text)
        self._check_status(response, "pull request submission", context)
        return self.load_record(response_file)

    def load_record(self, response_file: str) -> PullRequestRecord:
        data = self._read_response(response_file)
        head = data.get("head") if isinstance(data.get("head"), dict) else {}

        for field, value in (
            ("html_url", data.get("html_url")),
            ("url", data.get("url")),
            ("head.sha", head.get("sha")),
        ):
            if not value:
                raise DeployError(
                    actionable_error("invalid_pull_request", path=response_file, field=field)
                )

        return PullRequestRecord(
            response_file=response_file,
            html_url=data["html_url"],
            api_url=data["url"],
            head_sha=head["sha"],
        )

    def build_merge_payload(self, record: PullRequestRecord, body: str) -> MergePayload:
        message = f"Automated merge of {body}"
        return MergePayload(commit_title=message, commit_message=message, sha=record.head_sha)

    def merge(self, context: DeploymentContext, response_file: str, body: str) -> Dict[str, Any]:
        record = self.load_record(response_file)
        url = f"{record.api_url}/merge"
        payload = self.build_merge_payload(record, body)
        self.logger.debug("PUT %s (sha=%s)", url, payload.sha)

        try:
            response = self.requests.put(
                url,
                json=payload.to_dict(),
                headers=self.headers,
                timeout=self.timeout,
            )
        except self.requests.RequestException as exc:
            raise DeployError(f"Pull request merge failed: {exc}") from exc

        self._check_status(response, "pull request merge", context)
        return self._parse_json(response.text)

    def _check_status(self, response, action: str, context: DeploymentContext):
        if 200 <= response.status_code < 300:
            return

        message = self._parse_json(response.text).get("message") or response.text.strip()
        raise DeployError(
            actionable_error(
                "api_request_failed",
                action=action,
                status=str(response.status_code),
                message=message or "<empty response>",
                repository=self.repository_path(context),
            )
        )

    def _read_response(self, response_file: str) -> Dict[str, Any]:
        try:
            with open(response_file, "r", encoding="utf-8") as file_obj:
                data = json.load(file_obj)
        except (OSError, json.JSONDecodeError) as exc:
            raise DeployError(f"Could not read pull request response '{response_file}': {exc}") from exc

        if not isinstance(data, dict):
            raise DeployError(f"Pull request response '{response_file}' has invalid format.")
        return data

    @staticmethod
    def _parse_json(text: str) -> Dict[str, Any]:
        try:
            data = json.loads(text or "{}")
        except json.JSONDecodeError:
            return {}
        return data if isinstance(data, dict) else {}
