import json

import pytest

from fluxstage.errors import DeployError
from fluxstage.models import StagedRelease
from fluxstage.services.filesystem import FileSystemService
from fluxstage.services.pull_request import PullRequestService

PR_RESPONSE = {
    "url": "https://api.github.com/repos/uw-it-aca/gcp-flux-dev/pulls/7",
    "html_url": "https://github.com/uw-it-aca/gcp-flux-dev/pull/7",
    "head": {"sha": "deadbeef", "ref": "release/dev/foo/abc1234"},
}


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self.text = json.dumps(payload)


class FakeRequestsModule:
    class RequestException(Exception):
        pass

    def __init__(self, post_response=None, put_response=None):
        self.post_response = post_response or FakeResponse(201, PR_RESPONSE)
        self.put_response = put_response or FakeResponse(200, {"merged": True})
        self.posts = []
        self.puts = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.posts.append({"url": url, "json": json, "headers": headers})
        return self.post_response

    def put(self, url, json=None, headers=None, timeout=None):
        self.puts.append({"url": url, "json": json, "headers": headers})
        return self.put_response


def _service(logger, console, requests_module):
    return PullRequestService(
        logger=logger,
        filesystem_service=FileSystemService(logger=logger, console=console),
        api_url="https://api.github.com/",
        owner="uw-it-aca",
        auth_token="token-value",
        base_branch="master",
        requests_module=requests_module,
    )


def _staged():
    return StagedRelease(
        repository_dir="/tmp/gcp-flux-dev",
        branch="release/dev/foo/abc1234",
        manifest_path="releases/dev/foo.yaml",
        commit_message="Automated dev deploy of uw-it-aca/foo:abc1234 build 42",
    )


def test_submit_posts_typed_payload_and_persists_response(tmp_path, logger, console, dev_context):
    fake_requests = FakeRequestsModule()
    service = _service(logger, console, fake_requests)
    response_file = tmp_path / dev_context.pull_request_file_name
    body = service.pull_request_body(dev_context, "uw-it-aca/foo", "42", "https://ci/42")

    record = service.submit(dev_context, service.build_payload(_staged(), body), str(response_file))

    post = fake_requests.posts[0]
    assert post["url"] == "https://api.github.com/repos/uw-it-aca/gcp-flux-dev/pulls"
    assert post["json"] == {
        "title": "Automated dev deploy of uw-it-aca/foo:abc1234 build 42",
        "body": body,
        "head": "release/dev/foo/abc1234",
        "base": "master",
    }
    assert post["headers"]["Authorization"] == "Bearer token-value"
    assert json.loads(response_file.read_text(encoding="utf-8")) == PR_RESPONSE
    assert record.html_url == PR_RESPONSE["html_url"]
    assert record.head_sha == "deadbeef"


def test_pull_request_body_links_commit_and_build(dev_context):
    body = PullRequestService.pull_request_body(dev_context, "uw-it-aca/foo", "42", "https://ci/42")

    assert body == (
        "Automated dev deploy of [uw-it-aca/foo:abc1234](/uw-it-aca/foo/commit/abc1234)  "
        "Generated build [42](https://ci/42)"
    )


def test_body_with_quotes_is_sent_verbatim(tmp_path, logger, console, dev_context):
    fake_requests = FakeRequestsModule()
    service = _service(logger, console, fake_requests)
    body = 'deploy "quoted" \\ text'

    service.submit(dev_context, service.build_payload(_staged(), body), str(tmp_path / "pr.json"))

    assert fake_requests.posts[0]["json"]["body"] == body


def test_submit_rejects_error_status_after_persisting(tmp_path, logger, console, dev_context):
    fake_requests = FakeRequestsModule(
        post_response=FakeResponse(422, {"message": "Validation Failed"}),
    )
    service = _service(logger, console, fake_requests)
    response_file = tmp_path / "pr.json"

    with pytest.raises(DeployError, match="status 422: Validation Failed"):
        service.submit(dev_context, service.build_payload(_staged(), "body"), str(response_file))

    assert response_file.exists()


def test_submit_rejects_success_without_expected_fields(tmp_path, logger, console, dev_context):
    fake_requests = FakeRequestsModule(post_response=FakeResponse(201, {"html_url": "x"}))
    service = _service(logger, console, fake_requests)

    with pytest.raises(DeployError, match="missing 'url'"):
        service.submit(dev_context, service.build_payload(_staged(), "body"), str(tmp_path / "pr.json"))


def test_merge_reads_url_and_sha_from_persisted_file(tmp_path, logger, console, dev_context):
    response_file = tmp_path / "pr.json"
    response_file.write_text(json.dumps(PR_RESPONSE), encoding="utf-8")
    fake_requests = FakeRequestsModule()
    service = _service(logger, console, fake_requests)

    service.merge(dev_context, str(response_file), "the body")

    assert len(fake_requests.puts) == 1
    put = fake_requests.puts[0]
    assert put["url"] == PR_RESPONSE["url"] + "/merge"
    assert put["json"] == {
        "commit_title": "Automated merge of the body",
        "commit_message": "Automated merge of the body",
        "sha": "deadbeef",
        "merge_method": "merge",
    }


def test_merge_rejects_error_status(tmp_path, logger, console, dev_context):
    response_file = tmp_path / "pr.json"
    response_file.write_text(json.dumps(PR_RESPONSE), encoding="utf-8")
    fake_requests = FakeRequestsModule(
        put_response=FakeResponse(405, {"message": "Pull Request is not mergeable"}),
    )

    with pytest.raises(DeployError, match="not mergeable"):
        _service(logger, console, fake_requests).merge(dev_context, str(response_file), "body")


def test_request_exception_becomes_deploy_error(tmp_path, logger, console, dev_context):
    class BrokenRequests(FakeRequestsModule):
        def post(self, *_args, **_kwargs):
            raise self.RequestException("connection reset")

    service = _service(logger, console, BrokenRequests())

    with pytest.raises(DeployError, match="connection reset"):
        service.submit(dev_context, service.build_payload(_staged(), "body"), str(tmp_path / "pr.json"))
