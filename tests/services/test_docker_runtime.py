import subprocess

from fluxstage.services.docker_runtime import DockerRuntimeService


def test_build_run_command_mounts_volumes_in_order(logger, console):
    service = DockerRuntimeService(logger=logger, console=console)

    cmd = service.build_run_command(
        "alpine/helm:3.4.2",
        ["template", "foo"],
        volumes={"/work": "/app", "/work/chart": "/chart"},
    )

    assert cmd == [
        "docker",
        "run",
        "--rm",
        "-v",
        "/work:/app",
        "-v",
        "/work/chart:/chart",
        "alpine/helm:3.4.2",
        "template",
        "foo",
    ]


def test_validate_environment_checks_docker_version(logger, console):
    service = DockerRuntimeService(logger=logger, console=console)
    calls = []

    def fake_run_cmd(cmd, **kwargs):
        calls.append(cmd)
        return subprocess.CompletedProcess(cmd, 0, stdout="Docker version 24", stderr="")

    service.validate_environment(fake_run_cmd)

    assert calls == [["docker", "--version"]]
