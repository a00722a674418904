import subprocess

import pytest

from fluxstage.services.context import ContextResolver


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None

    def info(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


class DummyConsole:
    def print(self, *_args, **_kwargs):
        return None


class RecordingRunner:
    """Stands in for ``CommandRunner.run`` and records every command."""

    def __init__(self, stdout="", returncodes=None):
        self.stdout = stdout
        self.returncodes = returncodes or {}
        self.calls = []

    def __call__(self, cmd, check=True, capture_output=False, cwd=None, show_output=False):
        self.calls.append({"cmd": list(cmd), "cwd": cwd, "check": check})
        returncode = 0
        for marker, code in self.returncodes.items():
            if marker in cmd:
                returncode = code
        return subprocess.CompletedProcess(cmd, returncode, stdout=self.stdout, stderr="")

    def commands(self):
        return [call["cmd"] for call in self.calls]


@pytest.fixture
def logger():
    return DummyLogger()


@pytest.fixture
def console():
    return DummyConsole()


@pytest.fixture
def dev_context(logger):
    return ContextResolver(logger).resolve("foo", "abc1234", "develop")


@pytest.fixture
def prod_context(logger):
    return ContextResolver(logger).resolve("foo", "abc1234", "main")


@pytest.fixture
def make_runner():
    return RecordingRunner
