"""Pytest fixtures and utilities for provisioner tests."""

from pathlib import Path
from typing import Callable

import pytest

from provisioner.config import Settings
from provisioner.errors import ToolFailure
from provisioner.execution import ToolResult
from provisioner.installer import PackageInstaller
from provisioner.prompts import Decisions, PromptGate
from provisioner.reporting import Reporter
from provisioner.tasks import TaskContext


class FakeInvoker:
    """Stand-in for ToolInvoker that never starts a process.

    Package presence is simulated: `dpkg -l`, `snap list` and `pip show`
    answer from the installed sets, and a successful install adds the
    package to them. Other queries answer from `responses`, keyed by argv
    prefix (longest prefix wins); unmatched queries exit 1. Invocations whose
    argv starts with a prefix in `failing` raise ToolFailure.
    """

    def __init__(
        self,
        dry_run: bool = False,
        debug: bool = False,
        default_timeout=None,
        installed=None,
        snaps=None,
        pips=None,
        responses=None,
        failing=None,
        hooks=None,
    ):
        self.dry_run = dry_run
        self.debug = debug
        self.default_timeout = default_timeout
        self.installed = set(installed or ())
        self.snaps = set(snaps or ())
        self.pips = set(pips or ())
        self.responses: dict[tuple, ToolResult | str] = dict(responses or {})
        self.failing = {tuple(p) for p in (failing or ())}
        self.hooks: dict[tuple, Callable] = dict(hooks or {})
        self.history: list[list[str]] = []
        self.queries: list[list[str]] = []
        self.privileged: list[list[str]] = []
        self.inputs: dict[str, str] = {}
        self.timeouts: dict[str, float | None] = {}

    @staticmethod
    def _match(argv, table):
        for key in sorted(table, key=len, reverse=True):
            if tuple(argv[: len(key)]) == key:
                return key
        return None

    async def query(self, argv, timeout=None, cwd=None) -> ToolResult:
        self.queries.append(list(argv))
        self.timeouts[" ".join(argv)] = timeout

        if argv[:2] == ["dpkg", "-l"]:
            name = argv[2]
            if name in self.installed:
                return ToolResult(argv, 0, f"ii  {name}:amd64  1.0  amd64  fake package")
            return ToolResult(argv, 1, f"dpkg-query: no packages found matching {name}")
        if argv[:2] == ["snap", "list"]:
            name = argv[2]
            if name in self.snaps:
                return ToolResult(argv, 0, f"Name  Version  Rev\n{name}  1.0  1")
            return ToolResult(argv, 1, "error: no matching snaps installed")
        if argv[:4] == ["python3", "-m", "pip", "show"]:
            return ToolResult(argv, 0 if argv[4] in self.pips else 1, "")

        key = self._match(argv, self.responses)
        if key is None:
            return ToolResult(argv, 1, "")
        response = self.responses[key]
        if isinstance(response, str):
            return ToolResult(argv, 0, response)
        return response

    async def invoke(
        self,
        argv,
        timeout=None,
        cwd=None,
        input=None,
        privileged=False,
        stream=False,
    ) -> ToolResult:
        self.history.append(list(argv))
        self.timeouts[" ".join(argv)] = timeout
        if privileged:
            self.privileged.append(list(argv))
        if input is not None:
            self.inputs[" ".join(argv)] = input

        if self.dry_run:
            return ToolResult(argv, 0, "")

        if self._match(argv, {key: None for key in self.failing}) is not None:
            raise ToolFailure(argv, 100, "E: simulated failure")

        hook = self._match(argv, self.hooks)
        if hook is not None:
            self.hooks[hook](argv, cwd)

        if argv[:2] == ["apt-get", "install"]:
            self.installed.add(argv[-1])
        elif argv[:2] == ["snap", "install"]:
            self.snaps.add(argv[-1])
        elif argv[:2] == ["pip3", "install"]:
            self.pips.add(argv[-1])
        elif argv[:2] == ["apt-get", "remove"]:
            self.installed.discard(argv[-1])
        return ToolResult(argv, 0, "")

    def commands(self) -> list[str]:
        return [" ".join(argv) for argv in self.history]

    def ran(self, *prefix: str) -> bool:
        return any(tuple(argv[: len(prefix)]) == prefix for argv in self.history)


class ScriptedReader:
    """Answers prompts from a list; raises EOFError once exhausted.

    An exception in the list is raised in place of an answer.
    """

    def __init__(self, answers=()):
        self.answers = list(answers)
        self.questions: list[str] = []

    def __call__(self, question: str) -> str:
        self.questions.append(question)
        if not self.answers:
            raise EOFError
        answer = self.answers.pop(0)
        if isinstance(answer, BaseException):
            raise answer
        return answer


@pytest.fixture
def reporter() -> Reporter:
    return Reporter(color=False)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(work_dir=tmp_path, jobs=2)


@pytest.fixture
def invoker() -> FakeInvoker:
    return FakeInvoker()


@pytest.fixture
def make_context(settings, reporter):
    """Build a TaskContext around a FakeInvoker.

    Keyword arguments: invoker, answers (preset), assume_yes, replies
    (typed prompt answers). Returns (ctx, reader).
    """

    def _make(invoker=None, answers=None, assume_yes=False, replies=()):
        invoker = invoker or FakeInvoker()
        reader = ScriptedReader(replies)
        decisions = Decisions(
            gate=PromptGate(reader=reader), preset=answers, assume_yes=assume_yes
        )
        installer = PackageInstaller(invoker, decisions, reporter)
        ctx = TaskContext(
            settings=settings,
            invoker=invoker,
            installer=installer,
            decisions=decisions,
            reporter=reporter,
        )
        return ctx, reader

    return _make
