"""Yes/no confirmation and the decisions threaded through a run."""

import logging
import sys
from dataclasses import dataclass
from typing import Callable

import click

_logging = logging.getLogger(__name__)

ACCEPT_ANSWERS = frozenset({"y", "yes"})


def parse_answer(text: str | None) -> bool:
    """Return True only for an explicit yes; anything else declines."""
    if text is None:
        return False
    return text.strip().lower() in ACCEPT_ANSWERS


def _read_line(question: str) -> str:
    # Not click.prompt: it turns both EOF and Ctrl-C into Abort.
    click.echo(click.style(f"{question} (y/n)", fg="cyan") + ": ", nl=False)
    return click.termui.visible_prompt_func("")


class PromptGate:
    """Asks a single yes/no question per call.

    One line is read per question. There is no retry on unexpected input; it
    counts as no, as does end of input. An interrupt propagates.
    """

    def __init__(self, reader: Callable[[str], str] = _read_line):
        self._reader = reader

    def confirm(self, question: str) -> bool:
        try:
            answer = self._reader(question)
        except EOFError:
            _logging.debug(f"No input for '{question}', treating as no")
            return False
        except click.Abort:
            raise KeyboardInterrupt from None
        return parse_answer(answer)


@dataclass(frozen=True)
class Decision:
    key: str
    question: str
    unattended: bool = True


PROCEED = Decision("proceed", "Do you want to proceed?")
REMOVE_CONFLICTS = Decision("remove_conflicts", "Remove conflicting Docker-related packages?")
REBOOT = Decision("reboot", "Reboot now to apply the group changes?", unattended=False)
OH_MY_BASH = Decision("oh_my_bash", "Run the Oh My Bash remote install script?")
CUDA = Decision("cuda", "Enable CUDA support?", unattended=False)
CUDA_DEPS = Decision("cuda_deps", "Install additional dependencies for CUDA support?")
FFMPEG = Decision(
    "ffmpeg",
    "Set WITH_FFMPEG=ON? This may cause errors if required packages are missing.",
)
INSTALL_OPENCV = Decision("install", "Install OpenCV system-wide with 'make install'?")


def optional_package(name: str) -> Decision:
    return Decision(f"package:{name}", f"Do you want to install {name}?")


class Decisions:
    """Resolves decisions once per run.

    Resolution order: a preset answer for the key, then the decision's
    unattended default when running with --yes, then an interactive prompt.
    """

    def __init__(
        self,
        gate: PromptGate | None = None,
        preset: dict[str, bool] | None = None,
        assume_yes: bool = False,
    ):
        self.gate = gate or PromptGate()
        self.preset = dict(preset or {})
        self.assume_yes = assume_yes
        self._answers: dict[str, bool] = {}

    @property
    def interactive(self) -> bool:
        return not self.assume_yes

    def resolve(self, decision: Decision) -> bool:
        if decision.key in self._answers:
            return self._answers[decision.key]

        if decision.key in self.preset:
            answer = self.preset[decision.key]
            _logging.debug(f"{decision.key}: preset answer {answer}")
        elif self.assume_yes:
            answer = decision.unattended
            _logging.debug(f"{decision.key}: unattended answer {answer}")
        else:
            answer = self.gate.confirm(decision.question)

        self._answers[decision.key] = answer
        return answer

    def answered(self) -> dict[str, bool]:
        return dict(self._answers)


def fatal_pause(decisions: Decisions) -> None:
    """Hold the terminal open after a fatal error in interactive runs."""
    if decisions.interactive and sys.stdin.isatty():
        click.pause(click.style("Press any key to exit...", fg="yellow"))


__all__ = [
    "parse_answer",
    "PromptGate",
    "Decision",
    "Decisions",
    "optional_package",
    "fatal_pause",
    "PROCEED",
    "REMOVE_CONFLICTS",
    "REBOOT",
    "OH_MY_BASH",
    "CUDA",
    "CUDA_DEPS",
    "FFMPEG",
    "INSTALL_OPENCV",
]
