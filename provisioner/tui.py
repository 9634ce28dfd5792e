"""Interactive task selection."""

import sys

from prompt_toolkit.application import Application
from prompt_toolkit.filters import Condition
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import (
    ConditionalContainer,
    DynamicContainer,
    Float,
    FloatContainer,
    HSplit,
    Layout,
    Window,
)
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.styles import Style
from prompt_toolkit.widgets import Button, Dialog, Label

from .installer import ToolStatus, get_all_tools


def task_tool_lines(task_name: str, statuses: dict[str, ToolStatus]) -> list[str]:
    """One line per host tool the task relies on."""
    lines = []
    for name, tool in get_all_tools().items():
        if task_name not in tool.used_by:
            continue
        status = statuses.get(name)
        if status is None or not status.available:
            lines.append(f"❌ {name}: {tool.install_hint}")
        elif not status.version_satisfied:
            lines.append(f"⚠️ {name} {status.version or ''} (needs >= {tool.min_version})")
        else:
            lines.append(f"✅ {name} {status.version or ''}".rstrip())
    return lines


def format_task_choice(name: str, title: str, statuses: dict[str, ToolStatus]) -> str:
    lines = task_tool_lines(name, statuses)
    missing = sum(1 for line in lines if line.startswith("❌"))
    marker = "🟢" if missing == 0 else "🟡"
    suffix = f" ({missing} tool(s) missing)" if missing else ""
    return f"{marker} {name:<15} {title}{suffix}"


class _SelectorState:
    def __init__(self, default_index: int = 0):
        self.index = default_index
        self.show_modal = False
        self.result: str | None = None
        self.empty_label = Label("")


def select_task_interactive(
    titles: dict[str, str],
    statuses: dict[str, ToolStatus],
    default: str | None = None,
) -> str | None:
    """Let the user pick a task with the arrow keys.

    'u' opens a dialog with the host tools the highlighted task needs.

    Returns:
        Selected task name, or None if the user cancelled
    """
    if not sys.stdin.isatty():
        raise RuntimeError("Interactive task selector requires a TTY")

    names = list(titles)
    if not names:
        return None

    state = _SelectorState(names.index(default) if default in names else 0)
    kb = KeyBindings()

    def _close_modal():
        state.show_modal = False

    @kb.add("up")
    def _(event):
        if not state.show_modal:
            state.index = (state.index - 1) % len(names)

    @kb.add("down")
    def _(event):
        if not state.show_modal:
            state.index = (state.index + 1) % len(names)

    @kb.add("enter", eager=True)
    def _(event):
        if state.show_modal:
            _close_modal()
        else:
            state.result = names[state.index]
            event.app.exit()

    @kb.add("u")
    def _(event):
        state.show_modal = True

    @kb.add("escape")
    @kb.add("c")
    def _(event):
        if state.show_modal:
            _close_modal()
        else:
            state.result = None
            event.app.exit()

    def get_list_text():
        tokens = [("", "\n")]
        for i, name in enumerate(names):
            label = format_task_choice(name, titles[name], statuses)
            if i == state.index:
                tokens.append(("class:selected", f" > {label}\n"))
            else:
                tokens.append(("", f"   {label}\n"))
        tokens.append(("", "\n"))
        tokens.append(
            ("class:help", " Use ↑↓ to navigate, Enter to select, 'u' for tools, 'c' to cancel")
        )
        return tokens

    def get_modal_content():
        if not state.show_modal:
            return state.empty_label
        name = names[state.index]
        lines = task_tool_lines(name, statuses) or ["No host tools required."]
        return Label(text=f"Host tools for {name}:\n\n" + "\n".join(lines))

    style = Style.from_dict(
        {
            "selected": "fg:#00ffff bold",
            "help": "fg:#888888",
            "dialog": "bg:#333333",
            "dialog.body": "bg:#222222 fg:#ffffff",
            "dialog frame.label": "fg:#00ffff bold",
        }
    )

    layout = FloatContainer(
        content=HSplit(
            [
                Window(
                    content=FormattedTextControl([("class:header", "Select a provisioning task:")]),
                    height=1,
                ),
                Window(content=FormattedTextControl(get_list_text)),
            ]
        ),
        floats=[
            Float(
                content=ConditionalContainer(
                    content=Dialog(
                        title="Host Tools",
                        body=DynamicContainer(get_modal_content),
                        buttons=[Button(text="Close", handler=_close_modal)],
                    ),
                    filter=Condition(lambda: state.show_modal),
                )
            )
        ],
    )

    app = Application(layout=Layout(layout), key_bindings=kb, style=style, full_screen=False)
    app.run()
    return state.result


__all__ = ["select_task_interactive", "format_task_choice", "task_tool_lines"]
