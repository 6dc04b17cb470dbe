"""Review screen shown before assembling the root filesystem."""

import logging

from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, VerticalScroll
from textual.widgets import Button, Label, Static

from model import MountEntry, MountSpec, describe
from ui.ids import css
import ui.ids as ids

log = logging.getLogger(__name__)

APP_CSS = """
#header-container {
    height: 3;
    padding: 0 1;
}

#header-title {
    width: 1fr;
    text-style: bold;
}

#main-content {
    height: 1fr;
    padding: 0 1;
}

.section-label {
    margin-top: 1;
    text-style: bold;
}

#warnings {
    color: $warning;
}

#footer-buttons {
    height: 3;
    align-horizontal: right;
}

#status-bar {
    width: 1fr;
    padding: 1 1 0 1;
}
"""


class AssemblyReviewApp(App):
    """Shows the mount plan and the fstab, and asks whether to go ahead."""

    TITLE = "rootfs-assemble"
    ENABLE_COMMAND_PALETTE = False
    CSS = APP_CSS

    BINDINGS = [
        Binding("enter", "assemble", "Assemble", show=True),
        Binding("escape", "cancel", "Cancel", show=True),
    ]

    def __init__(
        self,
        spec: MountSpec,
        entries: list[MountEntry],
        fstab_lines: list[str],
        warnings: list[str] | None = None,
    ) -> None:
        super().__init__()
        self.spec = spec
        self.entries = entries
        self.fstab_lines = fstab_lines
        self.warnings = warnings or []
        self.confirmed = False

    def compose(self) -> ComposeResult:
        log.debug(f"Reviewing {len(self.entries)} mounts for {self.spec.mount_point}")

        yield Horizontal(
            Label(
                f"Assemble {self.spec.mount_point} ({self.spec.root_permission}, overlay store {self.spec.overlay})",
                id=ids.HEADER_TITLE,
            ),
            id=ids.HEADER_CONTAINER,
        )

        with VerticalScroll(id=ids.MAIN_CONTENT):
            yield Label("Mounts", classes="section-label")
            plan = "\n".join(describe(entry) for entry in self.entries) or "(nothing to mount)"
            yield Static(plan, id=ids.PLAN_LIST, markup=False)
            yield Label("fstab", classes="section-label")
            yield Static("\n".join(self.fstab_lines), id=ids.FSTAB_PREVIEW, markup=False)
            if self.warnings:
                yield Label("Warnings", classes="section-label")
                yield Static("\n".join(self.warnings), id=ids.WARNINGS, markup=False)

        yield Horizontal(
            Static(f"{len(self.entries)} mounts, {len(self.fstab_lines)} fstab lines", id=ids.STATUS_BAR),
            Button("Assemble [Enter]", id=ids.ASSEMBLE_BTN, variant="success"),
            Button("Cancel [Esc]", id=ids.CANCEL_BTN, variant="error"),
            id=ids.FOOTER_BUTTONS,
        )

    def on_mount(self) -> None:
        self.query_one(css(ids.FOOTER_BUTTONS, ids.ASSEMBLE_BTN), Button).focus()

    @on(Button.Pressed, css(ids.ASSEMBLE_BTN))
    def on_assemble_pressed(self, event: Button.Pressed) -> None:
        self.action_assemble()

    @on(Button.Pressed, css(ids.CANCEL_BTN))
    def on_cancel_pressed(self, event: Button.Pressed) -> None:
        self.action_cancel()

    def action_assemble(self) -> None:
        self.confirmed = True
        self.exit()

    def action_cancel(self) -> None:
        self.confirmed = False
        self.exit()
