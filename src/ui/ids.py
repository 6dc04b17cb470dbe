"""Widget IDs for the review screen."""


def css(*widget_ids: str) -> str:
    """Selector for a widget, optionally nested under its containers.

    css(MAIN_CONTENT, PLAN_LIST) matches '#main-content #plan-list'.
    """
    return " ".join(f"#{widget_id}" for widget_id in widget_ids)


# Container IDs
HEADER_CONTAINER = "header-container"
HEADER_TITLE = "header-title"
MAIN_CONTENT = "main-content"
FOOTER_BUTTONS = "footer-buttons"
STATUS_BAR = "status-bar"

# Plan sections
PLAN_LIST = "plan-list"
FSTAB_PREVIEW = "fstab-preview"
WARNINGS = "warnings"

# Buttons
ASSEMBLE_BTN = "assemble-btn"
CANCEL_BTN = "cancel-btn"
