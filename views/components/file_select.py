from __future__ import annotations

from collections.abc import Callable

import gradio as gr


ChoicesProvider = Callable[[], list[str]]


def file_selector(
    *,
    label: str,
    choices_provider: ChoicesProvider,
    refresh_label: str = "Refresh",
) -> tuple[gr.Dropdown, gr.Button]:
    """Dropdown of existing files plus a button that re-lists them."""

    choices = choices_provider()
    dropdown = gr.Dropdown(
        label=label,
        choices=choices,
        value=choices[0] if choices else None,
        allow_custom_value=False,
    )
    refresh_button = gr.Button(refresh_label, size="sm")

    def _refresh(current_value: str | None):
        fresh = choices_provider()
        value = current_value if current_value in fresh else (fresh[0] if fresh else None)
        return gr.update(choices=fresh, value=value)

    refresh_button.click(fn=_refresh, inputs=[dropdown], outputs=[dropdown])
    return dropdown, refresh_button


__all__ = ["file_selector"]
