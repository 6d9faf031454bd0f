from __future__ import annotations

import gradio as gr

from controllers.data_paths import DataPaths
from controllers.pipeline import run_pipeline_for_ui
from controllers.settings import load_vectorizer_config
from views.components.file_select import file_selector
from views.config import list_skeletons


def render(*, data_paths: DataPaths) -> None:
    """Render the skeleton -> polyline tab."""

    defaults = load_vectorizer_config()

    gr.Markdown(
        "Pick a skeleton from the data folder or upload one (white one-pixel-wide "
        "curves on black). The vectorizer splits it into edges, orders each edge's "
        "pixels and simplifies them into polylines."
    )

    with gr.Row():
        with gr.Column(scale=1):
            skeleton_dropdown, _ = file_selector(
                label="Skeleton",
                choices_provider=lambda: list_skeletons(data_paths),
            )
            upload_input = gr.File(
                label="...or upload a skeleton",
                file_types=["image"],
                file_count="single",
            )
            base_name_input = gr.Textbox(
                label="Artifact basename (optional)",
                placeholder="defaults to the skeleton name",
            )
            smoothness_input = gr.Slider(
                label="Smoothness (Douglas-Peucker tolerance, px)",
                value=defaults.smoothness,
                minimum=0.0,
                maximum=10.0,
                step=0.1,
            )
            with gr.Accordion("Advanced", open=False):
                sensitivity_input = gr.Slider(
                    label="Loop corner sensitivity",
                    value=defaults.corner_sensitivity,
                    minimum=0.01,
                    maximum=1.0,
                    step=0.01,
                )
                separation_input = gr.Number(
                    label="Loop corner separation (px)",
                    value=defaults.corner_min_distance,
                    precision=0,
                    minimum=1,
                )
                budget_input = gr.Number(
                    label="Path search time budget per edge (s)",
                    value=defaults.search_time_budget,
                    minimum=0.0,
                )
                color_input = gr.Radio(
                    label="Preview colors",
                    choices=["kind", "index"],
                    value="kind",
                )
            run_button = gr.Button("Vectorize", variant="primary")
        with gr.Column(scale=1):
            preview_output = gr.Image(label="Polyline Overlay")
            graph_output = gr.Image(label="Vertex Graph")
            status_output = gr.Markdown(value="")
            summary_output = gr.JSON(label="Summary")
            payload_output = gr.JSON(label="Polylines")

    def _run(
        skeleton_name: str | None,
        uploaded: str | None,
        base_name: str,
        smoothness: float,
        sensitivity: float,
        separation: float,
        budget: float,
        color_by: str,
    ):
        if uploaded:
            source = uploaded
        elif skeleton_name:
            source = data_paths.skeleton_dir / skeleton_name
        else:
            source = None
        try:
            result = run_pipeline_for_ui(
                source,
                base_name=base_name,
                smoothness=smoothness,
                corner_sensitivity=sensitivity,
                corner_min_distance=separation,
                search_time_budget=budget,
                color_by=color_by,
                data_paths=data_paths,
            )
        except (FileNotFoundError, ValueError) as exc:
            raise gr.Error(str(exc)) from exc

        return (
            result.preview_image,
            result.graph_image,
            result.status_message,
            result.summary,
            result.polyline_payload,
        )

    run_button.click(
        fn=_run,
        inputs=[
            skeleton_dropdown,
            upload_input,
            base_name_input,
            smoothness_input,
            sensitivity_input,
            separation_input,
            budget_input,
            color_input,
        ],
        outputs=[preview_output, graph_output, status_output, summary_output, payload_output],
        show_progress=True,
    )


__all__ = ["render"]
