from __future__ import annotations

import logging
import os
from functools import partial
from typing import Any, Iterator

import gradio as gr

from .class_codes import ClassCodeEntry, MRSL_CLASS_CODES, load_class_codes
from .config import Settings, load_settings
from .extraction import extract
from .intake import load_upload
from .llm import GeminiClient
from .review import FIELD_SPECS, class_code_choices, review_table
from .session import (
    Notice,
    Orchestrator,
    Phase,
    SessionState,
    begin_submission,
    clear,
    edit_field,
    revert_edits,
)
from .utils import setup_logging
from .webhook import submit

logger = logging.getLogger(__name__)

_STATUS = {
    Phase.IDLE: "No document processed yet.",
    Phase.EXTRACTING: "Processing... the document is being analysed.",
    Phase.EXTRACTED: "Review all fields before submitting.",
    Phase.SUBMITTING: "Submitting...",
    Phase.SUBMITTED: "Submitted. You can edit and submit again, or clear to start over.",
}


def build_orchestrator(settings: Settings, codes: tuple[ClassCodeEntry, ...] = MRSL_CLASS_CODES) -> Orchestrator:
    client = GeminiClient(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        host=settings.gemini_host,
        timeout_s=settings.gemini_timeout_s,
    )
    return Orchestrator(
        extractor=partial(extract, settings=settings, client=client, codes=codes),
        submitter=partial(submit, settings=settings),
    )


def _toast(notice: Notice | None) -> None:
    if notice is None:
        return
    if notice.level == "success":
        gr.Info(notice.message)
    else:
        gr.Warning(notice.message)


def _file_card(state: SessionState) -> str:
    f = state.selected_file
    if f is None:
        return ""
    suffix = " · **Processing...**" if state.is_extracting else ""
    return f"**{f.name}** · {f.size_mb:.2f} MB{suffix}"


def render(state: SessionState, codes: tuple[ClassCodeEntry, ...]) -> list[Any]:
    """Component updates for every output after the state itself, in build_app order."""
    rec = state.current_record
    has_file = state.selected_file is not None
    busy = state.is_extracting or state.is_submitting

    updates: list[Any] = [
        gr.update(value=None, visible=not has_file),                        # file input
        gr.update(value=_file_card(state), visible=has_file),               # file card
        gr.update(interactive=has_file and not busy),                       # clear button
        gr.update(value=_STATUS[state.phase]),                              # status
        gr.update(visible=rec is not None),                                 # review group
    ]

    class_code = rec.class_code if rec else None
    updates.append(gr.update(choices=class_code_choices(class_code, codes), value=class_code, interactive=not busy))
    for spec in FIELD_SPECS[1:]:
        updates.append(gr.update(value=(rec.get(spec.key) if rec else None) or "", interactive=not busy))

    updates.append(
        gr.update(
            value="Submitting..." if state.is_submitting else "Submit to Webhook",
            interactive=rec is not None and not busy,
        )
    )
    updates.append(gr.update(interactive=rec is not None and not busy))    # revert button
    updates.append(review_table(state.extracted_record, rec))
    return updates


def handle_upload(
    orchestrator: Orchestrator,
    path: str | None,
    st: SessionState,
    codes: tuple[ClassCodeEntry, ...] = MRSL_CLASS_CODES,
) -> Iterator[list[Any]]:
    """Show the processing state at once, then the extracted (or reset) form."""
    if not path:
        yield [st, *render(st, codes)]
        return
    selected = orchestrator.on_file_selected(st, load_upload(path))
    yield [selected, *render(selected, codes)]
    if selected is st:
        return
    final, notice = orchestrator.run_extraction(selected)
    _toast(notice)
    yield [final, *render(final, codes)]


def handle_submit(
    orchestrator: Orchestrator,
    st: SessionState,
    codes: tuple[ClassCodeEntry, ...] = MRSL_CLASS_CODES,
) -> Iterator[list[Any]]:
    pending = begin_submission(st)
    if pending is st:
        yield [st, *render(st, codes)]
        return
    yield [pending, *render(pending, codes)]
    final, notice = orchestrator.on_submit(st)
    _toast(notice)
    yield [final, *render(final, codes)]


def build_app(settings: Settings, codes: tuple[ClassCodeEntry, ...] = MRSL_CLASS_CODES) -> gr.Blocks:
    orchestrator = build_orchestrator(settings, codes)
    draw = partial(render, codes=codes)

    with gr.Blocks(title="MRSL Insurance Document Processor") as demo:
        gr.Markdown("# MRSL Insurance Document Processor")
        gr.Markdown("Upload an insurance PDF → review the extracted fields → submit to the webhook.")

        state = gr.State(SessionState())

        gr.Markdown("### 1. Upload Document")
        file_in = gr.File(label="Click to upload or drag and drop (PDF only)", file_types=[".pdf"], type="filepath")
        with gr.Row():
            file_card = gr.Markdown(visible=False)
            clear_btn = gr.Button("Clear", interactive=False, size="sm")
        status_md = gr.Markdown(_STATUS[Phase.IDLE])

        with gr.Group(visible=False) as review_group:
            gr.Markdown("### 2. Review & Edit Data")
            class_dd = gr.Dropdown(
                label=FIELD_SPECS[0].label,
                info=FIELD_SPECS[0].placeholder,
                choices=class_code_choices(None, codes),
                value=None,
                allow_custom_value=True,
            )
            boxes: list[gr.Textbox] = []
            with gr.Row():
                boxes.append(gr.Textbox(label=FIELD_SPECS[1].label, placeholder=FIELD_SPECS[1].placeholder))
            with gr.Row():
                for spec in FIELD_SPECS[2:5]:
                    boxes.append(gr.Textbox(label=spec.label, placeholder=spec.placeholder))
            with gr.Row():
                for spec in FIELD_SPECS[5:]:
                    boxes.append(gr.Textbox(label=spec.label, placeholder=spec.placeholder))

            with gr.Row():
                submit_btn = gr.Button("Submit to Webhook", variant="primary")
                revert_btn = gr.Button("Revert to extracted values")
            gr.Markdown("Please review all fields before submitting.")
            table_out = gr.Dataframe(label="Extracted vs. current", interactive=False, wrap=True)

        outputs = [
            state, file_in, file_card, clear_btn, status_md, review_group,
            class_dd, *boxes, submit_btn, revert_btn, table_out,
        ]

        def on_upload(path: str | None, st: SessionState) -> Iterator[list[Any]]:
            yield from handle_upload(orchestrator, path, st, codes)

        def on_submit(st: SessionState) -> Iterator[list[Any]]:
            yield from handle_submit(orchestrator, st, codes)

        def on_edit(key: str, value: str | None, st: SessionState) -> tuple[SessionState, Any]:
            new = edit_field(st, key, value)
            return new, review_table(new.extracted_record, new.current_record)

        def on_clear(st: SessionState) -> list[Any]:
            new = clear(st)
            return [new, *draw(new)]

        def on_revert(st: SessionState) -> list[Any]:
            new = revert_edits(st)
            return [new, *draw(new)]

        file_in.upload(fn=on_upload, inputs=[file_in, state], outputs=outputs)
        submit_btn.click(fn=on_submit, inputs=[state], outputs=outputs)
        clear_btn.click(fn=on_clear, inputs=[state], outputs=outputs)
        revert_btn.click(fn=on_revert, inputs=[state], outputs=outputs)

        # .input fires on user edits only, not on the programmatic updates above
        class_dd.input(fn=partial(on_edit, FIELD_SPECS[0].key), inputs=[class_dd, state], outputs=[state, table_out])
        for spec, box in zip(FIELD_SPECS[1:], boxes):
            box.input(fn=partial(on_edit, spec.key), inputs=[box, state], outputs=[state, table_out])

    return demo


def main() -> None:
    settings = load_settings()
    setup_logging(settings.log_level)
    codes = load_class_codes(settings.class_codes_path)
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; extraction will fail until it is provided")

    demo = build_app(settings, codes)
    # IMPORTANT for Docker: bind to 0.0.0.0
    server_name = os.getenv("GRADIO_SERVER_NAME", "0.0.0.0")
    server_port = int(os.getenv("GRADIO_SERVER_PORT", "7860"))
    demo.launch(server_name=server_name, server_port=server_port)


if __name__ == "__main__":
    main()
