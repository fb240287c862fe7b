import logging
from functools import partial

import gradio as gr

from tour_schema_exporter.breadcrumbs import DEFAULT_SOURCE_PATH
from tour_schema_exporter.filters import ALL_COLUMNS
from tour_schema_exporter.flattening import DEFAULT_SEPARATOR, ArrayRule
from tour_schema_exporter.handlers_single import (
    BREADCRUMB_LEVELS,
    breadcrumb_level_handler,
    breadcrumb_source_handler,
    column_choices_update,
    export_data_handler,
    load_documents_handler,
    persist_settings_handler,
    preview_handler,
    toggle_field_handler,
)
from tour_schema_exporter.schema_utils import build_tree_from_schema
from tour_schema_exporter.settings import JsonFileStore, load_settings

SETTINGS_STORE = JsonFileStore()
INITIAL_SETTINGS = load_settings(SETTINGS_STORE)

# --- UI Definition ---
with gr.Blocks(title="Tour Schema Exporter") as demo:
    gr.Markdown("# Tour Schema Exporter")
    gr.Markdown("Upload tour JSON files, pick fields from the merged schema, filter, and export one row per tour.")

    # State
    documents_state = gr.State()
    schema_state = gr.State()
    selected_fields_state = gr.State(value=[])
    breadcrumb_tree_state = gr.State(value={})

    with gr.Row():
        # Left Panel: Input & Schema
        with gr.Column(scale=1):
            gr.Markdown("### 1. Import")
            file_input = gr.File(label="Upload JSON Files", file_types=[".json"], file_count="multiple")
            status_msg = gr.Textbox(label="Status", interactive=False)
            document_count = gr.Textbox(label="Document Count", interactive=False)

            gr.Markdown("### 2. Select Fields")

            @gr.render(inputs=[schema_state, selected_fields_state], triggers=[schema_state.change])
            def render_schema(tree, selected):
                if tree is None:
                    gr.Markdown("No data loaded.")
                    return

                selected = set(selected or [])
                nested = build_tree_from_schema(tree)

                def add_checkbox(label, full_path):
                    cb = gr.Checkbox(label=label, value=full_path in selected)
                    cb.change(
                        fn=partial(toggle_field_handler, full_path, tree=tree, store=SETTINGS_STORE),
                        inputs=[cb, selected_fields_state],
                        outputs=[selected_fields_state],
                    )

                def recursive_ui(node, label):
                    if isinstance(node, dict):
                        with gr.Accordion(label, open=False):
                            for k, v in node.items():
                                recursive_ui(v, k)
                    else:
                        add_checkbox(label, node)

                for k, v in nested.items():
                    recursive_ui(v, k)

        # Right Panel: Output Builder
        with gr.Column(scale=1):
            gr.Markdown("### 3. Output Builder")
            output_format = gr.Radio(
                choices=["csv", "json"], value=INITIAL_SETTINGS.export_format, label="Output Format"
            )
            array_rule = gr.Radio(
                choices=[rule.value for rule in ArrayRule],
                value=INITIAL_SETTINGS.array_rule.value,
                label="Array Aggregation Rule",
            )
            separator = gr.Textbox(label="Join Separator", value=DEFAULT_SEPARATOR)

            gr.Markdown("### 4. Filter")
            filter_type = gr.Radio(choices=["keyword", "breadcrumb"], value="keyword", label="Filter Type")

            with gr.Group():
                keyword = gr.Textbox(label="Keyword", placeholder="Enter keyword...")
                with gr.Row():
                    filter_column = gr.Dropdown(label="Column", choices=[ALL_COLUMNS], value=ALL_COLUMNS)
                    match_mode = gr.Radio(choices=["contains", "equals"], value="contains", label="Match")
                    case_sensitive = gr.Checkbox(label="Case Sensitive", value=False)

            with gr.Group():
                breadcrumb_source = gr.Textbox(label="Breadcrumb Source Path", value=DEFAULT_SOURCE_PATH)
                with gr.Row():
                    breadcrumb_levels = [
                        gr.Dropdown(label=f"Level {i + 1}", choices=[], value=None, interactive=False)
                        for i in range(BREADCRUMB_LEVELS)
                    ]

            gr.Markdown("### 5. Export")
            output_filename = gr.Textbox(label="Output Filename (optional)", placeholder="tour_export")
            load_preview_btn = gr.Button("Load Preview")
            export_btn = gr.Button("Export Data", variant="primary")
            download_output = gr.File(label="Download Result")
            failure_output = gr.File(label="Failure Log")
            single_preview = gr.JSON(label="Preview (first 3 rows)")

    filter_inputs = [filter_type, keyword, filter_column, match_mode, case_sensitive, breadcrumb_source] + breadcrumb_levels

    file_input.upload(
        fn=partial(load_documents_handler, store=SETTINGS_STORE),
        inputs=[file_input],
        outputs=[documents_state, schema_state, selected_fields_state, status_msg, document_count, filter_column, single_preview],
    ).then(
        fn=breadcrumb_source_handler,
        inputs=[documents_state, breadcrumb_source],
        outputs=[breadcrumb_tree_state] + breadcrumb_levels,
    )

    selected_fields_state.change(
        fn=column_choices_update,
        inputs=[selected_fields_state, filter_column],
        outputs=[filter_column],
    )

    breadcrumb_source.submit(
        fn=breadcrumb_source_handler,
        inputs=[documents_state, breadcrumb_source],
        outputs=[breadcrumb_tree_state] + breadcrumb_levels,
    )

    for level_dropdown in breadcrumb_levels[:-1]:
        level_dropdown.change(
            fn=breadcrumb_level_handler,
            inputs=[breadcrumb_tree_state] + breadcrumb_levels,
            outputs=breadcrumb_levels[1:],
        )

    for control in (array_rule, output_format):
        control.change(
            fn=partial(persist_settings_handler, store=SETTINGS_STORE),
            inputs=[array_rule, output_format],
            outputs=None,
        )

    load_preview_btn.click(
        fn=preview_handler,
        inputs=[documents_state, selected_fields_state, array_rule, separator] + filter_inputs,
        outputs=[single_preview],
    )

    export_btn.click(
        fn=partial(export_data_handler, store=SETTINGS_STORE),
        inputs=[documents_state, selected_fields_state, array_rule, separator, output_format, output_filename] + filter_inputs,
        outputs=[download_output, failure_output, status_msg],
    )

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    demo.launch()
