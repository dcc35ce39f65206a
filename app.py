import gradio as gr

from crm_data_packager.handlers import (
    extract_export_handler,
    pack_folder_handler,
    summarize_export,
)
from crm_data_packager.log_config import setup_logging

# --- UI Definition ---
with gr.Blocks(title="CRM Data Packager") as demo:
    gr.Markdown("# CRM Data Packager")
    gr.Markdown("Extract a data export into a folder tree you can diff and edit, then pack it back into a data export.")

    with gr.Tab("Extract"):
        with gr.Row():
            # Left Panel: Input
            with gr.Column(scale=1):
                gr.Markdown("### 1. Import")
                export_input = gr.File(label="Upload Data Export", file_types=[".zip"])
                settings_input = gr.File(label="Settings File (optional)", file_types=[".json"])
                write_yaml = gr.Checkbox(label="Also write a .yaml rendering of each record", value=False)
                extract_status = gr.Textbox(label="Status", interactive=False)

            # Right Panel: Output
            with gr.Column(scale=1):
                gr.Markdown("### 2. Records")
                export_preview = gr.JSON(label="Records per entity")

                gr.Markdown("### 3. Extract")
                extract_btn = gr.Button("Extract", variant="primary")
                extract_download = gr.File(label="Download Extracted Folder")

        export_input.upload(
            fn=summarize_export,
            inputs=[export_input],
            outputs=[export_preview, extract_status],
        )

        extract_btn.click(
            fn=extract_export_handler,
            inputs=[export_input, settings_input, write_yaml],
            outputs=[extract_download, extract_status],
        )

    with gr.Tab("Pack"):
        gr.Markdown("### 1. Upload the extracted folder as a .zip")
        folder_input = gr.File(label="Extracted Folder", file_types=[".zip"])
        packed_filename = gr.Textbox(label="Packed Output Filename", placeholder="data.zip")

        gr.Markdown("### 2. Pack & export")
        pack_btn = gr.Button("Pack & Download", variant="primary")
        pack_download = gr.File(label="Packed Data Export")
        pack_status = gr.Textbox(label="Pack Status", interactive=False)

        pack_btn.click(
            fn=pack_folder_handler,
            inputs=[folder_input, packed_filename],
            outputs=[pack_download, pack_status],
        )

if __name__ == "__main__":
    setup_logging()
    demo.launch()
