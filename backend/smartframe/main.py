"""Gradio web interface for SmartFrame."""

from __future__ import annotations

import atexit
import contextlib
import io
import json
import logging
import os
import sys
import tempfile
import traceback
import zipfile
from pathlib import Path

from .constants import RATIO_PRESETS
from .enums import CanvasStyle, Gravity, MaskStrategy
from .exceptions import SmartFrameError
from .logging_config import setup_logging
from .parser import load_image
from .pipeline import CropOptions, SmartFrameEngine
from .validators import validate_file_path

logger = logging.getLogger("smartframe.main")

# Optional Gradio import
try:
    import gradio as gr

    HAS_GRADIO = True
except ImportError:
    HAS_GRADIO = False
    logger.error("Gradio not installed. Run: pip install gradio")

# Temp file management
_temp_files: list[str] = []


def _cleanup_temp_files() -> None:
    """Clean up temporary files."""
    for f in _temp_files:
        with contextlib.suppress(OSError):
            os.unlink(f)
    _temp_files.clear()


atexit.register(_cleanup_temp_files)


def _write_zip(named_pngs: list[tuple[str, bytes]]) -> str:
    """Bundle PNGs into a temp ZIP file and return its path."""
    zip_buffer = io.BytesIO()
    with zipfile.ZipFile(zip_buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in named_pngs:
            zf.writestr(name, data)

    with tempfile.NamedTemporaryFile(delete=False, suffix=".zip") as tmp:
        tmp.write(zip_buffer.getvalue())
        _temp_files.append(tmp.name)
        return tmp.name


def create_interface(engine: SmartFrameEngine) -> object:
    """Create Gradio interface for SmartFrame."""
    with gr.Blocks(
        title="SmartFrame - Focal Point Crop & Outpaint",
        theme=gr.themes.Soft(),
        css="""
        .gradio-container { max-width: 98% !important; }
        .gr-button { font-weight: bold !important; }
        """,
    ) as interface:
        gr.Markdown(
            """
        # SmartFrame

        **Reframe photos to any aspect ratio without losing the subject.**

        - **Smart Crop** finds the focal point and crops or expands around it.
        - **Outpaint Prep** builds the canvas and mask for a generative fill service.
        - **Protect Result** pastes the original back over the generated image.
        """
        )

        with gr.Tab("Smart Crop"):
            with gr.Row():
                with gr.Column(scale=1):
                    crop_files = gr.File(
                        label="Images",
                        file_count="multiple",
                        file_types=[".png", ".jpg", ".jpeg", ".webp"],
                        type="filepath",
                    )
                    crop_ratio = gr.Radio(choices=list(RATIO_PRESETS), value="1:1", label="Aspect Ratio")
                    crop_width = gr.Number(value=1080, precision=0, label="Output Width")
                    sensitivity = gr.Slider(1, 10, value=5, step=1, label="Detection Sensitivity")
                    with gr.Row():
                        protect_faces = gr.Checkbox(value=True, label="Protect Faces")
                        dual_mode = gr.Checkbox(value=False, label="Dual Focal Points")
                        batch_consistency = gr.Checkbox(value=False, label="Batch Consistency")
                    crop_btn = gr.Button("SMART CROP", variant="primary", size="lg")

                with gr.Column(scale=1):
                    crop_gallery = gr.Gallery(label="Results", columns=2, height=400, object_fit="contain")
                    focal_preview = gr.Image(label="Focal Point (first image)", type="pil", height=300)
                    crop_zip = gr.File(label="Download All (ZIP)")
                    crop_status = gr.Markdown("**Status:** Ready")

        with gr.Tab("Outpaint Prep"):
            with gr.Row():
                with gr.Column(scale=1):
                    outpaint_input = gr.Image(label="Image", type="pil")
                    outpaint_ratio = gr.Radio(choices=list(RATIO_PRESETS), value="16:9", label="Target Ratio")
                    gravity = gr.Dropdown(choices=[g.value for g in Gravity], value="center", label="Gravity")
                    canvas_style = gr.Dropdown(
                        choices=[s.value for s in CanvasStyle], value="seeded", label="Canvas Style"
                    )
                    mask_strategy = gr.Dropdown(
                        choices=[m.value for m in MaskStrategy], value="conservative", label="Mask Strategy"
                    )
                    outpaint_btn = gr.Button("BUILD CANVAS", variant="primary")

                with gr.Column(scale=1):
                    outpaint_preview = gr.Image(label="Preview", type="pil", height=250)
                    with gr.Row():
                        outpaint_canvas = gr.Image(label="Canvas", type="pil", height=200)
                        outpaint_mask = gr.Image(label="Mask (black = keep)", type="pil", height=200)
                    layout_json = gr.JSON(label="Layout")
                    outpaint_status = gr.Markdown("**Status:** Ready")

        with gr.Tab("Protect Result"):
            with gr.Row():
                with gr.Column(scale=1):
                    synth_image = gr.Image(label="Synthesized Image", type="pil")
                    synth_url = gr.Textbox(label="...or Synthesized Image URL")
                    original_image = gr.Image(label="Original Image", type="pil")
                    protect_layout = gr.Textbox(label="Layout JSON", lines=6)
                    feather = gr.Slider(0, 64, value=16, step=1, label="Feather (px)")
                    protect_btn = gr.Button("PROTECT", variant="primary")

                with gr.Column(scale=1):
                    protected_output = gr.Image(label="Final Image", type="pil")
                    protect_status = gr.Markdown("**Status:** Ready")

        # Event handlers
        def run_smart_crop(
            files: list, ratio: str, width: float, sens: float, faces: bool, dual: bool, batch: bool
        ) -> tuple:
            if not files:
                return [], None, None, "Please upload at least one image"

            try:
                _cleanup_temp_files()
                for f in files:
                    validate_file_path(f)
                options = CropOptions(
                    sensitivity=int(sens),
                    protect_faces=faces,
                    dual_mode=dual,
                    batch_consistency=batch,
                )
                results = engine.batch_smart_crop(files, ratio, int(width or 1080), options)
                if not results:
                    return [], None, None, "No image could be processed"

                suffix = ratio.replace(":", "x")
                if len(results) == len(files):
                    names = [f"{Path(f).stem}_{suffix}.png" for f in files]
                    first = results[0]
                    preview = engine.get_preview_image(load_image(files[0]), first.focal_point, first.plan)
                else:
                    names = [f"smartframe_{i + 1:02d}_{suffix}.png" for i in range(len(results))]
                    preview = None

                gallery_items = [(r.image, n) for r, n in zip(results, names)]
                zip_path = _write_zip([(n, r.to_png()) for r, n in zip(results, names)])
                return gallery_items, preview, zip_path, f"Processed {len(results)} of {len(files)} images"

            except SmartFrameError as e:
                return [], None, None, f"Error: {str(e)}"
            except Exception as e:
                traceback.print_exc()
                return [], None, None, f"Unexpected error: {str(e)}"

        crop_btn.click(
            run_smart_crop,
            inputs=[crop_files, crop_ratio, crop_width, sensitivity, protect_faces, dual_mode, batch_consistency],
            outputs=[crop_gallery, focal_preview, crop_zip, crop_status],
        )

        def run_outpaint_prep(image: object, ratio: str, grav: str, style: str, strategy: str) -> tuple:
            if image is None:
                return None, None, None, None, "Please upload an image"

            try:
                result = engine.prepare_outpaint(image, ratio, grav, style, strategy)
                preview = engine.canvas_builder.build_preview(image, result.layout)
                status = (
                    f"Canvas {result.layout.final_width}x{result.layout.final_height}, "
                    f"expanding {result.expand_direction}"
                )
                return preview, result.canvas, result.mask, result.layout.to_dict(), status
            except SmartFrameError as e:
                return None, None, None, None, f"Error: {str(e)}"
            except Exception as e:
                traceback.print_exc()
                return None, None, None, None, f"Unexpected error: {str(e)}"

        outpaint_btn.click(
            run_outpaint_prep,
            inputs=[outpaint_input, outpaint_ratio, gravity, canvas_style, mask_strategy],
            outputs=[outpaint_preview, outpaint_canvas, outpaint_mask, layout_json, outpaint_status],
        )

        def run_protect(synth: object, url: str, original: object, layout_text: str, feather_px: float) -> tuple:
            source = url.strip() if url and url.strip() else synth
            if source is None or original is None or not layout_text:
                return None, "Please provide the synthesized image, the original and the layout"

            try:
                layout = json.loads(layout_text)
                result = engine.finalize_outpaint(source, original, layout, int(feather_px))
                if not result.protected:
                    if isinstance(source, str):
                        return None, f"Could not protect result ({result.error}). Use the URL directly: {source}"
                    return source, f"Could not protect result: {result.error}"
                return result.image, "Original pixels restored"
            except (ValueError, KeyError) as e:
                return None, f"Invalid layout JSON: {e}"
            except SmartFrameError as e:
                return None, f"Error: {str(e)}"
            except Exception as e:
                traceback.print_exc()
                return None, f"Unexpected error: {str(e)}"

        protect_btn.click(
            run_protect,
            inputs=[synth_image, synth_url, original_image, protect_layout, feather],
            outputs=[protected_output, protect_status],
        )

    return interface


def main() -> None:
    """Main entry point."""
    setup_logging(os.environ.get("SMARTFRAME_LOG_LEVEL", "INFO"))

    logger.info("=" * 70)
    logger.info("SMARTFRAME - Focal Point Crop & Outpaint")
    logger.info("=" * 70)

    if not HAS_GRADIO:
        logger.error("Gradio is required. Run: pip install gradio")
        sys.exit(1)

    logger.info("Starting web interface...")

    try:
        with SmartFrameEngine() as engine:
            interface = create_interface(engine)
            interface.launch(
                server_name="0.0.0.0",
                server_port=7860,
                share=False,
                inbrowser=True,
                show_error=True,
            )
    except Exception as e:
        logger.error("Failed to start: %s", e)
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
