from __future__ import annotations

import os
import threading
import tkinter as tk
from tkinter import filedialog, messagebox, simpledialog, ttk
from typing import Optional

from PIL import Image

from pixelsuite.app.export import default_export_name, export_extension, write_export
from pixelsuite.app.preview import PreviewKey, PreviewScheduler, render_display
from pixelsuite.app.state import EditSession, HistoryStack
from pixelsuite.config import Settings
from pixelsuite.core.errors import PixelSuiteError
from pixelsuite.core.filters import vignette_overlay
from pixelsuite.core.models import FILTER_RANGES, VALID_PHOTO_COUNTS, FilterModel
from pixelsuite.remote.actions import EditAction
from pixelsuite.remote.editors import GeminiImageEditor, ImageEditor
from pixelsuite.ui.image_canvas import ImageCanvas
from pixelsuite.utils.logging import logger, set_level

# Slider upper bound for the unbounded blur field.
_BLUR_SLIDER_MAX = 20.0

_FILTER_LABELS = {
    "brightness": "Brightness",
    "contrast": "Contrast",
    "saturation": "Saturation",
    "sepia": "Sepia",
    "grayscale": "Grayscale",
    "blur": "Blur (px)",
    "sharpness": "Sharpness",
    "vignette": "Vignette",
}


class PixelSuiteApp(ttk.Frame):
    """PixelSuite editor window: adjustments, passport sheet mode, AI edits, undo and export."""

    def __init__(self, master: tk.Tk, session: EditSession, editor: ImageEditor):
        super().__init__(master)
        self.master = master
        self.session = session
        self.editor = editor

        self._preview = PreviewScheduler(
            render_display,
            self._on_preview_ready,
            dispatch=lambda fn: self.master.after(0, fn),
        )

        self._build_style()
        self._build_layout()
        self._bind_shortcuts()

        self.set_status("Ready.")
        self._sync_controls()

    # ---------- UI construction ----------

    def _build_style(self) -> None:
        style = ttk.Style(self.master)
        if "clam" in style.theme_names():
            style.theme_use("clam")

    def _build_layout(self) -> None:
        self.pack(fill="both", expand=True)

        # Top toolbar
        toolbar = ttk.Frame(self, padding=(10, 8))
        toolbar.pack(side="top", fill="x")

        self.btn_upload = ttk.Button(toolbar, text="Upload", command=self.on_upload)
        self.btn_undo = ttk.Button(toolbar, text="Undo", command=self.on_undo)
        self.btn_export = ttk.Button(toolbar, text="Export", command=self.on_export)
        self.btn_reset = ttk.Button(toolbar, text="Reset", command=self.on_reset)

        self.btn_upload.pack(side="left")
        ttk.Separator(toolbar, orient="vertical").pack(side="left", fill="y", padx=8)
        self.btn_undo.pack(side="left")
        self.btn_export.pack(side="left", padx=(6, 0))
        self.btn_reset.pack(side="left", padx=(12, 0))

        self.progress = ttk.Progressbar(toolbar, mode="indeterminate", length=120)
        self.progress.pack(side="right")

        main = ttk.PanedWindow(self, orient="horizontal")
        main.pack(side="top", fill="both", expand=True, padx=10, pady=(0, 10))

        # Left pane: canvas
        left = ttk.Frame(main)
        main.add(left, weight=3)

        lf_canvas = ttk.LabelFrame(left, text="Preview", padding=8)
        lf_canvas.pack(fill="both", expand=True)
        self.canvas = ImageCanvas(lf_canvas)
        self.canvas.pack(fill="both", expand=True)
        self.canvas_meta = ttk.Label(lf_canvas, text="Waiting for a photo.")
        self.canvas_meta.pack(side="bottom", anchor="w", pady=(6, 0))

        # Right pane: settings notebook
        right = ttk.Frame(main)
        main.add(right, weight=1)
        nb = ttk.Notebook(right)
        nb.pack(fill="both", expand=True)

        self._build_adjust_tab(nb)
        self._build_passport_tab(nb)
        self._build_ai_tab(nb)

        # Status bar
        status = ttk.Frame(self, padding=(10, 6))
        status.pack(side="bottom", fill="x")
        self.status_var = tk.StringVar(value="Ready.")
        ttk.Label(status, textvariable=self.status_var).pack(side="left")

    def _build_adjust_tab(self, nb: ttk.Notebook) -> None:
        tab = ttk.Frame(nb, padding=8)
        nb.add(tab, text="Adjust")
        tab.columnconfigure(1, weight=1)

        self.filter_vars: dict[str, tk.DoubleVar] = {}
        self.filter_scales: dict[str, ttk.Scale] = {}
        for row, (name, (low, high, default)) in enumerate(FILTER_RANGES.items()):
            ttk.Label(tab, text=_FILTER_LABELS[name]).grid(row=row, column=0, sticky="w", pady=3)
            var = tk.DoubleVar(value=default)
            scale = ttk.Scale(
                tab,
                from_=low,
                to=high if high is not None else _BLUR_SLIDER_MAX,
                variable=var,
                command=lambda _v, n=name: self.on_filter_changed(n),
            )
            scale.grid(row=row, column=1, sticky="ew", pady=3, padx=(8, 0))
            self.filter_vars[name] = var
            self.filter_scales[name] = scale

        self.btn_defaults = ttk.Button(tab, text="Restore defaults", command=self.on_restore_defaults)
        self.btn_defaults.grid(row=len(FILTER_RANGES), column=0, sticky="w", pady=(10, 0))

        self.var_bake_vignette = tk.BooleanVar(value=False)
        ttk.Checkbutton(tab, text="Include vignette in export", variable=self.var_bake_vignette).grid(
            row=len(FILTER_RANGES) + 1, column=0, columnspan=2, sticky="w", pady=(6, 0)
        )

    def _build_passport_tab(self, nb: ttk.Notebook) -> None:
        tab = ttk.Frame(nb, padding=8)
        nb.add(tab, text="Passport 4x6")
        tab.columnconfigure(1, weight=1)
        sheet = self.session.sheet

        self.var_passport = tk.BooleanVar(value=self.session.passport_mode)
        self.chk_passport = ttk.Checkbutton(
            tab, text="Passport sheet mode", variable=self.var_passport, command=self.on_sheet_changed
        )
        self.chk_passport.grid(row=0, column=0, columnspan=2, sticky="w", pady=3)

        ttk.Label(tab, text="Photo height (in):").grid(row=1, column=0, sticky="w", pady=3)
        self.var_height = tk.DoubleVar(value=sheet.photo_height_in)
        ttk.Spinbox(
            tab, from_=1.2, to=2.2, increment=0.1, textvariable=self.var_height, width=6,
            command=self.on_sheet_changed,
        ).grid(row=1, column=1, sticky="w", pady=3)

        ttk.Label(tab, text="Photos per sheet:").grid(row=2, column=0, sticky="w", pady=3)
        self.var_count = tk.IntVar(value=sheet.photo_count)
        counts = ttk.Frame(tab)
        counts.grid(row=2, column=1, sticky="w", pady=3)
        for n in VALID_PHOTO_COUNTS:
            ttk.Radiobutton(counts, text=str(n), value=n, variable=self.var_count,
                            command=self.on_sheet_changed).pack(side="left", padx=(0, 6))

        self.var_border = tk.BooleanVar(value=sheet.add_border)
        ttk.Checkbutton(tab, text="Black border", variable=self.var_border,
                        command=self.on_sheet_changed).grid(row=3, column=0, columnspan=2, sticky="w", pady=3)

        self.var_gradient = tk.BooleanVar(value=sheet.use_gradient_background)
        ttk.Checkbutton(tab, text="Dark gradient background", variable=self.var_gradient,
                        command=self.on_sheet_changed).grid(row=4, column=0, columnspan=2, sticky="w", pady=3)

    def _build_ai_tab(self, nb: ttk.Notebook) -> None:
        tab = ttk.Frame(nb, padding=8)
        nb.add(tab, text="AI")

        self.ai_buttons: dict[EditAction, ttk.Button] = {}
        for action in EditAction:
            btn = ttk.Button(tab, text=action.label, command=lambda a=action: self.on_ai_action(a))
            btn.pack(fill="x", pady=3)
            self.ai_buttons[action] = btn

    def _bind_shortcuts(self) -> None:
        for mod in ("Control", "Command"):
            self.master.bind_all(f"<{mod}-o>", lambda e: self.on_upload())
            self.master.bind_all(f"<{mod}-z>", lambda e: self.on_undo())
            self.master.bind_all(f"<{mod}-s>", lambda e: self.on_export())

    # ---------- Utilities ----------

    def close(self) -> None:
        self._preview.shutdown()

    def set_status(self, text: str) -> None:
        self.status_var.set(text)

    def _sync_controls(self) -> None:
        """Enable/disable buttons from session state; AI edits lock out conflicting actions."""
        s = self.session
        busy = s.busy

        def toggle(widget, enabled: bool) -> None:
            widget.state(["!disabled"] if enabled else ["disabled"])

        toggle(self.btn_upload, not busy)
        toggle(self.btn_reset, not busy)
        toggle(self.btn_undo, not busy and s.has_image)
        toggle(self.btn_export, not busy and s.has_image)
        toggle(self.chk_passport, s.has_image)
        for action, btn in self.ai_buttons.items():
            toggle(btn, not busy and (s.has_image or not action.requires_image))
        for scale in self.filter_scales.values():
            toggle(scale, s.has_image)

        if busy:
            self.progress.start(12)
        else:
            self.progress.stop()

    def _sync_vars_from_session(self) -> None:
        for name, value in self.session.filters.as_dict().items():
            self.filter_vars[name].set(value)
        self.var_passport.set(self.session.passport_mode)

    def _show_error(self, title: str, err: BaseException) -> None:
        messagebox.showerror(title, str(err))
        self.set_status(f"{title}.")

    # ---------- Preview ----------

    def refresh_preview(self) -> None:
        s = self.session
        if s.image is None:
            self._preview.invalidate()
            self.canvas.clear()
            self.canvas_meta.configure(text="Waiting for a photo.")
            return
        key = PreviewKey(s.image_id, s.filters, s.passport_mode, s.sheet)
        self._preview.request_if_changed(key, s.image, s.filters, s.passport_mode, s.sheet)

    def _on_preview_ready(self, image: Optional[Image.Image], err: Optional[BaseException]) -> None:
        if err is not None:
            logger.warning("Preview failed: %s", err)
            self.set_status(f"Preview failed: {err}")
            return
        if image is None:
            return

        overlay = None
        if not self.session.passport_mode and self.session.filters.vignette > 0:
            overlay = vignette_overlay(image.size, self.session.filters.vignette)
        self.canvas.set_image(image, overlay)

        if self.session.passport_mode:
            sheet = self.session.sheet
            self.canvas_meta.configure(text=f"Passport sheet 4x6 in, {sheet.photo_count} photos")
        elif self.session.image is not None:
            self.canvas_meta.configure(text=f"Size: {self.session.image.width}x{self.session.image.height}")

    # ---------- Upload / reset / undo ----------

    def on_upload(self) -> None:
        if self.session.busy:
            return
        path = filedialog.askopenfilename(
            title="Select a photo",
            filetypes=[
                ("Image files", "*.jpg *.jpeg *.png *.bmp *.tif *.tiff *.webp"),
                ("All files", "*.*"),
            ],
        )
        if not path:
            return

        try:
            self.session.load_image(path)
        except PixelSuiteError as e:
            self._show_error("Upload failed", e)
            return

        self._sync_vars_from_session()
        self._sync_controls()
        self.refresh_preview()
        self.set_status(f"Loaded {os.path.basename(path)}.")

    def on_reset(self) -> None:
        try:
            self.session.reset()
        except PixelSuiteError as e:
            self._show_error("Reset failed", e)
            return
        self._sync_vars_from_session()
        self._sync_controls()
        self.refresh_preview()
        self.set_status("Reset complete.")

    def on_undo(self) -> None:
        try:
            restored = self.session.undo()
        except PixelSuiteError as e:
            self._show_error("Undo failed", e)
            return
        self._sync_vars_from_session()
        self._sync_controls()
        self.refresh_preview()
        self.set_status("Restored previous image." if restored else "Adjustments reset.")

    # ---------- Adjustments / passport ----------

    def on_filter_changed(self, name: str) -> None:
        if not self.session.has_image:
            return
        self.session.set_filter(name, self.filter_vars[name].get())
        self.refresh_preview()

    def on_restore_defaults(self) -> None:
        self.session.filters = FilterModel()
        self._sync_vars_from_session()
        self.refresh_preview()
        self.set_status("Defaults restored.")

    def on_sheet_changed(self) -> None:
        try:
            height = float(self.var_height.get())
        except (tk.TclError, ValueError):
            height = self.session.sheet.photo_height_in
        self.session.passport_mode = bool(self.var_passport.get()) and self.session.has_image
        self.session.update_sheet(
            photo_height_in=min(2.2, max(1.2, height)),
            photo_count=int(self.var_count.get()),
            add_border=bool(self.var_border.get()),
            use_gradient_background=bool(self.var_gradient.get()),
        )
        self._sync_controls()
        self.refresh_preview()

    # ---------- AI edits ----------

    def on_ai_action(self, action: EditAction) -> None:
        instruction = None
        if action is EditAction.FREEFORM:
            instruction = simpledialog.askstring("Smart edit", "Describe the edit you want:", parent=self.master)
            if not instruction:
                return

        try:
            request = self.session.begin_remote_edit(action, instruction)
        except PixelSuiteError as e:
            self._show_error(f"{action.label} failed", e)
            return

        self._sync_controls()
        self.set_status(f"{action.label}…")
        self.canvas.set_message(f"{action.label}…")
        editor = self.editor

        def worker() -> None:
            result: Optional[bytes] = None
            err: Optional[Exception] = None
            try:
                result = editor.edit(request.image_bytes, request.instruction)
            except Exception as e:
                err = e

            def finish_on_ui_thread() -> None:
                self.canvas.set_message(None)
                if err is not None or result is None:
                    self.session.fail_remote_edit(request, err)
                    self._sync_controls()
                    self._show_error(f"{action.label} failed", err or RuntimeError("No result"))
                    return
                try:
                    self.session.finish_remote_edit(request, result)
                except PixelSuiteError as e2:
                    self._sync_controls()
                    self._show_error(f"{action.label} failed", e2)
                    return
                self._sync_controls()
                self.refresh_preview()
                self.set_status(f"{action.label} complete.")

            self.master.after(0, finish_on_ui_thread)

        threading.Thread(target=worker, daemon=True).start()

    # ---------- Export ----------

    def on_export(self) -> None:
        if not self.session.has_image or self.session.busy:
            return
        ext = export_extension(self.session)
        include_vignette = bool(self.var_bake_vignette.get())
        path = filedialog.asksaveasfilename(
            title="Export image",
            initialfile=default_export_name(ext),
            defaultextension=f".{ext}",
            filetypes=[("JPEG" if ext == "jpg" else "PNG", f"*.{ext}")],
        )
        if not path:
            return
        try:
            written = write_export(
                self.session,
                os.path.dirname(path) or ".",
                filename=os.path.basename(path),
                include_vignette=include_vignette,
            )
        except (PixelSuiteError, OSError) as e:
            self._show_error("Export failed", e)
            return
        self.set_status(f"Exported {written.name}.")


def run() -> None:
    settings = Settings.from_env()
    set_level(settings.log_level)
    logger.info("Starting PixelSuite: %s", settings.describe())

    root = tk.Tk()
    root.title("PixelSuite")
    root.geometry("1200x760")
    root.minsize(960, 620)

    session = EditSession(history=HistoryStack(limit=settings.history_limit))
    app = PixelSuiteApp(root, session, GeminiImageEditor(settings))

    try:
        root.mainloop()
    finally:
        app.close()
