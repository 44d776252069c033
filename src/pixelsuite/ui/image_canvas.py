from __future__ import annotations

import tkinter as tk
from tkinter import ttk
from typing import Optional, Tuple

from PIL import Image, ImageTk


def fit_within(size: Tuple[int, int], box: Tuple[int, int]) -> Tuple[int, int]:
    """Largest size with *size*'s aspect that fits *box*; never upscales."""
    img_w, img_h = size
    box_w, box_h = box
    if img_w <= 0 or img_h <= 0 or box_w <= 2 or box_h <= 2:
        return (1, 1)
    scale = min(box_w / img_w, box_h / img_h, 1.0)
    return max(1, int(img_w * scale)), max(1, int(img_h * scale))


class ImageCanvas(ttk.Frame):
    """
    Preview surface for the editor.

    The shown image is the preview (or sheet) with any display-only overlay already
    composited; it is refitted on resize, and the fitted copy is reused until the
    canvas size or the image changes. A one-line message can be drawn over it.
    """

    def __init__(self, master, *, bg: str = "#1e1e1e", placeholder: str = "No photo loaded"):
        super().__init__(master)
        self._canvas = tk.Canvas(self, highlightthickness=0, bg=bg)
        self._canvas.pack(fill="both", expand=True)

        self._shown: Optional[Image.Image] = None
        self._fitted: Optional[Tuple[Tuple[int, int], ImageTk.PhotoImage]] = None
        self._placeholder = placeholder

        self._text_id = self._canvas.create_text(
            12, 12, anchor="nw", text=placeholder, fill="#9a9a9a", font=("TkDefaultFont", 11),
        )
        self._canvas.bind("<Configure>", lambda _evt: self._redraw())

    def set_image(self, pil: Optional[Image.Image], overlay: Optional[Image.Image] = None) -> None:
        """Show *pil*; a same-size RGBA *overlay* is composited on top for display only."""
        if pil is not None and overlay is not None and overlay.size == pil.size:
            pil = Image.alpha_composite(pil.convert("RGBA"), overlay)
        self._shown = pil
        self._fitted = None
        self._redraw()

    def clear(self) -> None:
        self.set_image(None)

    def set_message(self, text: Optional[str]) -> None:
        """Draw *text* over the preview; None restores the placeholder behaviour."""
        if text:
            self._canvas.itemconfigure(self._text_id, text=text, state="normal")
            self._canvas.tag_raise(self._text_id)
        else:
            self._canvas.itemconfigure(self._text_id, text=self._placeholder)
            self._redraw()

    def _redraw(self) -> None:
        self._canvas.delete("img")
        if self._shown is None:
            self._canvas.itemconfigure(self._text_id, state="normal")
            return
        if self._canvas.itemcget(self._text_id, "text") == self._placeholder:
            self._canvas.itemconfigure(self._text_id, state="hidden")

        box = (max(1, self._canvas.winfo_width()), max(1, self._canvas.winfo_height()))
        target = fit_within(self._shown.size, box)
        if self._fitted is None or self._fitted[0] != target:
            self._fitted = (target, ImageTk.PhotoImage(self._shown.resize(target, Image.LANCZOS)))

        photo = self._fitted[1]
        x = (box[0] - target[0]) // 2
        y = (box[1] - target[1]) // 2
        self._canvas.create_image(x, y, anchor="nw", image=photo, tags=("img",))
        self._canvas.tag_raise(self._text_id)
