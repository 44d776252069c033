from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

from pixelsuite.app.state import EditSession
from pixelsuite.core.errors import ConfigError, SessionBusyError
from pixelsuite.core.filters import apply_vignette, bake_filters
from pixelsuite.core.imaging import encode_jpeg, encode_png
from pixelsuite.core.layout import layout_sheet_with_options
from pixelsuite.core.models import SHEET_DPI
from pixelsuite.utils.logging import logger


def render_export(session: EditSession, *, include_vignette: bool = False) -> Tuple[bytes, str]:
    """
    Encode what the user would export right now.

    Returns (data, extension). Passport mode gives the 1200x1800 sheet as a quality-95 JPEG;
    normal mode gives the baked full-resolution image as lossless PNG, with the vignette
    pass only when include_vignette is set.
    """
    if session.busy:
        raise SessionBusyError("Cannot export while an AI edit is running.")
    if session.image is None:
        raise ConfigError("Nothing to export; upload a photo first.")

    if session.passport_mode:
        sheet = layout_sheet_with_options(session.image, session.filters, session.sheet)
        return encode_jpeg(sheet.image, dpi=SHEET_DPI), export_extension(session)

    baked = bake_filters(session.image, session.filters)
    if include_vignette and session.filters.vignette > 0:
        baked = apply_vignette(baked, session.filters.vignette)
    return encode_png(baked), export_extension(session)


def export_extension(session: EditSession) -> str:
    """File extension `render_export` will produce for the session as it stands."""
    return "jpg" if session.passport_mode else "png"


def default_export_name(extension: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"pixelsuite-edit-{int(now.timestamp() * 1000)}.{extension}"


def write_export(
    session: EditSession,
    directory: str | Path,
    *,
    filename: Optional[str] = None,
    include_vignette: bool = False,
) -> Path:
    """Render the export and write it under *directory*; returns the written path."""
    data, ext = render_export(session, include_vignette=include_vignette)
    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / (filename or default_export_name(ext))
    path.write_bytes(data)
    logger.info("Exported %s (%d bytes)", path, len(data))
    return path
