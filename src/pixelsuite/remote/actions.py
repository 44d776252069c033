from __future__ import annotations

import enum
from typing import Optional

from pixelsuite.core.errors import ConfigError

_REMOVE_BACKGROUND_PROMPT = (
    "Remove the background of this image. Make the background transparent. "
    "Keep the main subject sharp and clear."
)

_FORMAL_SUIT_PROMPT = (
    "Take the person in this image, which has a transparent background, and realistically dress "
    "them in a formal dark business suit with a white collared shirt and a simple, professional tie. "
    "Preserve the person's head, face, and neck exactly as they are. Ensure the added clothing looks "
    "natural and fits the person's posture. Most importantly, maintain the transparent background "
    "of the original image."
)

_HIJAB_PROMPT = (
    "Take the person in this image, which has a transparent background, and realistically dress "
    "them in a modest, elegant Hijab (Islamic headscarf) that covers the hair and neck completely. "
    "Ensure the face remains fully visible, clear, and natural. The Hijab should be simple, "
    "professional, and well-fitted, perhaps in a neutral color like white, grey, or black. Maintain "
    "the person's posture and facial features exactly. Most importantly, maintain the transparent "
    "background of the original image."
)


class EditAction(enum.Enum):
    """
    AI edit presets offered by the editor.

    Each value is (label, preset prompt, requires_image, flatten_result). FREEFORM has no
    preset; the user supplies the instruction and may run it without an image.
    """
    REMOVE_BACKGROUND = ("Remove background", _REMOVE_BACKGROUND_PROMPT, True, True)
    FORMAL_SUIT = ("Formal suit", _FORMAL_SUIT_PROMPT, True, False)
    HIJAB = ("Hijab", _HIJAB_PROMPT, True, False)
    FREEFORM = ("Smart edit", None, False, False)

    def __init__(self, label: str, prompt: Optional[str], requires_image: bool, flatten_result: bool):
        self.label = label
        self.prompt = prompt
        self.requires_image = requires_image
        self.flatten_result = flatten_result

    def build_instruction(self, instruction: Optional[str] = None) -> str:
        """Preset prompt, or the user's text for FREEFORM (which must not be blank)."""
        if self.prompt is not None:
            return self.prompt
        text = (instruction or "").strip()
        if not text:
            raise ConfigError("Describe the edit you want before running a smart edit.")
        return text
