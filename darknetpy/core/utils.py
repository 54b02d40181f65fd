"""Drawing helpers for detection results."""

from typing import Iterable, Tuple

import cv2
import numpy as np

from ..detection.base import Detection

BOX_COLOR = (0, 255, 0)
TEXT_COLOR = (0, 0, 0)


def clip_box(
    box: Tuple[float, float, float, float], width: int, height: int
) -> Tuple[int, int, int, int]:
    """Round (x1, y1, x2, y2) to pixels and clamp it to the frame."""
    x1, y1, x2, y2 = box
    return (
        int(np.clip(round(x1), 0, width - 1)),
        int(np.clip(round(y1), 0, height - 1)),
        int(np.clip(round(x2), 0, width - 1)),
        int(np.clip(round(y2), 0, height - 1)),
    )


def draw_detections(
    frame: np.ndarray,
    detections: Iterable[Detection],
    color: Tuple[int, int, int] = BOX_COLOR,
) -> np.ndarray:
    """Draw labelled boxes on a copy of an RGB frame.

    Args:
        frame: Input frame (RGB).
        detections: Detections with centre/size boxes in frame pixels.
        color: Box colour.

    Returns:
        Annotated copy of the frame.
    """
    output = frame.copy()
    height, width = output.shape[:2]

    for det in detections:
        x1, y1, x2, y2 = clip_box(det.box.to_xyxy(), width, height)
        cv2.rectangle(output, (x1, y1), (x2, y2), color, 2)

        label = f"{det.name} {det.prob:.2f}"
        (text_w, text_h), baseline = cv2.getTextSize(label, cv2.FONT_HERSHEY_SIMPLEX, 0.5, 1)
        top = max(0, y1 - text_h - baseline)
        cv2.rectangle(output, (x1, top), (x1 + text_w, top + text_h + baseline), color, -1)
        cv2.putText(
            output, label, (x1, top + text_h), cv2.FONT_HERSHEY_SIMPLEX, 0.5, TEXT_COLOR, 1
        )

    return output
