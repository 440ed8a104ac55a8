# ui_camera.py
from __future__ import annotations
import io
import logging
from typing import Optional

import numpy as np
import streamlit as st
from PIL import Image, UnidentifiedImageError

from psicortex.frames import prepare_frame

logger = logging.getLogger(__name__)


def decode_image(data: bytes, size: int) -> Optional[np.ndarray]:
    """Encoded image bytes -> (size, size) float32 luminance, or None if undecodable."""
    try:
        with Image.open(io.BytesIO(data)) as im:
            gray = np.asarray(im.convert("L"), dtype=np.uint8)
    except (UnidentifiedImageError, OSError) as e:
        logger.warning("camera frame could not be decoded: %s", e)
        return None
    return prepare_frame(gray, size)


def camera_frame(size: int, key_prefix: str = "cam") -> Optional[np.ndarray]:
    """
    Sidebar camera snapshot, converted to the simulation grid. Returns None when no
    picture is taken yet; the engine then keeps its previous input.
    """
    with st.sidebar.expander("Camera", expanded=True):
        shot = st.camera_input("Take a picture", key=f"{key_prefix}:input")
        if shot is None:
            return None
        frame = decode_image(shot.getvalue(), size)
        if frame is not None:
            st.caption(f"frame mean intensity: {float(frame.mean()):.3f}")
        return frame
