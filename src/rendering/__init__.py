"""
Rendering: draws results over the video frame.
"""

from .overlay import OverlayRenderer, mirror_box_x

__all__ = ["OverlayRenderer", "mirror_box_x"]
