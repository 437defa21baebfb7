"""
Preprocessing: frames in, batched float tensors out.
"""

from .transforms import Preprocessor, INTERPOLATIONS, NORMALIZATIONS, LAYOUTS

__all__ = ["Preprocessor", "INTERPOLATIONS", "NORMALIZATIONS", "LAYOUTS"]
