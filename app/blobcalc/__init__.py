"""
BlobCalc - Addition Visualized as Colored Blobs

This package contains the core components of BlobCalc:
- equation: The keypad state machine, term parsing and summation
- layout: Blob sizing and wrap placement inside a drawing area
- services: Calculator sessions composing the two
- server: HTTP and WebSocket API for thin clients
- terminal: Interactive rich-based keypad
- config: Configuration loading
"""

from .config import Config
from .equation import EquationEngine, KeyResult, apply_key
from .layout import LayoutOptions, LayoutResult, compute_layout

__version__ = "0.1.0"
__all__ = [
    "Config",
    "EquationEngine",
    "KeyResult",
    "LayoutOptions",
    "LayoutResult",
    "apply_key",
    "compute_layout",
]
