"""
Browser tool operations organized by domain.

- page: navigate, screenshot, click, fill, select, hover, evaluate
- debugger: debug state machine and its tool handlers
"""

from .debugger import Breakpoint, DebugController, DebugPhase
from .page import render_value, save_screenshot, trim_screenshot_name

__all__ = [
    "Breakpoint",
    "DebugController",
    "DebugPhase",
    "render_value",
    "save_screenshot",
    "trim_screenshot_name",
]
