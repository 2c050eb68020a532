"""
Unified test infrastructure for the template engine.

Modules:
- file_utils: Utilities for creating files and directories
- rendering_utils: Utilities for building engines and rendering templates
- cli_utils: Running the tpl CLI in a subprocess
"""

from .file_utils import write
from .rendering_utils import make_engine, render_text, render_template
from .cli_utils import run_cli

__all__ = [
    "write",
    "make_engine",
    "render_text",
    "render_template",
    "run_cli",
]
