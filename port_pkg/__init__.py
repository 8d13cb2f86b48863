"""
Port - a small static site generator for Markdown posts.

Port scans a directory tree of Markdown posts grouped by category, compiles
each post to HTML and writes a paginated index, a page per post and RSS
feeds per category into a build directory.
"""

__version__ = "1.0.0"

from .compiler import CompilationResult, UnknownLanguageError, compile_markdown
from .core import FrontMatterError, Port, PostProcessor, paginate

__all__ = [
    'CompilationResult',
    'FrontMatterError',
    'Port',
    'PostProcessor',
    'UnknownLanguageError',
    'compile_markdown',
    'paginate',
]
