from .frontmatter import Frontmatter, split_frontmatter
from .markdown import render_markdown, slugify
from .runner import compile_document, compile_tree, find_markdown_files
from .stage import stage_content

__all__ = [
    "Frontmatter",
    "split_frontmatter",
    "render_markdown",
    "slugify",
    "compile_document",
    "compile_tree",
    "find_markdown_files",
    "stage_content",
]
