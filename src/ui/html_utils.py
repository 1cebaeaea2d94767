"""Utilities for preparing HTML snippets before rendering in Streamlit."""
import html
from textwrap import dedent


def html_block(template: str) -> str:
    """
    Normalize multi-line HTML so Streamlit doesn't treat it as Markdown code.

    Lines indented by four or more spaces render as code blocks, so every
    line is left-stripped after dedenting.
    """
    lines = dedent(template).splitlines()
    return "\n".join(line.lstrip() for line in lines if line.strip())


def escape_text(value: object) -> str:
    """Escape user-entered text for embedding in an HTML snippet."""
    return html.escape(str(value), quote=True)
