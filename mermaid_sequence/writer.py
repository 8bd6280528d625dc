from __future__ import annotations

from pathlib import Path

from .mermaid_fmt import mermaid_block


def write_md(path: Path, title: str, diagram_code: str, *, newline: str = "\n") -> None:
    """Write a titled Markdown file containing a Mermaid diagram block.

    ``newline`` is used for the Markdown wrapper too, so the file carries a
    single line separator throughout. No newline translation is applied.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    content = f"# {title}{newline}{newline}{mermaid_block(diagram_code, newline)}"
    path.write_text(content, encoding="utf-8", newline="")


def write_text_md(path: Path, title: str, body_md: str, *, newline: str = "\n") -> None:
    """Write a titled Markdown file containing arbitrary Markdown body.

    Kept separate from write_md(), which always wraps the body as a Mermaid
    diagram block. ``body_md`` should already use ``newline`` between lines.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    body = (body_md or "").rstrip() + newline
    content = f"# {title}{newline}{newline}{body}"
    path.write_text(content, encoding="utf-8", newline="")
