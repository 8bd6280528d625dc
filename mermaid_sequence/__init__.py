"""
mermaid_sequence – fluent Mermaid sequence diagram builder.

Layout:
 - Line list and first-failure latch in buffer.py / latch.py
 - Line formatters (arrows, notes, block keywords) in mermaid_fmt.py
 - The chainable Diagram facade in diagram.py
 - YAML scenario loading/replay in scenario.py, checks in validate.py
 - Markdown output in writer.py / suite.py, CLI wiring in cli.py
"""
from .config import DiagramConfig, RenderConfig
from .diagram import Diagram
from .errors import (
    ActivationError,
    BlockMismatchError,
    DiagramError,
    DiagramWriteError,
    MessageFormatError,
    MisplacedBranchError,
    UnclosedBlockError,
    UnmatchedBlockEndError,
)

__all__ = [
    "ActivationError",
    "BlockMismatchError",
    "Diagram",
    "DiagramConfig",
    "DiagramError",
    "DiagramWriteError",
    "MessageFormatError",
    "MisplacedBranchError",
    "RenderConfig",
    "UnclosedBlockError",
    "UnmatchedBlockEndError",
]
