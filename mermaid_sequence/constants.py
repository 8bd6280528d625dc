# mermaid_sequence/constants.py
from __future__ import annotations

HEADER = "sequenceDiagram"

# Every statement and block line carries the same prefix, whatever the depth.
INDENT = "    "

LINE_SEPARATORS: dict[str, str] = {
    "lf": "\n",
    "crlf": "\r\n",
}
LINE_SEPARATOR_DEFAULT = "lf"

# Block keyword -> branch keyword allowed directly inside it. Blocks not
# listed here take no branches.
BLOCK_BRANCHES: dict[str, str] = {
    "alt": "else",
    "par": "and",
    "critical": "option",
}

# Scenario documents (loaded in sorted order when a directory is given).
SCENARIO_GLOB = "*.yaml"
INDEX_FILENAME = "index.md"
