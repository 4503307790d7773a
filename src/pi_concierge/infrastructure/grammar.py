"""Loading of the GBNF grammar used by the tool-detection call.

The grammar text is passed through to llama.cpp untouched.
"""

from __future__ import annotations

from importlib import resources
from pathlib import Path
from typing import Optional

BUNDLED_GRAMMAR = ("grammars", "function.gbnf")


def load_grammar(path: Optional[str] = None) -> str:
    """Read *path*, or the grammar bundled with the package when *path* is empty."""
    if path and path.strip():
        return Path(path).expanduser().read_text(encoding="utf-8")
    directory, name = BUNDLED_GRAMMAR
    return resources.files("pi_concierge").joinpath(directory).joinpath(name).read_text(encoding="utf-8")
