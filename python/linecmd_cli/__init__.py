"""
linecmd command-line launcher.

``linecmd server`` runs a CommandServer until interrupted; ``linecmd client``
connects a LineClient and either runs one command or an interactive prompt.
"""

from __future__ import annotations

from .cli import main

__all__ = ["main"]
