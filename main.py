#!/usr/bin/env python3
"""
Git Content Source - Main Entry Point

Mirrors remote git repositories and imports their tracked files
into a content graph.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from gitsource.cli import main

if __name__ == "__main__":
    main()
