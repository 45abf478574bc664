"""Entry point: python -m pig [OPTIONS] [CONFIG]

Reads pig.yaml, resolves each entry's OpenAPI document and renders its
templates.
"""

from __future__ import annotations

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
