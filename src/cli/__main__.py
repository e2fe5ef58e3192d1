# =============================================================================
# src/cli/__main__.py - Package Entry Point
# =============================================================================
#
# Enables running the CLI package itself as a module:
#     python -m src.cli query "SELECT 1"
# =============================================================================

"""Allow ``python -m src.cli`` execution."""

import sys

from src.cli.bigquery import main

sys.exit(main())
