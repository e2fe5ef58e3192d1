# =============================================================================
# src/cli/__init__.py - CLI Module Overview
# =============================================================================
#
# Command-line access to the BigQuery bridge, for operators working outside
# an embedding application:
#
#   query           run SQL (403 responses are retried) and print JSON rows
#   truncate        delete every row of a table
#   load            load a ';'-delimited CSV and wait for the load job
#   publish-config  copy the default YAML configuration into the project
#
# argparse keeps the CLI free of extra dependencies.  The CLI builds its own
# components through src.main.build_all, like any embedding application.
# =============================================================================

"""CLI tools for the BigQuery bridge (``python -m src.cli``)."""
