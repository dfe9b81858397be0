"""Command line interface (``python -m tally_import.cli``)."""
