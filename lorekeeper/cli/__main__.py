"""Allow ``python -m lorekeeper.cli`` execution (runs the ingest CLI)."""

from lorekeeper.cli.ingest import main

main()
