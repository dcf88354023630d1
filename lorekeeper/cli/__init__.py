"""Command-line tools for Lorekeeper.

- ``python -m lorekeeper.cli.ingest`` imports videos, playlists, text,
  documents and audio, and manages the source library and vector index.
"""
