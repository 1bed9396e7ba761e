"""Content sources: feed configuration, RSS/Atom parsing and mocked social platforms."""
