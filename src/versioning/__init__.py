"""Version models, constraint parsing, catalog and resolution."""
