"""vfshost test suite."""
