"""Library core: storage, queries, poster cache and the library service."""
