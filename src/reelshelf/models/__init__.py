"""Domain models for movies, collections, provider payloads and preferences."""
