"""Core building blocks: configuration, auth primitives, cache, rate limiting."""
