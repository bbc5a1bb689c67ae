"""Core infrastructure: configuration, logging, storage and the graph compiler."""
