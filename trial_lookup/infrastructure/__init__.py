"""Infrastructure layer: configuration, logging and code-table loading."""
