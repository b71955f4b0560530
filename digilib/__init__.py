"""Digital PDF library backend: catalog, reading progress and access grants."""
