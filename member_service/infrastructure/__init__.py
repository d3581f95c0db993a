"""Infrastructure layer: data persistence and external integrations.

Key responsibilities:
- **database**: Async PostgreSQL document store and the generic entity store
- **search**: Memoized search index client (managed AWS or self-hosted)
- **storage**: Member photo uploads to S3
- **bus**: Event bus publishing with machine-to-machine tokens
- **components**: Process-wide holder wiring the external clients together
"""
