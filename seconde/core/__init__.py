"""Discovery core: scoring, matching, indexing, use cases and jobs."""
