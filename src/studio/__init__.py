"""Creator content pipeline: ingest, transform, review and publish media uploads."""
