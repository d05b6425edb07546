"""Infrastructure adapters: metadata store, blob store."""
