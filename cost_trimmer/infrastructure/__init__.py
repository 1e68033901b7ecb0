"""Infrastructure: cache store, cache keys and the Firestore fetcher."""
