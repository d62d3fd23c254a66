# =============================================================================
# Services Package — Pipeline Logic
# =============================================================================
#   - sanitizer.py: Text cleaning and truncation before embedding
#   - embedder.py: Embedding adapter (retries + fixed-width vectors)
#   - batch.py: Embedding batch runner with per-row failure isolation
#   - trigger.py: New stored object → document + processing call
#   - processor.py: Stored document → document sections
#   - segmenter.py: Markdown → sections (heading split, token cap)
#   - storage.py: Local-disk object storage
#   - search.py: Inner-product similarity search over sections
# =============================================================================
