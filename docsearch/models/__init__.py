# =============================================================================
# Models Package — Pydantic V2 Schemas
# =============================================================================
# Request/response bodies of the HTTP API. Separate from the ORM models in
# docsearch/db/models.py; embedding vectors never appear in a response.
# =============================================================================
