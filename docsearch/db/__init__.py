# =============================================================================
# Database Package
# =============================================================================
# Async + sync SQLAlchemy engines and the ORM models:
#   - StorageObject, Document, DocumentSection (pgvector embedding column)
# =============================================================================
