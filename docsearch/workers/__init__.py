# =============================================================================
# Workers Package — Celery Background Tasks
# =============================================================================
#   - celery_app.py: Celery application configuration
#   - tasks.py: dispatch_processing (trigger call), embed_sections (batch)
# =============================================================================
