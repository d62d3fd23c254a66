# =============================================================================
# API Package — FastAPI Route Handlers
# =============================================================================
#   - files.py: Upload into a storage bucket (runs the ingestion trigger)
#   - functions.py: POST /process, /embed, /search
#   - deps.py: Service bearer-token dependency
# =============================================================================
