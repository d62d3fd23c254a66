# =============================================================================
# Document Search Pipeline
# =============================================================================
# Upload documents, split them into markdown sections, embed each section and
# search the sections by vector similarity.
#
# Package structure:
#   docsearch/
#   ├── api/          → FastAPI route handlers (files, process, embed, search)
#   ├── db/           → Database engine, sessions and ORM models
#   ├── models/       → Pydantic V2 request/response schemas
#   ├── services/     → Sanitizer, embedding adapter, batch runner, trigger,
#   │                    segmenter, processor, storage, search
#   └── workers/      → Celery app and task definitions
# =============================================================================
