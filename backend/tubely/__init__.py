"""
Tubely Backend Application Package

FastAPI service that accepts video and thumbnail uploads for existing video
records:

- Bearer JWT authentication and owner-only mutation
- ffprobe-based orientation classification of uploaded videos
- S3 storage for videos; local disk, S3 or in-memory storage for thumbnails
- Versioned write-back of video records in MongoDB

Package Structure:
- api/: REST API endpoints organized by version (v1)
- core/: Core infrastructure (auth, database, errors)
- models/: Pydantic data models
- services/: Upload pipeline, storage backends, media probing
- utils/: Validation, naming and logging helpers
"""

__version__ = "1.0.0"
