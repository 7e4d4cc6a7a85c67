"""
Services module for the Tubely backend.

Business logic behind the upload endpoints:

- upload_service: Video and thumbnail upload orchestration
- video_service: Video record reads and versioned write-back
- media_probe: ffprobe invocation and orientation classification
- storage_service: S3 and local-disk asset stores
- thumbnail_registry: In-memory thumbnail map for the ``memory`` backend

Services are plain classes wired together by FastAPI dependencies.
"""
