"""
Utilities Package for the Tubely backend.

Modules:
--------
file_validator:
    Upload checks and storage-key naming:
    - Video id, content type and size validation
    - Random 256-bit storage keys for videos and thumbnails

logger:
    Logging configuration:
    - JSONFormatter / StandardFormatter
    - setup_logging for application-wide configuration
    - add_log_context for per-upload context fields
"""
