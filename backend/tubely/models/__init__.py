"""
Models Package for Tubely.

Pydantic models shared by the record store, the upload services and the API.

Models Overview:
    - Video: Video record with owner and asset URLs
"""

from tubely.models.video import Video


__all__ = ["Video"]
