"""
Tubely Backend Application Package

This package contains the Tubely FastAPI application for hosting user videos.
The service provides:

- Multipart video and thumbnail intake with media type allow-lists
- Aspect ratio classification of uploaded videos through ffprobe
- Storage of videos in S3-compatible object storage under
  classification-prefixed keys
- Short-lived presigned playback URLs generated at read time

Package Structure:
- api/: REST API endpoints organized by version (v1)
- core/: Core infrastructure (database, auth, error taxonomy)
- models/: Pydantic data models for videos and locators
- services/: Upload pipeline stages and playback signing
- utils/: Logging and object key helpers
"""

__version__ = "1.0.0"
__app_name__ = "tubely"
