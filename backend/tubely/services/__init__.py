"""
Service layer for Tubely.

The upload pipeline is built from small services that are wired together by
``VideoUploadService``: intake, staging, media probing, object storage and the
video record store. ``PlaybackService`` covers the read path.
"""
