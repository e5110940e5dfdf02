"""Remote object key naming for uploaded videos."""

from pathlib import PurePath

from tubely.models.video import AspectRatio


def derive_object_key(local_name: str, aspect: AspectRatio) -> str:
    """
    Build the object key ``{prefix}/{basename}`` for a staged file.

    Only the base name of ``local_name`` is used, so the staging directory
    never leaks into the bucket layout.

    Example:
        >>> derive_object_key("/tmp/tubely-upload-abc.mp4", AspectRatio.LANDSCAPE)
        'landscape/tubely-upload-abc.mp4'
    """
    return f"{aspect.key_prefix}/{PurePath(local_name).name}"


__all__ = ["derive_object_key"]
