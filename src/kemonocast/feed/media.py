"""
Audio file detection by file name.
"""

from typing import Optional

# Extensions treated as podcast episodes
AUDIO_EXTENSIONS = (".mp3", ".m4a", ".wav", ".ogg", ".aac", ".flac")

MIME_TYPES = {
    ".mp3": "audio/mpeg",
    ".m4a": "audio/mp4",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".aac": "audio/aac",
    ".flac": "audio/flac",
}

DEFAULT_MIME_TYPE = "audio/mpeg"


def is_audio_file(filename: Optional[str]) -> bool:
    """Case-insensitive check of the file name against AUDIO_EXTENSIONS."""
    if not filename:
        return False
    return filename.lower().endswith(AUDIO_EXTENSIONS)


def get_mime_type(filename: Optional[str]) -> str:
    """
    Map an audio file name to its MIME type.

    Args:
        filename: File name (only the extension matters)

    Returns:
        MIME type, ``audio/mpeg`` when the extension is unknown
    """
    if not filename:
        return DEFAULT_MIME_TYPE
    lower = filename.lower()
    for extension, mime_type in MIME_TYPES.items():
        if lower.endswith(extension):
            return mime_type
    return DEFAULT_MIME_TYPE
