import unicodedata
import re
import os
from typing import List, Optional

IMAGE_MEDIA_TYPES = {
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'gif': 'image/gif',
    'bmp': 'image/bmp',
    'svg': 'image/svg+xml',
    'webp': 'image/webp',
    'tif': 'image/tiff',
    'tiff': 'image/tiff',
    'heic': 'image/heic',
}


def sanitize_filename(filename: str, max_length: int = 100) -> str:
    """
    Sanitize an uploaded filename so it can be used as an object name.
    Removes path separators and control characters, normalizes unicode,
    and limits length while keeping the extension.
    """
    if not filename:
        return "image"

    # Browsers may send a full client-side path
    filename = filename.replace('\\', '/').split('/')[-1]

    filename = unicodedata.normalize('NFKD', filename)
    filename = filename.encode('ascii', 'ignore').decode('ascii')

    # Invalid chars: < > : " | ? * \ / and control characters
    filename = re.sub(r'[<>:"|?*\\/\x00-\x1f\x7f]', '_', filename)

    filename = filename.strip('. ')
    filename = re.sub(r'[_\s]+', '_', filename)
    filename = re.sub(r'^[._-]+', '', filename)
    filename = re.sub(r'\.\.+', '.', filename)

    if len(filename) > max_length:
        name_part, ext_part = os.path.splitext(filename)
        max_name_length = max_length - len(ext_part)
        if max_name_length > 0:
            filename = name_part[:max_name_length] + ext_part
        else:
            filename = filename[:max_length]

    filename = filename.rstrip('. ')

    if not filename or filename in ['', '.', '_']:
        return "image"

    return filename


def get_media_type_for_file(filename: str) -> Optional[str]:
    """Return the image MIME type for a filename, or None if it is not an image."""
    if '.' not in filename:
        return None
    return IMAGE_MEDIA_TYPES.get(filename.rsplit('.', 1)[-1].lower())


def parse_tags(raw: Optional[str]) -> List[str]:
    """Split a comma separated tag string into trimmed, lower-cased, unique tags."""
    if not raw:
        return []
    tags = []
    for tag in raw.split(','):
        tag = tag.strip().lower()
        if tag and tag not in tags:
            tags.append(tag)
    return tags
