"""
Upload allow-lists and blocklists used by the validation layers
"""

ALLOWED_IMAGE_TYPES = [
    'image/jpeg',
    'image/jpg',
    'image/png',
    'image/gif',
    'image/webp',
    'image/svg+xml',
]

ALLOWED_VIDEO_TYPES = [
    'video/mp4',
    'video/webm',
    'video/ogg',
    'video/avi',
    'video/mov',
    'video/wmv',
]

# Case-insensitive patterns for text, titles and filenames
SUSPICIOUS_PATTERNS = [
    r'adult',
    r'nsfw',
    r'porn',
    r'xxx',
    r'explicit',
    r'nude',
    r'sexy',
    r'hot',
    r'fetish',
    r'bdsm',
    r'erotic',
    r'intimate',
    r'private',
    r'personal',
    r'naked',
    r'undressed',
]

# Substrings checked in external URLs
SUSPICIOUS_DOMAINS = [
    'adult',
    'porn',
    'xxx',
    'nsfw',
    'nude',
    'sexy',
    'explicit',
]

# Post types and the domain collection they publish into
POST_TYPE_ALIASES = {
    'lostitem': 'lostitem',
    'skill': 'skill',
    'note': 'resource',
    'notes': 'resource',
    'resource': 'resource',
}
