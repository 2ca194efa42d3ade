"""
Configuration constants for RosterDesk
"""
import os

# Storage
DATA_DIR = os.environ.get('DATA_DIR', 'data')

# Admin credentials for the HTTP Basic protected area
ADMIN_USER = os.environ.get('ADMIN_USER', '')
ADMIN_PASS = os.environ.get('ADMIN_PASS', '')

# Image hosting (uploads and URL transforms)
CLOUDINARY_CLOUD_NAME = os.environ.get('CLOUDINARY_CLOUD_NAME', '')
CLOUDINARY_API_KEY = os.environ.get('CLOUDINARY_API_KEY', '')
CLOUDINARY_API_SECRET = os.environ.get('CLOUDINARY_API_SECRET', '')
CLOUDINARY_FOLDER = os.environ.get('CLOUDINARY_FOLDER', 'Futbol')
IMAGE_HOST = os.environ.get('IMAGE_HOST', 'res.cloudinary.com')

# Remote image retrieval
IMAGE_FETCH_TIMEOUT = float(os.environ.get('IMAGE_FETCH_TIMEOUT', '20'))
MAX_IMAGE_BYTES = int(os.environ.get('MAX_IMAGE_BYTES', str(15 * 1024 * 1024)))

# League logo used for the report header and watermark (optional, empty = none)
LOGO_PATH = os.environ.get('LOGO_PATH', '')

# CORS allow-list, comma separated origins
CORS_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.environ.get(
        'CORS_ALLOWED_ORIGINS',
        'http://localhost:5173,http://localhost:3000'
    ).split(',')
    if origin.strip()
]

# Registration rules
MAX_PLAYERS_PER_TEAM = 20
MIN_PLAYER_AGE = 14
AUTHORIZATION_REQUIRED_UNDER = 18
MIN_JERSEY_NUMBER = 1
MAX_JERSEY_NUMBER = 99
MAX_UPLOAD_SIZE = 10 * 1024 * 1024  # 10 MB

LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
