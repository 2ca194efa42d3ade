"""
Uploads registration files (ID photos, selfie, authorization) to the image host.
"""

import hashlib
import logging
import threading
import time
from typing import Optional

import requests

from . import config
from .errors import UploadError

logger = logging.getLogger(__name__)

UPLOAD_TIMEOUT = 60


class CloudinaryUploader:
    """Signed uploads through the Cloudinary REST API"""

    def __init__(self, cloud_name: Optional[str] = None, api_key: Optional[str] = None,
                 api_secret: Optional[str] = None, folder: Optional[str] = None,
                 session: Optional[requests.Session] = None):
        self.cloud_name = cloud_name if cloud_name is not None else config.CLOUDINARY_CLOUD_NAME
        self.api_key = api_key if api_key is not None else config.CLOUDINARY_API_KEY
        self.api_secret = api_secret if api_secret is not None else config.CLOUDINARY_API_SECRET
        self.folder = folder or config.CLOUDINARY_FOLDER
        self._session = session
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        """Injected session, or one per thread"""
        if self._session is not None:
            return self._session
        session = getattr(self._local, 'session', None)
        if session is None:
            session = self._local.session = requests.Session()
        return session

    @property
    def upload_url(self) -> str:
        return f"https://api.cloudinary.com/v1_1/{self.cloud_name}/auto/upload"

    def sign(self, params: dict) -> str:
        """SHA-1 signature over the sorted parameters followed by the API secret"""
        to_sign = '&'.join(f"{key}={params[key]}" for key in sorted(params))
        return hashlib.sha1((to_sign + self.api_secret).encode('utf-8')).hexdigest()

    def upload(self, data: bytes, public_id: str, filename: str = 'upload',
               content_type: str = 'application/octet-stream') -> str:
        """Upload ``data`` and return its HTTPS URL"""
        if not self.cloud_name or not self.api_key or not self.api_secret:
            raise UploadError("Image host credentials are not configured")

        params = {
            'folder': self.folder,
            'public_id': public_id,
            'timestamp': int(time.time()),
        }
        payload = dict(params, api_key=self.api_key, signature=self.sign(params))

        try:
            response = self.session.post(
                self.upload_url,
                data=payload,
                files={'file': (filename, data, content_type)},
                timeout=UPLOAD_TIMEOUT
            )
        except requests.RequestException as e:
            raise UploadError(f"Upload of {public_id} failed: {e}")

        if response.status_code != 200:
            logger.error("Upload of %s rejected: HTTP %s %s", public_id, response.status_code, response.text[:200])
            raise UploadError(f"Upload of {public_id} was rejected (HTTP {response.status_code})")

        try:
            secure_url = response.json()['secure_url']
        except (ValueError, KeyError):
            raise UploadError(f"Upload of {public_id} returned no URL")

        logger.info("Uploaded %s to %s", public_id, secure_url)
        return secure_url
