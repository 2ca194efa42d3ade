import hashlib
import threading
import unittest
from unittest import mock

# Add the project root to the path
import os
import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import requests

from rosterdesk.errors import UploadError
from rosterdesk.uploads import UPLOAD_TIMEOUT, CloudinaryUploader


def make_uploader(session=None):
    return CloudinaryUploader(cloud_name='demo', api_key='key123', api_secret='s3cret',
                              folder='Futbol', session=session)


class TestCloudinaryUploader(unittest.TestCase):
    def setUp(self):
        self.session = mock.Mock()
        self.uploader = make_uploader(self.session)

    def test_sign(self):
        """Test that parameters are signed sorted, secret appended"""
        expected = hashlib.sha1(b'folder=Futbol&public_id=selfie_1&timestamp=100s3cret').hexdigest()
        params = {'timestamp': 100, 'public_id': 'selfie_1', 'folder': 'Futbol'}
        self.assertEqual(self.uploader.sign(params), expected)

    def test_upload_returns_secure_url(self):
        response = mock.Mock(status_code=200)
        response.json.return_value = {'secure_url': 'https://res.cloudinary.com/demo/image/upload/v1/x.jpg'}
        self.session.post.return_value = response

        url = self.uploader.upload(b'data', 'selfie_1', filename='me.jpg', content_type='image/jpeg')
        self.assertEqual(url, 'https://res.cloudinary.com/demo/image/upload/v1/x.jpg')

        args, kwargs = self.session.post.call_args
        self.assertEqual(args[0], 'https://api.cloudinary.com/v1_1/demo/auto/upload')
        self.assertEqual(kwargs['timeout'], UPLOAD_TIMEOUT)
        self.assertEqual(kwargs['data']['api_key'], 'key123')
        self.assertEqual(kwargs['data']['public_id'], 'selfie_1')
        self.assertEqual(kwargs['files']['file'], ('me.jpg', b'data', 'image/jpeg'))

    def test_rejected_upload(self):
        self.session.post.return_value = mock.Mock(status_code=401, text='bad signature')
        with self.assertRaises(UploadError):
            self.uploader.upload(b'data', 'selfie_1')

    def test_network_failure(self):
        self.session.post.side_effect = requests.ConnectionError("down")
        with self.assertRaises(UploadError):
            self.uploader.upload(b'data', 'selfie_1')

    def test_missing_url_in_response(self):
        response = mock.Mock(status_code=200)
        response.json.return_value = {}
        self.session.post.return_value = response
        with self.assertRaises(UploadError):
            self.uploader.upload(b'data', 'selfie_1')

    def test_missing_credentials(self):
        uploader = CloudinaryUploader(cloud_name='', api_key='', api_secret='', session=self.session)
        with self.assertRaises(UploadError):
            uploader.upload(b'data', 'selfie_1')
        self.session.post.assert_not_called()

    def test_session_per_thread(self):
        uploader = make_uploader()
        main_session = uploader.session
        self.assertIs(uploader.session, main_session)

        other = []
        worker = threading.Thread(target=lambda: other.append(uploader.session))
        worker.start()
        worker.join()
        self.assertIsNot(other[0], main_session)


if __name__ == '__main__':
    unittest.main()
