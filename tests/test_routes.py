import unittest
import base64
import tempfile
from datetime import date
from io import BytesIO
from unittest import mock

# Add the project root to the path
import os
import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from openpyxl import load_workbook
from PIL import Image

from rosterdesk.main import create_app
from rosterdesk.models import Player

TEAM = 'Halcones'
CODE = 'HAL-01'
ADMIN_USER = 'admin'
ADMIN_PASS = 'league-secret'
ALLOWED_ORIGIN = 'http://localhost:5173'


def png_bytes():
    buffer = BytesIO()
    Image.new('RGB', (40, 30), (220, 20, 60)).save(buffer, format='PNG')
    return buffer.getvalue()


def birth_date_for_age(years):
    return date(date.today().year - years, 1, 1).isoformat()


def basic_auth(username=ADMIN_USER, password=ADMIN_PASS):
    token = base64.b64encode(f"{username}:{password}".encode('utf-8')).decode('ascii')
    return {'Authorization': f'Basic {token}'}


class RouteTestCase(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.app = create_app({
            'TESTING': True,
            'DATA_DIR': self.temp_dir,
            'ADMIN_USER': ADMIN_USER,
            'ADMIN_PASS': ADMIN_PASS,
            'RATELIMIT_ENABLED': False,
            'LOGO_PATH': '',
            'CORS_ALLOWED_ORIGINS': [ALLOWED_ORIGIN],
        })
        self.storage = self.app.extensions['storage']

        self.uploader = mock.Mock()
        self.uploader.upload.side_effect = (
            lambda data, public_id, **kwargs: f'https://res.cloudinary.com/demo/image/upload/v1/Futbol/{public_id}'
        )
        self.app.extensions['uploader'] = self.uploader

        self.fetcher = mock.Mock()
        self.fetcher.fetch.return_value = png_bytes()
        self.app.extensions['image_fetcher'] = self.fetcher

        self.client = self.app.test_client()

        self.official = self.storage.create_official('coach', 'secret123', TEAM)
        self.team = self.storage.link_team_to_official(TEAM, self.official.id)
        self.team.code = CODE
        self.storage.save_team(self.team)

    def tearDown(self):
        import shutil
        shutil.rmtree(self.temp_dir)

    def registration_form(self, **overrides):
        form = {
            'team_code': CODE,
            'first_name': 'Carlos Andrés',
            'last_name': 'Mendoza',
            'dob': birth_date_for_age(25),
            'identification': '1712345678',
            'number': '10',
            'id_image': (BytesIO(png_bytes()), 'front.png', 'image/png'),
            'id_back_image': (BytesIO(png_bytes()), 'back.png', 'image/png'),
            'selfie_image': (BytesIO(png_bytes()), 'selfie.png', 'image/png'),
        }
        form.update(overrides)
        return {key: value for key, value in form.items() if value is not None}

    def register(self, **overrides):
        return self.client.post('/api/users', data=self.registration_form(**overrides),
                                content_type='multipart/form-data')

    def add_player(self, identification, number, last_name='Mendoza', created_at='2024-03-01T10:00:00', **kwargs):
        player = Player(
            team_code=CODE,
            team=TEAM,
            first_name='Luis',
            last_name=last_name,
            dob='2000-01-01',
            age=24,
            identification=identification,
            number=number,
            id_image_url='https://res.cloudinary.com/demo/image/upload/v1/front.jpg',
            id_back_image_url='https://res.cloudinary.com/demo/image/upload/v1/back.jpg',
            selfie_image_url='https://res.cloudinary.com/demo/image/upload/v1/selfie.jpg',
            created_at=created_at,
            **kwargs
        )
        self.storage.save_player(player)
        return player


class TestPublicRoutes(RouteTestCase):
    def test_health(self):
        response = self.client.get('/health')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['status'], 'healthy')

    def test_unknown_api_path_returns_json(self):
        response = self.client.get('/api/does-not-exist')
        self.assertEqual(response.status_code, 404)
        self.assertFalse(response.get_json()['success'])

    def test_validate_team_code(self):
        response = self.client.get(f'/api/teams/validate/{CODE}')
        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertEqual(data['name'], TEAM)
        self.assertEqual(data['official_id'], self.official.id)

        self.assertEqual(self.client.get('/api/teams/validate/NOPE').status_code, 404)

    def test_list_players_newest_first(self):
        older = self.add_player('A1', 1, created_at='2024-01-01T10:00:00')
        newer = self.add_player('A2', 2, created_at='2024-02-01T10:00:00')
        data = self.client.get('/api/users').get_json()
        self.assertEqual([p['id'] for p in data], [newer.id, older.id])

    def test_team_players_hide_image_urls(self):
        self.add_player('A1', 1)
        response = self.client.get(f'/api/teams/{CODE}/players')
        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertEqual(data['team'], TEAM)
        self.assertEqual(len(data['players']), 1)
        self.assertNotIn('selfie_image_url', data['players'][0])
        self.assertNotIn('id_image_url', data['players'][0])

    def test_cors_preflight(self):
        headers = {'Origin': ALLOWED_ORIGIN, 'Access-Control-Request-Method': 'POST'}
        response = self.client.options('/api/users', headers=headers)
        self.assertEqual(response.status_code, 204)
        self.assertEqual(response.headers['Access-Control-Allow-Origin'], ALLOWED_ORIGIN)

        headers['Origin'] = 'https://evil.example.com'
        response = self.client.options('/api/users', headers=headers)
        self.assertEqual(response.status_code, 403)
        self.assertNotIn('Access-Control-Allow-Origin', response.headers)

    def test_security_headers(self):
        response = self.client.get('/api/users', headers={'Origin': ALLOWED_ORIGIN})
        self.assertEqual(response.headers['X-Content-Type-Options'], 'nosniff')
        self.assertEqual(response.headers['Access-Control-Allow-Origin'], ALLOWED_ORIGIN)
        self.assertIn('Content-Disposition', response.headers['Access-Control-Expose-Headers'])


class TestRegistration(RouteTestCase):
    def test_register_adult(self):
        response = self.register()
        self.assertEqual(response.status_code, 200, response.get_json())
        data = response.get_json()
        self.assertTrue(data['success'])

        player = self.storage.get_player(data['player_id'])
        self.assertEqual(player.team, TEAM)
        self.assertEqual(player.age, 25)
        self.assertEqual(player.number, 10)
        self.assertIsNone(player.authorization_url)
        self.assertIn('selfie_1712345678_', player.selfie_image_url)
        self.assertEqual(self.uploader.upload.call_count, 3)

    def test_register_accepts_day_first_date(self):
        dob = date(date.today().year - 30, 1, 1).strftime('%d/%m/%Y')
        response = self.register(dob=dob)
        self.assertEqual(response.status_code, 200)
        player = self.storage.get_player(response.get_json()['player_id'])
        self.assertEqual(player.age, 30)

    def test_register_minor_requires_authorization(self):
        response = self.register(dob=birth_date_for_age(16))
        self.assertEqual(response.status_code, 400)
        self.assertIn('Authorization required', response.get_json()['errors'][0])
        self.uploader.upload.assert_not_called()

    def test_register_minor_with_pdf_authorization(self):
        response = self.register(
            dob=birth_date_for_age(16),
            authorization=(BytesIO(b'%PDF-1.4 signed form'), 'aut.pdf', 'application/pdf')
        )
        self.assertEqual(response.status_code, 200, response.get_json())
        player = self.storage.get_player(response.get_json()['player_id'])
        self.assertIn('aut_1712345678_', player.authorization_url)
        self.assertEqual(self.uploader.upload.call_count, 4)

    def test_register_under_minimum_age(self):
        response = self.register(dob=birth_date_for_age(12))
        self.assertEqual(response.status_code, 400)
        self.assertIn('under 14', response.get_json()['errors'][0])

    def test_register_invalid_fields(self):
        response = self.register(first_name='Carl0s', number='150')
        self.assertEqual(response.status_code, 400)
        errors = response.get_json()['errors']
        self.assertIn('Invalid first names', errors)
        self.assertIn('Player number must be between 1 and 99', errors)

    def test_register_invalid_date(self):
        response = self.register(dob='1999-13-45')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()['errors'], ['Invalid date'])

    def test_register_unknown_code(self):
        response = self.register(team_code='NOPE')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()['errors'], ['Invalid code'])

    def test_register_missing_images(self):
        response = self.register(selfie_image=None)
        self.assertEqual(response.status_code, 400)
        self.uploader.upload.assert_not_called()

    def test_register_rejects_non_image(self):
        response = self.register(id_image=(BytesIO(b'not really a png'), 'front.png', 'image/png'))
        self.assertEqual(response.status_code, 400)
        self.assertIn('not a valid image', response.get_json()['errors'][0])
        self.assertEqual(len(response.get_json()['errors']), 1)

    def test_register_rejects_wrong_type(self):
        response = self.register(id_image=(BytesIO(b'%PDF-1.4'), 'front.pdf', 'application/pdf'))
        self.assertEqual(response.status_code, 400)

    def test_register_duplicate_identification(self):
        self.add_player('1712345678', 3)
        response = self.register()
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.get_json()['field'], 'identification')

    def test_register_number_taken(self):
        self.add_player('A1', 10)
        response = self.register()
        self.assertEqual(response.status_code, 400)
        self.assertIn('Number 10', response.get_json()['errors'][0])

    def test_register_full_roster(self):
        for number in range(1, 21):
            self.add_player(f'P{number}', number + 20)
        response = self.register()
        self.assertEqual(response.status_code, 400)
        self.assertIn('20 registered players', response.get_json()['errors'][0])

    def test_upload_failure(self):
        from rosterdesk.errors import UploadError
        self.uploader.upload.side_effect = UploadError('rejected')
        response = self.register()
        self.assertEqual(response.status_code, 502)
        self.assertEqual(self.storage.get_all_players(), [])


class TestOfficialRoutes(RouteTestCase):
    def test_login_official(self):
        response = self.client.post('/api/officials/login', json={'username': 'coach', 'password': 'secret123'})
        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertEqual(data['role'], 'official')
        self.assertEqual(data['official_id'], self.official.id)
        self.assertEqual(data['team'], TEAM)

    def test_login_admin(self):
        response = self.client.post('/api/officials/login', json={'username': ADMIN_USER, 'password': ADMIN_PASS})
        self.assertEqual(response.get_json()['role'], 'admin')

    def test_login_rejected(self):
        response = self.client.post('/api/officials/login', json={'username': 'coach', 'password': 'nope'})
        self.assertEqual(response.status_code, 401)
        response = self.client.post('/api/officials/login', json={})
        self.assertEqual(response.status_code, 400)

    def test_official_players_sorted_by_last_name(self):
        self.add_player('A1', 1, last_name='Zambrano')
        self.add_player('A2', 2, last_name='Andrade')
        response = self.client.get(f'/api/officials/{self.official.id}/players')
        self.assertEqual([p['last_name'] for p in response.get_json()], ['Andrade', 'Zambrano'])
        self.assertEqual(self.client.get('/api/officials/missing/players').status_code, 404)

    def test_update_player(self):
        player = self.add_player('A1', 1)
        response = self.client.put(f'/api/players/{player.id}', data={'number': '23', 'first_name': 'Mateo'})
        self.assertEqual(response.status_code, 200, response.get_json())
        updated = self.storage.get_player(player.id)
        self.assertEqual(updated.number, 23)
        self.assertEqual(updated.first_name, 'Mateo')
        self.assertEqual(updated.last_name, player.last_name)

    def test_update_player_replaces_image(self):
        player = self.add_player('A1', 1)
        response = self.client.put(
            f'/api/players/{player.id}',
            data={'selfie_image': (BytesIO(png_bytes()), 'new.png', 'image/png')},
            content_type='multipart/form-data'
        )
        self.assertEqual(response.status_code, 200)
        self.assertIn('selfie_edit_A1_', self.storage.get_player(player.id).selfie_image_url)

    def test_update_player_clears_authorization_for_adult(self):
        player = self.add_player('A1', 1, authorization_url='https://res.cloudinary.com/demo/aut.pdf')
        response = self.client.put(f'/api/players/{player.id}', data={'dob': birth_date_for_age(19)})
        self.assertEqual(response.status_code, 200)
        updated = self.storage.get_player(player.id)
        self.assertEqual(updated.age, 19)
        self.assertIsNone(updated.authorization_url)

    def test_update_player_minor_needs_authorization(self):
        player = self.add_player('A1', 1)
        response = self.client.put(f'/api/players/{player.id}', data={'dob': birth_date_for_age(15)})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.storage.get_player(player.id).dob, '2000-01-01')

    def test_update_player_conflicts(self):
        self.add_player('A1', 1)
        player = self.add_player('A2', 2)
        response = self.client.put(f'/api/players/{player.id}', data={'number': '1'})
        self.assertEqual(response.status_code, 400)
        response = self.client.put(f'/api/players/{player.id}', data={'identification': 'A1'})
        self.assertEqual(response.status_code, 409)
        response = self.client.put('/api/players/missing', data={'number': '5'})
        self.assertEqual(response.status_code, 404)

    def test_delete_player(self):
        player = self.add_player('A1', 1)
        self.assertEqual(self.client.delete(f'/api/players/{player.id}').status_code, 200)
        self.assertIsNone(self.storage.get_player(player.id))
        self.assertEqual(self.client.delete(f'/api/players/{player.id}').status_code, 404)

    def test_pdf_report(self):
        self.add_player('A1', 1)
        response = self.client.get(f'/api/players/report-pdf/{self.official.id}')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.mimetype, 'application/pdf')
        self.assertTrue(response.data.startswith(b'%PDF'))
        self.assertIn('attachment', response.headers['Content-Disposition'])
        self.assertIn('Reporte_Halcones.pdf', response.headers['Content-Disposition'])
        self.assertEqual(response.headers['Cache-Control'], 'no-store')

    def test_docx_report(self):
        self.add_player('A1', 1)
        response = self.client.get(f'/api/players/report/{self.official.id}')
        self.assertEqual(response.status_code, 200)
        self.assertIn('Reporte_Halcones.docx', response.headers['Content-Disposition'])
        self.assertTrue(response.data.startswith(b'PK'))

    def test_report_unknown_official(self):
        response = self.client.get('/api/players/report-pdf/missing')
        self.assertEqual(response.status_code, 404)
        self.assertFalse(response.get_json()['success'])
        self.assertEqual(self.client.get('/api/players/report/missing').status_code, 404)


class TestAdminRoutes(RouteTestCase):
    def test_requires_credentials(self):
        response = self.client.get('/api/admin/session')
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.headers['WWW-Authenticate'], 'Basic realm="Admin Area"')

        response = self.client.get('/api/admin/session', headers=basic_auth(password='wrong'))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(self.client.get('/api/users/export').status_code, 401)

    def test_rejects_other_schemes_and_malformed_basic(self):
        for header in ('Bearer abc.def', 'Basic !!!not-base64', 'Basic ' + base64.b64encode(b'nocolon').decode()):
            response = self.client.get('/api/admin/session', headers={'Authorization': header})
            self.assertEqual(response.status_code, 401)
            self.assertFalse(response.get_json()['success'])

    def test_password_with_colon(self):
        self.app.config['ADMIN_PASS'] = 'pa:ss:word'
        response = self.client.get('/api/admin/session', headers=basic_auth(password='pa:ss:word'))
        self.assertEqual(response.status_code, 200)

    def test_session(self):
        response = self.client.get('/api/admin/session', headers=basic_auth())
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['role'], 'admin')

    def test_export(self):
        self.add_player('A1', 1)
        response = self.client.get('/api/users/export', headers=basic_auth())
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers['Cache-Control'], 'no-store')
        ws = load_workbook(BytesIO(response.data)).active
        self.assertEqual(ws.max_row, 2)
        self.assertEqual(ws['E2'].value, 'A1')

    def test_export_team_filter(self):
        self.add_player('A1', 1)
        response = self.client.get('/api/users/export?team=Leones', headers=basic_auth())
        ws = load_workbook(BytesIO(response.data)).active
        self.assertEqual(ws.max_row, 1)

    def test_officials_crud(self):
        response = self.client.post('/api/admin/officials', headers=basic_auth(),
                                    json={'username': 'delegate', 'password': 'pw', 'team_name': 'Leones'})
        self.assertEqual(response.status_code, 200)
        official_id = response.get_json()['official']['id']
        self.assertEqual(self.storage.get_team_by_name('Leones').official_id, official_id)

        officials = self.client.get('/api/admin/officials', headers=basic_auth()).get_json()
        self.assertEqual(len(officials), 2)
        self.assertNotIn('password_hash', officials[0])

        response = self.client.post('/api/admin/officials', headers=basic_auth(),
                                    json={'username': 'delegate', 'password': 'pw', 'team_name': 'Tigres'})
        self.assertEqual(response.status_code, 409)

        response = self.client.put(f'/api/admin/officials/{official_id}', headers=basic_auth(),
                                   json={'team_name': 'Tigres'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.storage.get_team_by_name('Tigres').official_id, official_id)

        response = self.client.delete(f'/api/admin/officials/{official_id}', headers=basic_auth())
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(self.storage.get_team_by_name('Tigres').official_id)
        self.assertEqual(
            self.client.delete(f'/api/admin/officials/{official_id}', headers=basic_auth()).status_code, 404
        )

    def test_teams(self):
        teams = self.client.get('/api/admin/teams', headers=basic_auth()).get_json()
        self.assertEqual(len(teams), 1)
        self.assertEqual(teams[0]['code'], CODE)
        self.assertEqual(teams[0]['official']['username'], 'coach')

        other = self.storage.create_team('Leones')
        response = self.client.post('/api/admin/teams', headers=basic_auth(),
                                    json={'team_id': other.id, 'code': CODE})
        self.assertEqual(response.status_code, 409)

        response = self.client.post('/api/admin/teams', headers=basic_auth(),
                                    json={'team_id': other.id, 'code': 'LEO-01'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.storage.get_team(other.id).code, 'LEO-01')

        response = self.client.post('/api/admin/teams', headers=basic_auth(),
                                    json={'team_id': other.id, 'code': 'LEO-02'})
        self.assertEqual(response.status_code, 400)

    def test_edit_and_delete_team(self):
        response = self.client.put(f'/api/admin/teams/{self.team.id}', headers=basic_auth(),
                                   json={'name': 'Halcones FC', 'code': ''})
        self.assertEqual(response.status_code, 200)
        team = self.storage.get_team(self.team.id)
        self.assertEqual(team.name, 'Halcones FC')
        self.assertIsNone(team.code)

        self.storage.create_team('Leones')
        response = self.client.put(f'/api/admin/teams/{self.team.id}', headers=basic_auth(),
                                   json={'name': 'Leones'})
        self.assertEqual(response.status_code, 409)

        response = self.client.delete(f'/api/admin/teams/{self.team.id}', headers=basic_auth())
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(self.storage.get_team(self.team.id))
        self.assertEqual(
            self.client.delete(f'/api/admin/teams/{self.team.id}', headers=basic_auth()).status_code, 404
        )


if __name__ == '__main__':
    unittest.main()
