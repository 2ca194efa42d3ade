import unittest
from io import BytesIO
from unittest import mock

# Add the project root to the path
import os
import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from openpyxl import load_workbook
from PIL import Image

from rosterdesk.errors import FetchError
from rosterdesk.models import Player
from rosterdesk.reports import build_players_workbook
from rosterdesk.reports.branding import SPREADSHEET_HEADERS


def jpeg_bytes():
    buffer = BytesIO()
    Image.new('RGB', (160, 100), (10, 160, 60)).save(buffer, format='JPEG')
    return buffer.getvalue()


def make_player(first_name='Carlos', number=10, selfie=True):
    base = 'https://res.cloudinary.com/demo/image/upload/v1/Futbol/'
    return Player(
        team_code='HAL-01',
        team='Halcones',
        first_name=first_name,
        last_name='Mendoza',
        dob='2001-03-09',
        age=23,
        identification=f'ID-{number}',
        number=number,
        id_image_url=base + 'front.jpg',
        id_back_image_url=base + 'back.jpg',
        selfie_image_url=base + 'selfie.jpg' if selfie else None,
    )


class TestPlayersWorkbook(unittest.TestCase):
    def setUp(self):
        self.fetcher = mock.Mock()
        self.fetcher.fetch.return_value = jpeg_bytes()

    def load(self, data):
        return load_workbook(BytesIO(data))

    def test_header_row(self):
        """Test that the header row has the ten export columns"""
        wb = self.load(build_players_workbook([], fetcher=self.fetcher))
        ws = wb.active
        self.assertEqual(ws.title, 'Players')
        headers = [cell.value for cell in ws[1]]
        self.assertEqual(headers, list(SPREADSHEET_HEADERS))
        self.assertEqual(len(headers), 10)
        self.assertTrue(ws['A1'].font.bold)

    def test_player_rows(self):
        players = [make_player('Carlos', 10), make_player('Luis', 7)]
        ws = self.load(build_players_workbook(players, fetcher=self.fetcher)).active

        self.assertEqual(ws.max_row, 3)
        row = [cell.value for cell in ws[2]]
        self.assertEqual(row[:7], ['Carlos', 'Mendoza', '23 YEARS', '09/03/2001', 'ID-10', 10, 'Halcones'])
        self.assertEqual(ws['A3'].value, 'Luis')
        self.assertEqual(ws.row_dimensions[2].height, 80)

    def test_images_embedded(self):
        players = [make_player()]
        ws = self.load(build_players_workbook(players, fetcher=self.fetcher)).active
        self.assertEqual(len(ws._images), 3)
        self.assertEqual(self.fetcher.fetch.call_count, 3)
        requested = self.fetcher.fetch.call_args_list[0][0][0]
        self.assertIn('/upload/f_jpg,fl_force_strip,q_auto:good,w_800,c_limit/', requested)

    def test_raster_format_and_width(self):
        build_players_workbook([make_player()], fetcher=self.fetcher, raster_format='png', max_width=400)
        requested = self.fetcher.fetch.call_args_list[0][0][0]
        self.assertIn('/upload/f_png,fl_force_strip,q_auto:good,w_400,c_limit/', requested)

    def test_missing_selfie_left_blank(self):
        ws = self.load(build_players_workbook([make_player(selfie=False)], fetcher=self.fetcher)).active
        self.assertEqual(len(ws._images), 2)
        self.assertEqual(self.fetcher.fetch.call_count, 2)

    def test_failed_fetch_does_not_abort_export(self):
        self.fetcher.fetch.side_effect = FetchError("timed out")
        data = build_players_workbook([make_player(), make_player('Luis', 7)], fetcher=self.fetcher)
        ws = self.load(data).active
        self.assertEqual(ws.max_row, 3)
        self.assertEqual(len(ws._images), 0)


if __name__ == '__main__':
    unittest.main()
