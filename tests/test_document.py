import unittest
from io import BytesIO
from unittest import mock

# Add the project root to the path
import os
import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from docx import Document
from PIL import Image

from rosterdesk.errors import FetchError
from rosterdesk.models import Player
from rosterdesk.reports import branding, build_roster_document


def png_bytes():
    buffer = BytesIO()
    Image.new('RGB', (120, 80), (90, 90, 200)).save(buffer, format='PNG')
    return buffer.getvalue()


def make_player(first_name='Andrés', last_name='Paredes', number=9, selfie=True):
    base = 'https://res.cloudinary.com/demo/image/upload/v1/Futbol/'
    return Player(
        team_code='HAL-01',
        team='Halcones',
        first_name=first_name,
        last_name=last_name,
        dob='2007-11-30',
        age=16,
        identification=f'0912{number:04d}',
        number=number,
        id_image_url=base + 'front.jpg',
        id_back_image_url=base + 'back.jpg',
        selfie_image_url=base + 'selfie.jpg' if selfie else None,
        authorization_url=base + 'aut.pdf',
    )


class TestRosterDocument(unittest.TestCase):
    def setUp(self):
        self.fetcher = mock.Mock()
        self.fetcher.fetch.return_value = png_bytes()

    def build(self, players):
        return Document(BytesIO(build_roster_document('Halcones', players, fetcher=self.fetcher)))

    def test_page_setup(self):
        section = self.build([]).sections[0]
        self.assertEqual(section.page_width.twips, 11906)
        self.assertEqual(section.page_height.twips, 16838)
        self.assertEqual(section.left_margin.twips, 720)
        self.assertEqual(section.top_margin.twips, 720)

    def test_headings_and_table(self):
        doc = self.build([make_player(), make_player('Bruno', 'Aguirre', 4)])
        texts = [p.text for p in doc.paragraphs]
        self.assertEqual(texts[0], 'Halcones')
        self.assertEqual(texts[1], branding.DOCUMENT_SUBTITLE)

        table = doc.tables[0]
        self.assertEqual(len(table.rows), 3)
        self.assertEqual([cell.text for cell in table.rows[0].cells],
                         [column.title for column in branding.ROSTER_COLUMNS])
        first_row = [cell.text for cell in table.rows[1].cells]
        self.assertEqual(first_row[:7], ['Andrés', 'Paredes', '16', '30/11/2007', '09120009', '9', 'Halcones'])

    def test_selfie_embedded_as_archive_png(self):
        doc = self.build([make_player()])
        self.assertEqual(len(doc.inline_shapes), 1)
        requested = self.fetcher.fetch.call_args[0][0]
        self.assertIn('/upload/f_png,fl_force_strip,q_auto:good,w_800/', requested)

    def test_placeholder_without_selfie(self):
        doc = self.build([make_player(selfie=False)])
        self.fetcher.fetch.assert_not_called()
        self.assertEqual(doc.tables[0].rows[1].cells[7].text, branding.NO_IMAGE_TEXT)
        self.assertEqual(len(doc.inline_shapes), 0)

    def test_placeholder_on_fetch_failure(self):
        self.fetcher.fetch.side_effect = FetchError("timed out")
        doc = self.build([make_player()])
        self.assertEqual(doc.tables[0].rows[1].cells[7].text, branding.NO_IMAGE_TEXT)

    def test_declaration_and_signatures(self):
        texts = [p.text for p in self.build([make_player()]).paragraphs]
        self.assertIn(branding.DECLARATION_TEXT, texts)
        self.assertIn(branding.SIGNATURE_LABEL, texts)
        self.assertIn(branding.OFFICIAL_NAME_LINE, texts)
        self.assertIn(branding.OFFICIAL_ID_LINE, texts)
        self.assertLess(texts.index(branding.DECLARATION_TEXT), texts.index(branding.SIGNATURE_LABEL))


if __name__ == '__main__':
    unittest.main()
