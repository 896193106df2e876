"""Tests for the REST client used by the console UI."""

import unittest
from unittest.mock import MagicMock

from cli.api_client import LingoAPIClient


class TestLingoAPIClient(unittest.TestCase):

    def setUp(self):
        self.client = LingoAPIClient('http://example.test:8000/')
        self.client.session = MagicMock()
        self.response = MagicMock()
        self.response.json.return_value = {'ok': True}
        self.client.session.get.return_value = self.response
        self.client.session.post.return_value = self.response
        self.client.session.delete.return_value = self.response

    def test_strips_trailing_slash(self):
        self.assertEqual(self.client.base_url, 'http://example.test:8000')

    def test_swipe_posts_direction(self):
        self.assertEqual(self.client.swipe('abc', 'right'), {'ok': True})
        self.client.session.post.assert_called_once_with(
            'http://example.test:8000/api/review/abc/swipe', json={'direction': 'right'}
        )
        self.response.raise_for_status.assert_called_once()

    def test_answer_sends_selection(self):
        self.client.answer('q1', selection=['a', 'b'])
        self.client.session.post.assert_called_once_with(
            'http://example.test:8000/api/quiz/q1/answer',
            json={'answer': None, 'selection': ['a', 'b']}
        )

    def test_categories_unwraps_list(self):
        self.response.json.return_value = {'categories': ['food']}
        self.assertEqual(self.client.get_categories(), ['food'])

    def test_close_quiz_uses_delete(self):
        self.client.close_quiz('q1')
        self.client.session.delete.assert_called_once_with(
            'http://example.test:8000/api/quiz/q1'
        )

    def test_close_review_uses_delete(self):
        self.client.close_review('r1')
        self.client.session.delete.assert_called_once_with(
            'http://example.test:8000/api/review/r1'
        )

    def test_list_words_sends_only_given_filters(self):
        self.client.list_words(search='app', favorite=False)
        self.client.session.get.assert_called_once_with(
            'http://example.test:8000/api/words',
            params={'sort': 'alphabetical', 'search': 'app', 'favorite': 'false'}
        )


if __name__ == '__main__':
    unittest.main()
