"""Tests for the HTTP API."""

import os
import shutil
import tempfile
import unittest
from datetime import datetime, timedelta

from fastapi.testclient import TestClient

import server.app as app_module
from core.models import MasteryLevel, Word
from server.file_storage import FileStorage
from mocks import MockClock


class TestAPI(unittest.TestCase):

    def setUp(self):
        self.state_dir = tempfile.mkdtemp()
        self.storage = FileStorage(
            state_dir=self.state_dir,
            config_file=os.path.join(self.state_dir, 'config.json')
        )
        self.storage.add_words([
            Word('bread', '面包', 'food', word_id='w1'),
            Word('milk', '牛奶', 'food', word_id='w2'),
            Word('airport', '机场', 'travel', word_id='w3'),
            Word('ticket', '票;罚单', 'travel', word_id='w4'),
        ])
        app_module.storage = self.storage
        app_module.review_sessions.clear()
        app_module.quiz_sessions.clear()
        app_module.last_used.clear()
        self.original_clock = app_module.clock

    def tearDown(self):
        app_module.storage = None
        app_module.clock = self.original_clock
        shutil.rmtree(self.state_dir)

    def client(self):
        return TestClient(app_module.create_app())

    def update_word(self, word_id, **changes):
        word = self.storage.get_word(word_id)
        for name, value in changes.items():
            setattr(word, name, value)
        self.storage.save(word)

    def test_root(self):
        with self.client() as client:
            response = client.get('/')
        self.assertEqual(response.json(), {'status': 'ok', 'service': 'lingo'})

    def test_list_words_and_categories(self):
        with self.client() as client:
            words = client.get('/api/words', params={'category': 'food'}).json()
            categories = client.get('/api/categories').json()
        self.assertEqual(words['total'], 2)
        self.assertEqual(categories['categories'], ['food', 'travel'])

    def test_list_words_filters_and_sorts(self):
        self.update_word('w2', mastery_level=MasteryLevel.MASTERED, is_favorite=True)
        with self.client() as client:
            searched = client.get('/api/words', params={'search': 'AIR'}).json()
            mastered = client.get('/api/words', params={'mastery': 'mastered'}).json()
            favorites = client.get('/api/words', params={'favorite': 'true'}).json()
            reverse = client.get('/api/words', params={'sort': 'alphabeticalReverse'}).json()
            by_mastery = client.get('/api/words', params={'sort': 'mastery'}).json()

        self.assertEqual([w['term'] for w in searched['words']], ['airport'])
        self.assertEqual(searched['total'], 1)
        self.assertEqual([w['id'] for w in mastered['words']], ['w2'])
        self.assertEqual([w['id'] for w in favorites['words']], ['w2'])
        self.assertEqual([w['term'] for w in reverse['words']],
                         ['ticket', 'milk', 'bread', 'airport'])
        self.assertEqual(by_mastery['words'][-1]['term'], 'milk')
        self.assertEqual(searched['counts'], {
            'total': 4, 'favorites': 1,
            'new': 3, 'learning': 0, 'reviewing': 0, 'mastered': 1
        })

    def test_list_words_rejects_unknown_options(self):
        with self.client() as client:
            self.assertEqual(
                client.get('/api/words', params={'mastery': 'expert'}).status_code, 400)
            self.assertEqual(
                client.get('/api/words', params={'sort': 'random'}).status_code, 400)

    def test_progress_reports_words_due_and_goal(self):
        with self.client() as client:
            progress = client.get('/api/progress').json()
            self.assertEqual(progress['words_due'], 0)
            self.assertEqual(progress['goal_progress'], 0.0)

            self.update_word('w3', next_review_date=datetime.now() - timedelta(days=1))
            progress = client.get('/api/progress').json()
        self.assertEqual(progress['words_due'], 1)

    def test_review_flow(self):
        with self.client() as client:
            started = client.post('/api/review/start', json={'mode': 'learning'}).json()
            session_id = started['session_id']
            self.assertEqual(started['state']['status'], 'active')
            self.assertEqual(started['state']['total_words'], 4)

            state = client.post(f'/api/review/{session_id}/swipe',
                                json={'direction': 'right'}).json()
            self.assertEqual(state['current_index'], 1)
            self.assertTrue(state['can_undo'])
            self.assertIn('word_saved', state['effects'])

            state = client.post(f'/api/review/{session_id}/undo').json()
            self.assertEqual(state['current_index'], 0)
            self.assertIn('undone', state['effects'])

            for _ in range(4):
                state = client.post(f'/api/review/{session_id}/swipe',
                                    json={'direction': 'left'}).json()
            self.assertEqual(state['status'], 'completed')
            self.assertEqual(state['result']['words_incorrect'], 4)

            progress = client.get('/api/progress').json()
        self.assertEqual(progress['today']['words_learned'], 4)
        self.assertEqual(progress['goal_progress'], 4 / app_module.daily_goal)
        self.assertEqual(progress['user_stats']['current_streak'], 1)
        self.assertEqual(len(progress['recent_sessions']), 1)

    def test_review_with_nothing_due_completes(self):
        with self.client() as client:
            started = client.post('/api/review/start', json={'mode': 'review'}).json()
        self.assertEqual(started['state']['status'], 'completed')
        self.assertEqual(started['state']['result']['words_studied'], 0)

    def test_review_errors(self):
        with self.client() as client:
            self.assertEqual(client.post('/api/review/start', json={'mode': 'cram'}).status_code, 400)
            self.assertEqual(client.get('/api/review/missing').status_code, 404)
            self.assertEqual(client.delete('/api/review/missing').status_code, 404)
            session_id = client.post('/api/review/start', json={}).json()['session_id']
            response = client.post(f'/api/review/{session_id}/swipe', json={'direction': 'sideways'})
        self.assertEqual(response.status_code, 400)

    def test_close_review(self):
        with self.client() as client:
            session_id = client.post('/api/review/start', json={}).json()['session_id']
            self.assertTrue(client.delete(f'/api/review/{session_id}').json()['closed'])
            self.assertEqual(client.get(f'/api/review/{session_id}').status_code, 404)
        self.assertNotIn(session_id, app_module.review_sessions)
        self.assertNotIn(session_id, app_module.last_used)

    def test_completed_sessions_are_dropped_on_next_start(self):
        with self.client() as client:
            review_id = client.post('/api/review/start', json={}).json()['session_id']
            for _ in range(4):
                client.post(f'/api/review/{review_id}/swipe', json={'direction': 'right'})
            self.assertEqual(client.get(f'/api/review/{review_id}').json()['status'], 'completed')

            quiz_id = client.post('/api/quiz/start', json={'count': 1}).json()['session_id']
            client.post(f'/api/quiz/{quiz_id}/answer', json={'answer': 'x'})
            self.assertTrue(client.post(f'/api/quiz/{quiz_id}/next').json()['completed'])
            self.assertNotIn(review_id, app_module.review_sessions)

            client.post('/api/review/start', json={})
            self.assertEqual(client.get(f'/api/quiz/{quiz_id}').status_code, 404)
        self.assertEqual(len(app_module.review_sessions), 1)
        self.assertEqual(app_module.quiz_sessions, {})

    def test_idle_sessions_are_dropped(self):
        clock = MockClock()
        app_module.clock = clock
        with self.client() as client:
            idle_quiz = client.post('/api/quiz/start', json={}).json()['session_id']
            busy_review = client.post('/api/review/start', json={}).json()['session_id']
            quiz = app_module.quiz_sessions[idle_quiz]

            clock.advance(seconds=20 * 60)
            client.get(f'/api/review/{busy_review}')
            clock.advance(seconds=20 * 60)
            client.post('/api/review/start', json={})

            self.assertEqual(client.get(f'/api/quiz/{idle_quiz}').status_code, 404)
            self.assertEqual(client.get(f'/api/review/{busy_review}').status_code, 200)
        self.assertFalse(quiz.is_timer_running)
        self.assertEqual(len(app_module.review_sessions), 2)

    def test_quiz_flow(self):
        with self.client() as client:
            started = client.post('/api/quiz/start', json={
                'test_type': 'fillInBlank', 'count': 2, 'category': 'food'
            }).json()
            session_id = started['session_id']
            self.assertEqual(started['state']['total_questions'], 2)

            for _ in range(2):
                state = client.get(f'/api/quiz/{session_id}').json()
                term = self.storage.get_word(state['question']['word_id']).term
                answered = client.post(f'/api/quiz/{session_id}/answer',
                                       json={'answer': term.upper()}).json()
                self.assertTrue(answered['outcome']['is_correct'])
                self.assertEqual(answered['question']['term'], term)
                state = client.post(f'/api/quiz/{session_id}/next').json()

            self.assertTrue(state['completed'])
            self.assertEqual(state['result']['words_correct'], 2)

            closed = client.delete(f'/api/quiz/{session_id}').json()
        self.assertTrue(closed['closed'])
        self.assertEqual(len(self.storage.list_sessions()), 1)

    def test_question_payload_per_quiz_type(self):
        with self.client() as client:
            for test_type in ('multipleChoice', 'fillInBlank', 'listening',
                              'trueFalse', 'multiSelect'):
                state = client.post('/api/quiz/start', json={
                    'test_type': test_type, 'count': 4
                }).json()['state']
                question = state['question']
                word = self.storage.get_word(question['word_id'])
                with self.subTest(test_type=test_type):
                    self.assertNotIn('term', question)
                    self.assertNotIn('translation', question)
                    self.assertNotIn('correct_answer', question)
                    self.assertNotIn('correct_answers', question)
                    if test_type == 'fillInBlank':
                        self.assertEqual(question['prompt'], word.translation)
                        self.assertEqual(question['options'], [])
                    elif test_type == 'listening':
                        self.assertIsNone(question['prompt'])
                        self.assertIn(word.term, question['options'])
                    else:
                        self.assertEqual(question['prompt'], word.term)
                    self.assertEqual(question['multi_select'], test_type == 'multiSelect')

    def test_quiz_multi_select_answer(self):
        with self.client() as client:
            started = client.post('/api/quiz/start', json={
                'test_type': 'multiSelect', 'count': 4
            }).json()
            session_id = started['session_id']
            question = started['state']['question']
            self.assertTrue(question['multi_select'])

            answered = client.post(f'/api/quiz/{session_id}/answer',
                                   json={'selection': []}).json()
        self.assertEqual(answered['outcome']['score'], 0)
        self.assertIn('correct_answers', answered['question'])

    def test_selection_for_single_answer_question_is_bad_request(self):
        with self.client() as client:
            started = client.post('/api/quiz/start', json={
                'test_type': 'multipleChoice', 'count': 4
            }).json()
            session_id = started['session_id']
            options = started['state']['question']['options']

            response = client.post(f'/api/quiz/{session_id}/answer',
                                   json={'selection': options[:1]})
            self.assertEqual(response.status_code, 400)
            self.assertFalse(client.get(f'/api/quiz/{session_id}').json()['resolved'])

            answered = client.post(f'/api/quiz/{session_id}/answer',
                                   json={'answer': options[0]})
        self.assertEqual(answered.status_code, 200)
        self.assertIsNotNone(answered.json()['outcome'])

    def test_quiz_start_validates_count_and_time_limit(self):
        with self.client() as client:
            for body in ({'count': 0}, {'count': 101}, {'time_limit': -1}, {'time_limit': 0}):
                with self.subTest(body=body):
                    self.assertEqual(client.post('/api/quiz/start', json=body).status_code, 422)
            self.assertEqual(app_module.quiz_sessions, {})
            started = client.post('/api/quiz/start', json={'count': 100, 'time_limit': 0.5})
        self.assertEqual(started.status_code, 200)
        self.assertEqual(started.json()['state']['total_questions'], 4)

    def test_quiz_errors(self):
        with self.client() as client:
            self.assertEqual(
                client.post('/api/quiz/start', json={'test_type': 'review'}).status_code, 400)
            self.assertEqual(
                client.post('/api/quiz/start', json={'test_type': 'essay'}).status_code, 400)
            self.assertEqual(client.get('/api/quiz/missing').status_code, 404)
            self.assertEqual(client.delete('/api/quiz/missing').status_code, 404)


if __name__ == '__main__':
    unittest.main()
