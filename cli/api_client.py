"""REST API client for lingo server."""

import requests
from typing import Optional


class LingoAPIClient:
    """Client for communicating with the lingo REST API."""

    def __init__(self, base_url: str = "http://localhost:8000"):
        self.base_url = base_url.rstrip('/')
        self.session = requests.Session()

    def _get(self, endpoint: str, params: dict = None) -> dict:
        """Make a GET request."""
        response = self.session.get(f"{self.base_url}{endpoint}", params=params or {})
        response.raise_for_status()
        return response.json()

    def _post(self, endpoint: str, data: dict = None) -> dict:
        """Make a POST request."""
        response = self.session.post(f"{self.base_url}{endpoint}", json=data or {})
        response.raise_for_status()
        return response.json()

    def _delete(self, endpoint: str) -> dict:
        """Make a DELETE request."""
        response = self.session.delete(f"{self.base_url}{endpoint}")
        response.raise_for_status()
        return response.json()

    def health_check(self) -> dict:
        """Check if the server is running."""
        return self._get("/")

    def get_progress(self) -> dict:
        """Get today's progress and lifetime stats."""
        return self._get("/api/progress")

    def get_categories(self) -> list[str]:
        return self._get("/api/categories")['categories']

    def list_words(self, search: Optional[str] = None, mastery: Optional[str] = None,
                   favorite: Optional[bool] = None, sort: str = 'alphabetical',
                   category: Optional[str] = None) -> dict:
        """List words. Returns {total, counts, words}."""
        params = {'sort': sort}
        if search:
            params['search'] = search
        if mastery:
            params['mastery'] = mastery
        if favorite is not None:
            params['favorite'] = str(favorite).lower()
        if category:
            params['category'] = category
        return self._get("/api/words", params)

    def start_review(self, mode: str = 'learning', category: Optional[str] = None) -> dict:
        """Start a flashcard session. Returns {session_id, state}."""
        return self._post("/api/review/start", {'mode': mode, 'category': category})

    def swipe(self, session_id: str, direction: str) -> dict:
        return self._post(f"/api/review/{session_id}/swipe", {'direction': direction})

    def undo(self, session_id: str) -> dict:
        return self._post(f"/api/review/{session_id}/undo")

    def close_review(self, session_id: str) -> dict:
        return self._delete(f"/api/review/{session_id}")

    def start_quiz(self, test_type: str, count: int = 10, category: Optional[str] = None) -> dict:
        """Start a quiz. Returns {session_id, state}."""
        return self._post("/api/quiz/start", {
            'test_type': test_type,
            'count': count,
            'category': category
        })

    def answer(self, session_id: str, answer: Optional[str] = None,
               selection: Optional[list] = None) -> dict:
        return self._post(f"/api/quiz/{session_id}/answer", {
            'answer': answer,
            'selection': selection
        })

    def next_question(self, session_id: str) -> dict:
        return self._post(f"/api/quiz/{session_id}/next")

    def close_quiz(self, session_id: str) -> dict:
        return self._delete(f"/api/quiz/{session_id}")
