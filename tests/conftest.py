"""
Test Configuration and Fixtures
"""
import io

import fitz
import pytest
from PIL import Image

from paperbrief import create_app, db


class FakeAIClient:
    """Stands in for AIClient; replays canned replies and records every call"""

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.calls = []

    def queue(self, *replies):
        self.replies.extend(replies)

    def generate(self, parts, temperature=0.2):
        self.calls.append(parts)
        if not self.replies:
            return '{"title": "Default", "summary": "A summary.", "keywords": ["a", "b"]}'
        return self.replies.pop(0)

    def texts(self, call_index):
        return [p["text"] for p in self.calls[call_index] if p["type"] == "text"]

    def images(self, call_index):
        return [p for p in self.calls[call_index] if p["type"] == "image_url"]


def make_pdf(pages_text):
    """PDF with one page per entry; an empty entry gives a page with no text layer"""
    doc = fitz.open()
    for text in pages_text:
        page = doc.new_page()
        if text:
            page.insert_textbox(fitz.Rect(36, 36, 576, 806), text, fontsize=9)
    data = doc.tobytes()
    doc.close()
    return data


def make_image(width=200, height=100, fmt="PNG", color=(200, 30, 30)):
    out = io.BytesIO()
    Image.new("RGB", (width, height), color).save(out, format=fmt)
    return out.getvalue()


@pytest.fixture(scope='function')
def app():
    """Create application for testing"""
    app = create_app('testing')

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client"""
    return app.test_client()


@pytest.fixture(scope='function')
def fake_ai(monkeypatch):
    """Route handlers get a FakeAIClient instead of the OpenAI one"""
    fake = FakeAIClient()
    monkeypatch.setattr("paperbrief.api.get_ai_client", lambda: fake)
    return fake


@pytest.fixture(scope='function')
def token_for(app):
    """Issue identity tokens the way the identity provider would"""
    from paperbrief.auth import issue_identity_token

    def _issue(sub, email=None, name=None):
        with app.app_context():
            return issue_identity_token(sub, email=email, name=name)
    return _issue


@pytest.fixture(scope='function')
def auth_headers(token_for):
    """Authorization header for user-1"""
    return {'Authorization': f'Bearer {token_for("user-1", email="one@example.com", name="User One")}'}


@pytest.fixture(scope='function')
def other_headers(token_for):
    """Authorization header for user-2"""
    return {'Authorization': f'Bearer {token_for("user-2")}'}
