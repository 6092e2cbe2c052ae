import re

import mongomock
import pytest

from backend.app import create_app
from backend.models.user import User
from backend.services.gemini_client import GenerationConfigError
from backend.utils.auth_middleware import generate_token

VOCABULARY = ['fire', 'evacuation', 'theft', 'clinic', 'medical', 'parking', 'library', 'harassment']


def bag_of_words(text):
    words = re.findall(r'[a-z]+', text.lower())
    return [float(words.count(term)) for term in VOCABULARY]


class FakeEmbedder:
    model = 'fake-embedding'

    def __init__(self):
        self.failing = False
        self.document_calls = []

    def embed_query(self, text):
        if self.failing:
            return None
        return bag_of_words(text)

    def embed_documents(self, texts):
        self.document_calls.append(list(texts))
        if self.failing:
            return [None] * len(texts)
        return [bag_of_words(t) for t in texts]


class FakeGenerator:
    def __init__(self):
        self.answer = 'Stay calm and follow the posted evacuation routes.'
        self.prompts = []
        self.missing_key = False

    def generate(self, prompt):
        if self.missing_key:
            raise GenerationConfigError("Gemini API key is invalid or missing")
        self.prompts.append(prompt)
        return self.answer


@pytest.fixture
def app():
    app = create_app(
        {
            'TESTING': True,
            'ENVIRONMENT': 'testing',
            'JWT_SECRET': 'test-secret',
            'MONGO_CREATE_INDEXES': False,
            'CHUNK_SIZE': 200,
            'CHUNK_OVERLAP': 40,
        },
        mongo_client=mongomock.MongoClient()
    )
    app.extensions['embedding_client'] = FakeEmbedder()
    app.extensions['answer_generator'] = FakeGenerator()
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def embedder(app):
    return app.extensions['embedding_client']


@pytest.fixture
def generator(app):
    return app.extensions['answer_generator']


@pytest.fixture
def db(app):
    from backend.config.database import db_instance
    return db_instance.get_db()


@pytest.fixture
def make_user(app):
    """Create a user directly and return (user, auth headers)"""
    counter = {'n': 0}

    def _make_user(role='student', email=None, password='secret123', name='Test User', active=True):
        counter['n'] += 1
        email = email or f'{role}{counter["n"]}@astu.edu.et'
        with app.app_context():
            user = User(email=email, name=name, role=role, active=active)
            user.set_password(password)
            user.save()
            token = generate_token(user.id)
        return user, {'Authorization': f'Bearer {token}'}

    return _make_user


@pytest.fixture
def student(make_user):
    return make_user('student')


@pytest.fixture
def admin(make_user):
    return make_user('admin')


@pytest.fixture
def staff(make_user):
    return make_user('staff')
