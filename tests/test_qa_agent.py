import pytest

from backend.agents.qa_agent import CONTEXT_PREVIEW_CHARS, SafetyQAAgent
from backend.models.chunk import DocumentChunk


def chunk(document_id, embedding=None, text='Some text', title='Doc'):
    return DocumentChunk(document_id=document_id, chunk_index=0, text=text, embedding=embedding,
                         title=title, category='safety')


class StaticEmbedder:
    model = 'static'

    def __init__(self, vector):
        self.vector = vector

    def embed_query(self, text):
        return self.vector


def test_rank_by_similarity_orders_best_first():
    chunks = [chunk('a', [1.0, 0.0]), chunk('b', [0.6, 0.8]), chunk('c', [0.0, 1.0])]

    ranked = SafetyQAAgent.rank_by_similarity([1.0, 0.0], chunks, limit=2)

    assert [c.document_id for c, _ in ranked] == ['a', 'b']
    assert ranked[0][1] == pytest.approx(1.0)
    assert ranked[1][1] == pytest.approx(0.6)


def test_rank_by_similarity_skips_unusable_vectors():
    chunks = [chunk('a', None), chunk('b', [1.0, 0.0, 0.0]), chunk('c', [0.0, 0.0])]

    ranked = SafetyQAAgent.rank_by_similarity([1.0, 1.0], chunks, limit=3)
    assert [(c.document_id, s) for c, s in ranked] == [('c', 0.0)]

    assert SafetyQAAgent.rank_by_similarity([0.0, 0.0], chunks, limit=3) == []


def test_find_relevant_chunks_applies_threshold(app):
    with app.app_context():
        DocumentChunk.insert_many([
            chunk('near', [1.0, 0.1], title='Near'),
            chunk('far', [0.1, 1.0], title='Far'),
        ])
        agent = SafetyQAAgent(StaticEmbedder([1.0, 0.0]), generator=None, min_similarity=0.5)

        results = agent.find_relevant_chunks('fire', limit=3)

    assert [r['chunk'].document_id for r in results] == ['near']


@pytest.mark.parametrize('query_vector', [None, [0.0, 1.0]])
def test_falls_back_to_text_search(app, monkeypatch, query_vector):
    matched = chunk('text-hit', title='Clinic hours')
    calls = []

    def text_search(query, limit=3):
        calls.append((query, limit))
        return [(matched, 1.75)]

    monkeypatch.setattr(DocumentChunk, 'text_search', staticmethod(text_search))
    with app.app_context():
        DocumentChunk.insert_many([chunk('far', [1.0, 0.05], title='Far')])
        agent = SafetyQAAgent(StaticEmbedder(query_vector), generator=None, min_similarity=0.5)

        results = agent.find_relevant_chunks('clinic hours', limit=2)

    assert calls == [('clinic hours', 2)]
    assert [(r['chunk'].document_id, r['score']) for r in results] == [('text-hit', 1.75)]


def test_find_relevant_chunks_never_raises(app, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError('database unavailable')

    monkeypatch.setattr(DocumentChunk, 'find_embedded', staticmethod(broken))
    with app.app_context():
        agent = SafetyQAAgent(StaticEmbedder([1.0, 0.0]), generator=None)
        assert agent.find_relevant_chunks('fire') == []


def test_build_prompt_truncates_context():
    agent = SafetyQAAgent(embedder=None, generator=None)
    long_text = 'a' * (CONTEXT_PREVIEW_CHARS + 50)
    results = [{'chunk': chunk('d', text=long_text, title=None), 'score': 0.9}]

    prompt = agent.build_prompt('Where is the clinic?', results, history='Student: hello')

    assert '1. Untitled document\n' + 'a' * CONTEXT_PREVIEW_CHARS + '...\n' in prompt
    assert '\n\nPrevious Conversation:\nStudent: hello' in prompt
    assert prompt.endswith('Student Question: Where is the clinic?\n\nAssistant Response:')


def test_build_prompt_without_context_or_history():
    prompt = SafetyQAAgent(embedder=None, generator=None).build_prompt('Hi there', [])

    assert 'Relevant Information' not in prompt
    assert 'Previous Conversation' not in prompt


def test_summarize_sources_keeps_best_score_per_document():
    results = [
        {'chunk': chunk('a', title='Fire Safety'), 'score': 0.51234},
        {'chunk': chunk('b', title='Clinic'), 'score': 0.7},
        {'chunk': chunk('a', title='Fire Safety'), 'score': 0.91236},
    ]

    sources = SafetyQAAgent.summarize_sources(results)

    assert sources == [
        {'id': 'a', 'title': 'Fire Safety', 'category': 'safety', 'score': 0.9124},
        {'id': 'b', 'title': 'Clinic', 'category': 'safety', 'score': 0.7},
    ]


def test_default_suggestions_without_documents(app):
    with app.app_context():
        suggestions = SafetyQAAgent(embedder=None, generator=None).get_suggested_questions()

    assert suggestions[0] == "What should I do in case of a fire on campus?"
    assert len(suggestions) == 4
