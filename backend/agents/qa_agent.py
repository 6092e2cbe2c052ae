import logging

import numpy as np

from backend.models.chunk import DocumentChunk
from backend.models.conversation import Conversation
from backend.models.document import Document
from backend.utils.errors import NotFoundError
from backend.utils.serialization import utcnow

logger = logging.getLogger(__name__)

CONTEXT_PREVIEW_CHARS = 500

SYSTEM_PROMPT = """You are a helpful AI assistant for ASTU (Adama Science and Technology University) Smart Campus Safety Platform. Your role is to:

1. Provide accurate information about campus safety procedures, emergency protocols, and resources
2. Answer student questions about campus security, health services, and emergency contacts
3. Offer guidance on reporting incidents and accessing safety resources
4. Be concise, clear, and supportive in your responses
5. If you don't know something, admit it and suggest contacting campus security or administration

Incident reporting: when a student wants to report a security incident or a maintenance problem, ask for the category, the exact campus location, a short description and how urgent it is, one question at a time. Once you have all four, confirm the details and end your message with exactly one line of the form
[REPORT_FINALIZED: Security or Maintenance|Category|Location|Description|Low, Medium, High or Critical]
Never emit that line before the student has given the details.

Always prioritize student safety and well-being in your responses."""

DEFAULT_SUGGESTIONS = [
    "What should I do in case of a fire on campus?",
    "How do I report a security incident?",
    "What are the campus emergency contact numbers?",
    "Where can I get medical help on campus?"
]

CATEGORY_SUGGESTIONS = {
    'emergency': "What are the emergency evacuation procedures?",
    'safety': "What safety tips should I follow on campus at night?",
    'policy': "What does the campus safety policy say about visitors?",
    'procedure': "What is the procedure for reporting a maintenance problem?",
    'resource': "Which support services are available to students?",
}


class SafetyQAAgent:
    def __init__(self, embedder, generator, report_agent=None, top_k=3, min_similarity=0.3,
                 history_limit=10, vector_index=None):
        self.embedder = embedder
        self.generator = generator
        self.report_agent = report_agent
        self.top_k = top_k
        self.min_similarity = min_similarity
        self.history_limit = history_limit
        self.vector_index = vector_index

    def answer_question(self, question, user_id, conversation_id=None):
        """Answer a question with retrieved context and persist the exchange"""
        conversation = self._resolve_conversation(question, user_id, conversation_id)
        history = conversation.get_conversation_history(max_messages=self.history_limit)
        conversation.add_message('user', question)

        # Retrieval
        results = self.find_relevant_chunks(question, self.top_k)

        # Generation
        prompt = self.build_prompt(question, results, history)
        answer = self.generator.generate(prompt)

        report = None
        if self.report_agent is not None:
            answer, report = self.report_agent.process_answer(answer, user_id, conversation.id)

        conversation.add_message('model', answer)

        return {
            'question': question,
            'answer': answer,
            'sources': self.summarize_sources(results),
            'conversationId': conversation.id,
            'report': report.to_dict() if report else None,
            'timestamp': utcnow()
        }

    def _resolve_conversation(self, question, user_id, conversation_id):
        if conversation_id:
            conversation = Conversation.find_for_user(conversation_id, user_id)
            if conversation is None:
                raise NotFoundError('Conversation not found')
            return conversation

        return Conversation(
            user_id=user_id,
            title=Conversation.title_from_question(question)
        ).save()

    def find_relevant_chunks(self, query, limit=3):
        """Ranked [{'chunk', 'score'}] for ``query``; empty when nothing usable is found"""
        try:
            query_vector = self.embedder.embed_query(query)
            results = []
            if query_vector:
                if self.vector_index:
                    results = DocumentChunk.vector_search(query_vector, self.vector_index, limit=limit)
                else:
                    results = self.rank_by_similarity(query_vector, DocumentChunk.find_embedded(), limit)
                results = [(c, s) for c, s in results if s >= self.min_similarity]

            if not results:
                logger.info("No vector matches, falling back to text search")
                results = DocumentChunk.text_search(query, limit=limit)

            logger.info("Found %d relevant chunk(s)", len(results))
            return [{'chunk': chunk, 'score': score} for chunk, score in results]
        except Exception:
            logger.exception("Error finding relevant documents")
            return []

    @staticmethod
    def rank_by_similarity(query_vector, chunks, limit):
        """Cosine similarity of ``query_vector`` against chunk embeddings, best first"""
        query = np.asarray(query_vector, dtype=float)
        candidates = [c for c in chunks if c.embedding and len(c.embedding) == len(query)]
        if not candidates or not np.any(query):
            return []

        matrix = np.asarray([c.embedding for c in candidates], dtype=float)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        norms[norms == 0] = np.inf
        scores = matrix @ query / norms

        order = np.argsort(-scores)[:limit]
        return [(candidates[i], float(scores[i])) for i in order]

    def build_prompt(self, question, results, history=''):
        """Combine system prompt, retrieved context, history and the question"""
        context_text = ''
        if results:
            context_text = '\n\nRelevant Information from Campus Safety Documents:\n'
            for index, result in enumerate(results, start=1):
                chunk = result['chunk']
                text = chunk.text
                if len(text) > CONTEXT_PREVIEW_CHARS:
                    text = text[:CONTEXT_PREVIEW_CHARS] + '...'
                context_text += f"\n{index}. {chunk.title or 'Untitled document'}\n{text}\n"

        history_text = f"\n\nPrevious Conversation:\n{history}" if history else ''

        return f"{SYSTEM_PROMPT}{context_text}{history_text}\n\nStudent Question: {question}\n\nAssistant Response:"

    @staticmethod
    def summarize_sources(results):
        """One source per document, keeping its best score"""
        sources = {}
        for result in results:
            chunk = result['chunk']
            current = sources.get(chunk.document_id)
            if current is None or result['score'] > current['score']:
                sources[chunk.document_id] = {
                    'id': chunk.document_id,
                    'title': chunk.title,
                    'category': chunk.category,
                    'score': round(result['score'], 4)
                }
        return sorted(sources.values(), key=lambda s: s['score'], reverse=True)

    def get_suggested_questions(self):
        """Suggested questions based on the categories in the knowledge base"""
        suggestions = [CATEGORY_SUGGESTIONS[c] for c in Document.categories_in_use() if c in CATEGORY_SUGGESTIONS]
        suggestions.extend(DEFAULT_SUGGESTIONS)
        return list(dict.fromkeys(suggestions))[:6]
