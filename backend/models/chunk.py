from backend.config.database import db_instance
from backend.utils.serialization import utcnow


class DocumentChunk:
    """A slice of a document's text with its embedding vector"""

    def __init__(self, document_id, chunk_index, text, embedding=None, title=None,
                 category='other', is_public=True, _id=None, created_at=None):
        self.id = str(_id) if _id else None
        self.document_id = str(document_id)
        self.chunk_index = chunk_index
        self.text = text
        self.embedding = embedding
        self.title = title
        self.category = category
        self.is_public = is_public
        self.created_at = created_at or utcnow()

    def to_record(self):
        return {
            'document_id': self.document_id,
            'chunk_index': self.chunk_index,
            'text': self.text,
            'embedding': self.embedding,
            'title': self.title,
            'category': self.category,
            'is_public': self.is_public,
            'created_at': self.created_at
        }

    @staticmethod
    def insert_many(chunks):
        if not chunks:
            return []
        db = db_instance.get_db()
        result = db.chunks.insert_many([c.to_record() for c in chunks])
        for chunk, inserted_id in zip(chunks, result.inserted_ids):
            chunk.id = str(inserted_id)
        return chunks

    @staticmethod
    def find_by_document_id(document_id):
        db = db_instance.get_db()
        cursor = db.chunks.find({'document_id': str(document_id)}).sort('chunk_index', 1)
        return [DocumentChunk.from_record(c) for c in cursor]

    @staticmethod
    def find_embedded(category=None):
        """Public chunks that carry an embedding"""
        db = db_instance.get_db()
        query = {'is_public': True, 'embedding': {'$ne': None}}
        if category:
            query['category'] = category
        return [DocumentChunk.from_record(c) for c in db.chunks.find(query)]

    @staticmethod
    def vector_search(query_vector, index_name, limit=3, category=None):
        """Atlas $vectorSearch over chunk embeddings, returns (chunk, score) pairs"""
        db = db_instance.get_db()
        stage = {
            'index': index_name,
            'path': 'embedding',
            'queryVector': query_vector,
            'numCandidates': max(limit * 20, 100),
            'limit': limit,
            'filter': {'is_public': True}
        }
        if category:
            stage['filter']['category'] = category
        pipeline = [
            {'$vectorSearch': stage},
            {'$addFields': {'score': {'$meta': 'vectorSearchScore'}}}
        ]
        return [
            (DocumentChunk.from_record(c), float(c.get('score', 0.0)))
            for c in db.chunks.aggregate(pipeline)
        ]

    @staticmethod
    def text_search(query, limit=3):
        """Full-text search over public chunks, returns (chunk, score) pairs"""
        db = db_instance.get_db()
        cursor = (db.chunks.find(
            {'$text': {'$search': query}, 'is_public': True},
            {'score': {'$meta': 'textScore'}}
        ).sort([('score', {'$meta': 'textScore'})]).limit(limit))
        return [(DocumentChunk.from_record(c), float(c.get('score', 0.0))) for c in cursor]

    @staticmethod
    def from_record(chunk_data):
        return DocumentChunk(
            document_id=chunk_data['document_id'],
            chunk_index=chunk_data.get('chunk_index', 0),
            text=chunk_data.get('text', ''),
            embedding=chunk_data.get('embedding'),
            title=chunk_data.get('title'),
            category=chunk_data.get('category', 'other'),
            is_public=chunk_data.get('is_public', True),
            _id=chunk_data['_id'],
            created_at=chunk_data.get('created_at')
        )
