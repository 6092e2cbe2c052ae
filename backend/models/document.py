# models/document.py
from backend.config.database import db_instance
from backend.utils.errors import ValidationError, field_error
from backend.utils.serialization import to_object_id, utcnow

CATEGORIES = ('safety', 'emergency', 'policy', 'procedure', 'resource', 'other')
DEFAULT_MAX_CONTENT = 50000


class Document:
    def __init__(self, title, content, uploaded_by, category='other', tags=None,
                 file_name=None, file_type=None, file_size=None, is_public=True,
                 view_count=0, chunk_count=0, embedding_model=None,
                 _id=None, created_at=None, updated_at=None):
        self.id = str(_id) if _id else None
        self.title = (title or '').strip()
        self.content = (content or '').strip()
        self.uploaded_by = str(uploaded_by) if uploaded_by else None
        self.category = category or 'other'
        self.tags = [t.strip() for t in (tags or []) if isinstance(t, str) and t.strip()]
        self.file_name = file_name
        self.file_type = file_type
        self.file_size = file_size
        self.is_public = is_public
        self.view_count = view_count
        self.chunk_count = chunk_count
        self.embedding_model = embedding_model
        self.created_at = created_at or utcnow()
        self.updated_at = updated_at or self.created_at

    def validate(self, max_content=DEFAULT_MAX_CONTENT):
        errors = []
        if not self.title:
            errors.append(field_error('title', 'Title is required'))
        elif not 3 <= len(self.title) <= 200:
            errors.append(field_error('title', 'Title must be between 3 and 200 characters'))

        if not self.content:
            errors.append(field_error('content', 'Content is required'))
        elif len(self.content) < 10:
            errors.append(field_error('content', 'Content must be at least 10 characters'))
        elif len(self.content) > max_content:
            errors.append(field_error('content', f'Content cannot exceed {max_content} characters'))

        if self.category not in CATEGORIES:
            errors.append(field_error('category', 'Invalid category'))

        if not self.uploaded_by:
            errors.append(field_error('uploadedBy', 'Uploader is required'))

        if errors:
            raise ValidationError(errors)

    def save(self):
        """Save document to database"""
        db = db_instance.get_db()
        self.updated_at = utcnow()
        doc_data = {
            'title': self.title,
            'content': self.content,
            'category': self.category,
            'tags': self.tags,
            'file_name': self.file_name,
            'file_type': self.file_type,
            'file_size': self.file_size,
            'uploaded_by': self.uploaded_by,
            'is_public': self.is_public,
            'view_count': self.view_count,
            'chunk_count': self.chunk_count,
            'embedding_model': self.embedding_model,
            'created_at': self.created_at,
            'updated_at': self.updated_at
        }

        if self.id:
            db.documents.update_one({'_id': to_object_id(self.id)}, {'$set': doc_data})
        else:
            result = db.documents.insert_one(doc_data)
            self.id = str(result.inserted_id)

        return self

    @staticmethod
    def from_record(doc_data):
        return Document(
            title=doc_data['title'],
            content=doc_data.get('content', ''),
            uploaded_by=doc_data.get('uploaded_by'),
            category=doc_data.get('category', 'other'),
            tags=doc_data.get('tags', []),
            file_name=doc_data.get('file_name'),
            file_type=doc_data.get('file_type'),
            file_size=doc_data.get('file_size'),
            is_public=doc_data.get('is_public', True),
            view_count=doc_data.get('view_count', 0),
            chunk_count=doc_data.get('chunk_count', 0),
            embedding_model=doc_data.get('embedding_model'),
            _id=doc_data['_id'],
            created_at=doc_data.get('created_at'),
            updated_at=doc_data.get('updated_at')
        )

    @staticmethod
    def find_by_id(doc_id):
        """Find document by ID"""
        object_id = to_object_id(doc_id)
        if object_id is None:
            return None
        db = db_instance.get_db()
        doc_data = db.documents.find_one({'_id': object_id})
        return Document.from_record(doc_data) if doc_data else None

    @staticmethod
    def find_page(category=None, search=None, page=1, limit=20):
        """Public documents, newest first, with the total match count"""
        db = db_instance.get_db()
        query = {'is_public': True}
        if category:
            query['category'] = category
        if search:
            query['$text'] = {'$search': search}

        total = db.documents.count_documents(query)
        cursor = (db.documents.find(query)
                  .sort([('created_at', -1), ('_id', -1)])
                  .skip((page - 1) * limit)
                  .limit(limit))
        return [Document.from_record(d) for d in cursor], total

    @staticmethod
    def categories_in_use():
        db = db_instance.get_db()
        return sorted(c for c in db.documents.distinct('category', {'is_public': True}) if c)

    def increment_view_count(self):
        db = db_instance.get_db()
        db.documents.update_one({'_id': to_object_id(self.id)}, {'$inc': {'view_count': 1}})
        self.view_count += 1

    def delete(self):
        """Delete the document and its chunks"""
        db = db_instance.get_db()
        chunks = db.chunks.delete_many({'document_id': self.id})
        db.documents.delete_one({'_id': to_object_id(self.id)})
        return chunks.deleted_count

    def to_dict(self, uploader=None, include_content=False):
        """Convert document to dictionary"""
        data = {
            'id': self.id,
            'title': self.title,
            'category': self.category,
            'tags': self.tags,
            'fileName': self.file_name,
            'fileType': self.file_type,
            'fileSize': self.file_size,
            'uploadedBy': uploader or self.uploaded_by,
            'isPublic': self.is_public,
            'viewCount': self.view_count,
            'chunkCount': self.chunk_count,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at
        }
        if include_content:
            data['content'] = self.content
        return data
