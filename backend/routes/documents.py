#routes/documents.py
import logging

from flask import Blueprint, current_app, request
from flask_login import current_user, login_required

from backend.models.chunk import DocumentChunk
from backend.models.document import CATEGORIES, Document
from backend.models.user import STAFF_ROLES, User
from backend.routes.chat import get_agents
from backend.utils.auth_middleware import roles_required
from backend.utils.errors import ValidationError, error_response, field_error, success_response
from backend.utils.file_handler import ExtractionError, FileHandler
from backend.utils.pagination import get_pagination, pagination_meta

logger = logging.getLogger(__name__)

documents_bp = Blueprint('documents', __name__)


def parse_tags(raw):
    """Tags arrive as a JSON list or, from multipart forms, a comma-separated string"""
    if raw is None:
        return []
    if isinstance(raw, str):
        return [t.strip() for t in raw.split(',') if t.strip()]
    if isinstance(raw, list) and all(isinstance(t, str) for t in raw):
        return raw
    raise ValidationError([field_error('tags', 'Tags must be an array')])


def ingest_document(document, filename=None):
    """Validate, chunk, embed and store a document with its chunks"""
    document.validate(current_app.config['MAX_DOCUMENT_CHARS'])
    agents = get_agents()
    embedder = agents['embedder']

    preprocessed = agents['preprocessing'].preprocess_document(document.content, filename or document.title)
    texts = preprocessed['chunks']
    embeddings = embedder.embed_documents(texts) if texts else []
    embedded = sum(1 for e in embeddings if e)
    if texts and not embedded:
        logger.warning("No embeddings for '%s', it will only be found by text search", document.title)

    document.chunk_count = len(texts)
    document.embedding_model = embedder.model if embedded else None
    document.save()

    DocumentChunk.insert_many([
        DocumentChunk(
            document_id=document.id,
            chunk_index=index,
            text=text,
            embedding=embedding,
            title=document.title,
            category=document.category,
            is_public=document.is_public
        )
        for index, (text, embedding) in enumerate(zip(texts, embeddings))
    ])

    logger.info("Document '%s' stored with %d chunk(s), %d embedded", document.title, len(texts), embedded)
    return {
        'id': document.id,
        'title': document.title,
        'category': document.category,
        'chunkCount': len(texts),
        'embedded': embedded,
        'createdAt': document.created_at
    }


@documents_bp.route('/upload', methods=['POST'])
@documents_bp.route('/upload/text', methods=['POST'])
@login_required
@roles_required(*STAFF_ROLES)
def upload_document():
    """Upload document text for the knowledge base"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return error_response('Request body must be a JSON object', 400)

    title = data.get('title')
    content = data.get('content')
    if not isinstance(title, str) or not isinstance(content, str):
        return error_response('Please provide title and content', 400)

    logger.info("Document upload from user %s", current_user.email)
    document = Document(
        title=title,
        content=content,
        uploaded_by=current_user.id,
        category=data.get('category') or 'other',
        tags=parse_tags(data.get('tags'))
    )
    return success_response({'document': ingest_document(document)},
                            message='Document uploaded successfully', status_code=201)


@documents_bp.route('/upload/file', methods=['POST'])
@login_required
@roles_required(*STAFF_ROLES)
def upload_file():
    """Upload a PDF, TXT, DOCX or image file for the knowledge base"""
    if 'file' not in request.files:
        return error_response('No file provided', 400)

    file_handler = FileHandler(current_app.config.get('TESSERACT_CMD'))
    try:
        filename, extension, data = file_handler.read_upload(request.files['file'])
        text = file_handler.extract_text(data, extension)
    except ExtractionError as e:
        return error_response(str(e), 400)

    category = request.form.get('category')
    if not category:
        category = get_agents()['preprocessing'].suggest_category(text, filename)

    document = Document(
        title=request.form.get('title') or FileHandler.default_title(filename),
        content=text,
        uploaded_by=current_user.id,
        category=category,
        tags=parse_tags(request.form.get('tags')),
        file_name=filename,
        file_type=extension,
        file_size=len(data)
    )
    logger.info("File upload %s (%d bytes) from user %s", filename, len(data), current_user.email)
    return success_response({'document': ingest_document(document, filename)},
                            message='Document uploaded successfully', status_code=201)


@documents_bp.route('/documents', methods=['GET'])
@login_required
def get_documents():
    """Get public documents with pagination"""
    page, limit = get_pagination()
    category = request.args.get('category')
    if category and category not in CATEGORIES:
        return error_response('Invalid category', 400)

    documents, total = Document.find_page(
        category=category,
        search=request.args.get('search'),
        page=page,
        limit=limit
    )
    uploaders = User.summaries(d.uploaded_by for d in documents if d.uploaded_by)

    return success_response({
        'documents': [d.to_dict(uploader=uploaders.get(d.uploaded_by)) for d in documents],
        'pagination': pagination_meta(total, page, limit)
    })


@documents_bp.route('/documents/<document_id>', methods=['GET'])
@login_required
def get_document(document_id):
    """Get a specific document with its content"""
    document = Document.find_by_id(document_id)
    if not document or (not document.is_public and not current_user.is_staff):
        return error_response('Document not found', 404)

    document.increment_view_count()
    uploader = User.summaries([document.uploaded_by]).get(document.uploaded_by)
    return success_response({'document': document.to_dict(uploader=uploader, include_content=True)})


@documents_bp.route('/documents/<document_id>', methods=['DELETE'])
@login_required
@roles_required(*STAFF_ROLES)
def delete_document(document_id):
    """Delete a document and its chunks"""
    document = Document.find_by_id(document_id)
    if not document:
        return error_response('Document not found', 404)

    deleted_chunks = document.delete()
    logger.info("Document %s deleted by %s (%d chunks)", document_id, current_user.email, deleted_chunks)
    return success_response({'deletedChunks': deleted_chunks}, message='Document deleted successfully')
