import logging

from flask import Blueprint, current_app, request
from flask_login import current_user, login_required

from backend.agents.preprocessing_agent import PreprocessingAgent
from backend.agents.qa_agent import SafetyQAAgent
from backend.agents.report_agent import ReportIntakeAgent
from backend.models.conversation import Conversation
from backend.services.gemini_client import GenerationConfigError
from backend.utils.auth_middleware import validate_json_data
from backend.utils.errors import error_response, success_response
from backend.utils.pagination import get_pagination, pagination_meta

logger = logging.getLogger(__name__)

chat_bp = Blueprint('chat', __name__)

MIN_QUESTION_LENGTH = 3
MAX_QUESTION_LENGTH = 1000
MAX_TITLE_LENGTH = 100


def get_agents():
    """Agents wired to the app's embedding and generation clients"""
    config = current_app.config
    embedder = current_app.extensions['embedding_client']
    return {
        'preprocessing': PreprocessingAgent(config['CHUNK_SIZE'], config['CHUNK_OVERLAP']),
        'qa': SafetyQAAgent(
            embedder=embedder,
            generator=current_app.extensions['answer_generator'],
            report_agent=ReportIntakeAgent(),
            top_k=config['RAG_TOP_K'],
            min_similarity=config['MIN_SIMILARITY'],
            history_limit=config['HISTORY_LIMIT'],
            vector_index=config.get('VECTOR_SEARCH_INDEX')
        ),
        'embedder': embedder
    }


@chat_bp.route('/ask', methods=['POST'])
@login_required
@validate_json_data(['question'])
def ask_question():
    """Ask the chatbot a question (RAG)"""
    data = request.get_json()
    question = str(data['question']).strip()

    if not MIN_QUESTION_LENGTH <= len(question) <= MAX_QUESTION_LENGTH:
        return error_response(
            f'Question must be between {MIN_QUESTION_LENGTH} and {MAX_QUESTION_LENGTH} characters', 400
        )

    logger.info("Chat request from user %s", current_user.email)
    try:
        answer_data = get_agents()['qa'].answer_question(
            question,
            current_user.id,
            conversation_id=data.get('conversationId')
        )
    except GenerationConfigError as e:
        logger.error("Chat generation unavailable: %s", e)
        return error_response('Error processing your question', 500)

    return success_response(answer_data)


@chat_bp.route('/suggestions', methods=['GET'])
@login_required
def get_suggested_questions():
    """Suggested questions for the chat widget"""
    return success_response({'suggestions': get_agents()['qa'].get_suggested_questions()})


@chat_bp.route('/conversations', methods=['GET'])
@login_required
def get_conversations():
    """Get all conversations for the current user"""
    page, limit = get_pagination()
    conversations, total = Conversation.find_by_user(current_user.id, page=page, limit=limit)
    return success_response({
        'conversations': [c.to_dict() for c in conversations],
        'pagination': pagination_meta(total, page, limit)
    })


@chat_bp.route('/conversations', methods=['POST'])
@login_required
def create_conversation():
    """Create a new conversation"""
    data = request.get_json(silent=True) or {}
    title = str(data.get('title') or '').strip()
    if len(title) > MAX_TITLE_LENGTH:
        return error_response(f'Title cannot exceed {MAX_TITLE_LENGTH} characters', 400)

    conversation = Conversation(user_id=current_user.id, title=title).save()
    return success_response({'conversation': conversation.to_dict()}, status_code=201)


@chat_bp.route('/conversations/<conversation_id>/messages', methods=['GET'])
@login_required
def get_conversation_messages(conversation_id):
    """Get a conversation with its messages in order"""
    conversation = Conversation.find_for_user(conversation_id, current_user.id)
    if not conversation:
        return error_response('Conversation not found', 404)

    return success_response({
        'conversation': conversation.to_dict(),
        'messages': [m.to_dict() for m in conversation.get_messages()]
    })


@chat_bp.route('/conversations/<conversation_id>', methods=['PATCH'])
@login_required
def rename_conversation(conversation_id):
    """Rename a conversation"""
    conversation = Conversation.find_for_user(conversation_id, current_user.id)
    if not conversation:
        return error_response('Conversation not found', 404)

    data = request.get_json(silent=True) or {}
    title = str(data.get('title') or '').strip()
    if not 1 <= len(title) <= MAX_TITLE_LENGTH:
        return error_response(f'Title must be between 1 and {MAX_TITLE_LENGTH} characters', 400)

    conversation.title = title
    conversation.save()
    return success_response({'conversation': conversation.to_dict()})


@chat_bp.route('/conversations/<conversation_id>', methods=['DELETE'])
@login_required
def delete_conversation(conversation_id):
    """Delete a conversation and its messages"""
    conversation = Conversation.find_for_user(conversation_id, current_user.id)
    if not conversation:
        return error_response('Conversation not found', 404)

    conversation.delete()
    return success_response(message='Conversation deleted successfully')
