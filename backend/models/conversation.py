from backend.config.database import db_instance
from backend.models.chat import ChatMessage
from backend.utils.serialization import to_object_id, utcnow

DEFAULT_TITLE = 'New Chat'
TITLE_FROM_QUESTION_LENGTH = 50


class Conversation:
    def __init__(self, user_id, title=None, last_message=None, _id=None,
                 created_at=None, updated_at=None):
        self.id = str(_id) if _id else None
        self.user_id = str(user_id)
        self.title = (title or '').strip() or DEFAULT_TITLE
        self.last_message = last_message
        self.created_at = created_at or utcnow()
        self.updated_at = updated_at or self.created_at

    @staticmethod
    def title_from_question(question):
        question = ' '.join(question.split())
        if len(question) <= TITLE_FROM_QUESTION_LENGTH:
            return question
        return question[:TITLE_FROM_QUESTION_LENGTH].rstrip() + '...'

    def save(self):
        """Save conversation to database"""
        db = db_instance.get_db()
        conversation_data = {
            'user_id': self.user_id,
            'title': self.title,
            'last_message': self.last_message,
            'created_at': self.created_at,
            'updated_at': self.updated_at
        }

        if self.id:
            db.conversations.update_one({'_id': to_object_id(self.id)}, {'$set': conversation_data})
        else:
            result = db.conversations.insert_one(conversation_data)
            self.id = str(result.inserted_id)

        return self

    def add_message(self, role, text):
        """Store a message and bump the conversation's activity time"""
        message = ChatMessage(
            user_id=self.user_id,
            conversation_id=self.id,
            role=role,
            text=text
        ).save()
        self.last_message = text[:200]
        self.updated_at = message.timestamp
        self.save()
        return message

    def get_messages(self, limit=None):
        return ChatMessage.find_by_conversation(self.id, limit=limit)

    def get_conversation_history(self, max_messages=10):
        """Recent messages formatted as prompt lines"""
        speakers = {'user': 'Student', 'model': 'Assistant'}
        messages = ChatMessage.find_recent(self.id, max_messages)
        return "\n".join(f"{speakers.get(m.role, m.role)}: {m.text}" for m in messages)

    def delete(self):
        """Delete the conversation and its messages"""
        db = db_instance.get_db()
        db.chats.delete_many({'conversation_id': self.id})
        db.conversations.delete_one({'_id': to_object_id(self.id)})

    @staticmethod
    def from_record(conv_data):
        return Conversation(
            user_id=conv_data['user_id'],
            title=conv_data.get('title'),
            last_message=conv_data.get('last_message'),
            _id=conv_data['_id'],
            created_at=conv_data.get('created_at'),
            updated_at=conv_data.get('updated_at')
        )

    @staticmethod
    def find_by_id(conversation_id):
        """Find conversation by ID"""
        object_id = to_object_id(conversation_id)
        if object_id is None:
            return None
        db = db_instance.get_db()
        conv_data = db.conversations.find_one({'_id': object_id})
        return Conversation.from_record(conv_data) if conv_data else None

    @staticmethod
    def find_for_user(conversation_id, user_id):
        """Find a conversation only if it belongs to ``user_id``"""
        conversation = Conversation.find_by_id(conversation_id)
        if conversation and conversation.user_id == str(user_id):
            return conversation
        return None

    @staticmethod
    def find_by_user(user_id, page=1, limit=20):
        db = db_instance.get_db()
        query = {'user_id': str(user_id)}
        total = db.conversations.count_documents(query)
        cursor = (db.conversations.find(query)
                  .sort([('updated_at', -1), ('_id', -1)])
                  .skip((page - 1) * limit)
                  .limit(limit))
        return [Conversation.from_record(c) for c in cursor], total

    def to_dict(self):
        """Convert conversation to dictionary"""
        return {
            'id': self.id,
            'title': self.title,
            'lastMessage': self.last_message,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at
        }
