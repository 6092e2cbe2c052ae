from backend.config.database import db_instance
from backend.utils.serialization import utcnow

ROLES = ('user', 'model')


class ChatMessage:
    """One message exchanged between a user and the assistant"""

    def __init__(self, user_id, conversation_id, role, text, _id=None, timestamp=None):
        if role not in ROLES:
            raise ValueError(f"Invalid chat role: {role}")
        self.id = str(_id) if _id else None
        self.user_id = str(user_id)
        self.conversation_id = str(conversation_id)
        self.role = role
        self.text = text
        self.timestamp = timestamp or utcnow()

    def save(self):
        db = db_instance.get_db()
        result = db.chats.insert_one({
            'user_id': self.user_id,
            'conversation_id': self.conversation_id,
            'role': self.role,
            'text': self.text,
            'timestamp': self.timestamp
        })
        self.id = str(result.inserted_id)
        return self

    @staticmethod
    def from_record(data):
        return ChatMessage(
            user_id=data['user_id'],
            conversation_id=data['conversation_id'],
            role=data['role'],
            text=data.get('text', ''),
            _id=data['_id'],
            timestamp=data.get('timestamp')
        )

    @staticmethod
    def find_by_conversation(conversation_id, limit=None):
        db = db_instance.get_db()
        cursor = db.chats.find({'conversation_id': str(conversation_id)}).sort(
            [('timestamp', 1), ('_id', 1)]
        )
        if limit:
            cursor = cursor.limit(limit)
        return [ChatMessage.from_record(m) for m in cursor]

    @staticmethod
    def find_recent(conversation_id, limit):
        """The last ``limit`` messages, oldest first"""
        db = db_instance.get_db()
        cursor = (db.chats.find({'conversation_id': str(conversation_id)})
                  .sort([('timestamp', -1), ('_id', -1)])
                  .limit(limit))
        messages = [ChatMessage.from_record(m) for m in cursor]
        messages.reverse()
        return messages

    def to_dict(self):
        return {
            'id': self.id,
            'conversationId': self.conversation_id,
            'role': self.role,
            'text': self.text,
            'timestamp': self.timestamp
        }
