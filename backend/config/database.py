import logging

from pymongo import ASCENDING, DESCENDING, TEXT, MongoClient
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)


class Database:
    def __init__(self):
        self.client = None
        self.db = None

    def initialize(self, app, client=None):
        """Initialize database connection"""
        self.client = client or MongoClient(app.config['MONGODB_URI'], tz_aware=True)
        self.db = self.client[app.config['MONGODB_DB']]
        logger.info("MongoDB database selected: %s", app.config['MONGODB_DB'])

        if app.config.get('MONGO_CREATE_INDEXES', True):
            self.create_indexes()

    def create_indexes(self):
        """Create indexes used by lookups, text search and sorting"""
        db = self.db
        db.users.create_index('email', unique=True)

        db.documents.create_index(
            [('title', TEXT), ('content', TEXT), ('tags', TEXT)],
            name='documents_text'
        )
        db.documents.create_index([('category', ASCENDING), ('is_public', ASCENDING)])
        db.documents.create_index([('created_at', DESCENDING)])

        db.chunks.create_index([('text', TEXT)], name='chunks_text')
        db.chunks.create_index([('document_id', ASCENDING), ('chunk_index', ASCENDING)])

        db.conversations.create_index([('user_id', ASCENDING), ('updated_at', DESCENDING)])
        db.chats.create_index([('conversation_id', ASCENDING), ('timestamp', ASCENDING)])

        db.reports.create_index('reference', unique=True)
        db.reports.create_index([('user_id', ASCENDING), ('created_at', DESCENDING)])
        db.reports.create_index([('status', ASCENDING), ('priority', ASCENDING)])

    def get_db(self):
        """Get database instance"""
        return self.db

    def ping(self):
        """Return True when the server answers a ping"""
        if self.client is None:
            return False
        try:
            self.client.admin.command('ping')
            return True
        except PyMongoError as e:
            logger.warning("MongoDB ping failed: %s", e)
            return False

    def close(self):
        """Close database connection"""
        if self.client:
            self.client.close()


# Global database instance
db_instance = Database()
