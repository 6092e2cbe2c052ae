import random

from pymongo.errors import DuplicateKeyError

from backend.config.database import db_instance
from backend.utils.errors import ValidationError, field_error
from backend.utils.serialization import utcnow

TYPES = ('security', 'maintenance')
PRIORITIES = ('low', 'medium', 'high', 'critical')
STATUSES = ('open', 'in_review', 'resolved')
SOURCES = ('form', 'chatbot')
URGENT_PRIORITIES = ('high', 'critical')

# Maximum stored length of the free-text fields
FIELD_LIMITS = {'category': 100, 'location': 200, 'description': 5000}

REFERENCE_PREFIX = 'ASTU-'
REFERENCE_ATTEMPTS = 10


def normalize_choice(value, choices, default=None):
    """Map free-form input such as 'In Review' onto one of ``choices``"""
    if value is None:
        return default
    key = str(value).strip().lower().replace('-', '_').replace(' ', '_')
    return key if key in choices else None


def generate_reference():
    return f"{REFERENCE_PREFIX}{random.randint(10000, 99999)}"


class Report:
    def __init__(self, user_id, type, category, location, description, priority='medium',
                 status='open', source='form', conversation_id=None, reference=None,
                 _id=None, created_at=None, updated_at=None):
        self.id = str(_id) if _id else None
        self.reference = reference
        self.user_id = str(user_id) if user_id else None
        self.type = type
        self.category = (category or '').strip()
        self.location = (location or '').strip()
        self.description = (description or '').strip()
        self.priority = priority
        self.status = status
        self.source = source
        self.conversation_id = conversation_id
        self.created_at = created_at or utcnow()
        self.updated_at = updated_at or self.created_at

    @staticmethod
    def from_payload(data, user_id, source='form', conversation_id=None):
        """Build a report from request data, normalizing enum fields"""
        errors = []
        report_type = normalize_choice(data.get('type'), TYPES)
        if report_type is None:
            errors.append(field_error('type', f"Type must be one of: {', '.join(TYPES)}"))

        priority = normalize_choice(data.get('priority'), PRIORITIES, default='medium')
        if priority is None:
            errors.append(field_error('priority', f"Priority must be one of: {', '.join(PRIORITIES)}"))

        for field in ('category', 'location', 'description'):
            value = data.get(field)
            if not isinstance(value, str) or not value.strip():
                errors.append(field_error(field, f'{field.capitalize()} is required'))

        if errors:
            raise ValidationError(errors)

        return Report(
            user_id=user_id,
            type=report_type,
            category=data['category'],
            location=data['location'],
            description=data['description'],
            priority=priority,
            source=source,
            conversation_id=conversation_id
        )

    def validate(self):
        errors = []
        if self.type not in TYPES:
            errors.append(field_error('type', 'Invalid report type'))
        if self.priority not in PRIORITIES:
            errors.append(field_error('priority', 'Invalid priority'))
        if self.status not in STATUSES:
            errors.append(field_error('status', 'Invalid status'))
        if self.source not in SOURCES:
            errors.append(field_error('source', 'Invalid source'))
        for field in ('category', 'location', 'description'):
            if not getattr(self, field):
                errors.append(field_error(field, f'{field.capitalize()} is required'))
        for field, limit in FIELD_LIMITS.items():
            if len(getattr(self, field)) > limit:
                errors.append(field_error(field, f'{field.capitalize()} cannot exceed {limit} characters'))
        if errors:
            raise ValidationError(errors)

    def _record(self):
        return {
            'reference': self.reference,
            'user_id': self.user_id,
            'type': self.type,
            'category': self.category,
            'location': self.location,
            'description': self.description,
            'priority': self.priority,
            'status': self.status,
            'source': self.source,
            'conversation_id': self.conversation_id,
            'created_at': self.created_at,
            'updated_at': self.updated_at
        }

    def save(self):
        """Save report, assigning a unique reference on first insert"""
        self.validate()
        db = db_instance.get_db()
        self.updated_at = utcnow()

        if self.id:
            db.reports.update_one({'reference': self.reference}, {'$set': self._record()})
            return self

        for _ in range(REFERENCE_ATTEMPTS):
            self.reference = generate_reference()
            if db.reports.find_one({'reference': self.reference}, {'_id': 1}):
                continue
            try:
                result = db.reports.insert_one(self._record())
            except DuplicateKeyError:
                continue
            self.id = str(result.inserted_id)
            return self

        raise RuntimeError("Could not allocate a unique report reference")

    def update_status(self, status):
        normalized = normalize_choice(status, STATUSES)
        if normalized is None:
            raise ValidationError(
                [field_error('status', f"Status must be one of: {', '.join(STATUSES)}")]
            )
        self.status = normalized
        return self.save()

    @staticmethod
    def from_record(data):
        return Report(
            user_id=data.get('user_id'),
            type=data['type'],
            category=data.get('category'),
            location=data.get('location'),
            description=data.get('description'),
            priority=data.get('priority', 'medium'),
            status=data.get('status', 'open'),
            source=data.get('source', 'form'),
            conversation_id=data.get('conversation_id'),
            reference=data.get('reference'),
            _id=data['_id'],
            created_at=data.get('created_at'),
            updated_at=data.get('updated_at')
        )

    @staticmethod
    def find_by_reference(reference):
        db = db_instance.get_db()
        data = db.reports.find_one({'reference': str(reference).strip().upper()})
        return Report.from_record(data) if data else None

    @staticmethod
    def build_query(user_id=None, status=None, type=None, priority=None):
        query = {}
        if user_id:
            query['user_id'] = str(user_id)
        if status:
            query['status'] = status
        if type:
            query['type'] = type
        if priority:
            query['priority'] = priority
        return query

    @staticmethod
    def find_page(query, page=1, limit=20):
        db = db_instance.get_db()
        total = db.reports.count_documents(query)
        cursor = (db.reports.find(query)
                  .sort([('created_at', -1), ('_id', -1)])
                  .skip((page - 1) * limit)
                  .limit(limit))
        return [Report.from_record(r) for r in cursor], total

    @staticmethod
    def stats(user_id=None):
        """Dashboard counters over the reports visible to a user"""
        db = db_instance.get_db()
        base = Report.build_query(user_id=user_id)

        def count(**filters):
            return db.reports.count_documents({**base, **filters})

        total = count()
        by_status = {status: count(status=status) for status in STATUSES}
        by_type = {report_type: count(type=report_type) for report_type in TYPES}

        urgent_cursor = (db.reports.find({**base, 'priority': {'$in': list(URGENT_PRIORITIES)}})
                         .sort([('created_at', -1), ('_id', -1)])
                         .limit(3))

        return {
            'total': total,
            'open': by_status['open'],
            'inReview': by_status['in_review'],
            'resolved': by_status['resolved'],
            'activeCount': total - by_status['resolved'],
            'byType': by_type,
            'securityRatio': round(by_type['security'] * 100 / total) if total else 0,
            'recentUrgent': [Report.from_record(r).to_dict() for r in urgent_cursor]
        }

    def to_dict(self):
        return {
            'id': self.reference,
            'reference': self.reference,
            'type': self.type,
            'category': self.category,
            'location': self.location,
            'description': self.description,
            'priority': self.priority,
            'status': self.status,
            'source': self.source,
            'userId': self.user_id,
            'conversationId': self.conversation_id,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at
        }
