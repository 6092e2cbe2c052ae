import re

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from backend.config.database import db_instance
from backend.utils.errors import ValidationError, field_error
from backend.utils.serialization import to_object_id, utcnow

ROLES = ('student', 'admin', 'staff')
STAFF_ROLES = ('admin', 'staff')

EMAIL_PATTERN = re.compile(r'^[\w.+-]+@[\w-]+(\.[\w-]+)*\.\w{2,}$')
MIN_PASSWORD_LENGTH = 6


class User(UserMixin):
    def __init__(self, email, name, password_hash=None, role='student', active=True,
                 _id=None, created_at=None, updated_at=None):
        self.id = str(_id) if _id else None
        self.email = (email or '').strip().lower()
        self.name = (name or '').strip()
        self.password_hash = password_hash
        self.role = role or 'student'
        self.active = active
        self.created_at = created_at or utcnow()
        self.updated_at = updated_at or self.created_at

    @property
    def is_active(self):
        return bool(self.active)

    @property
    def is_staff(self):
        return self.role in STAFF_ROLES

    def set_password(self, password):
        """Hash and set password"""
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                [field_error('password', f'Password must be at least {MIN_PASSWORD_LENGTH} characters')]
            )
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check if password is correct"""
        if not self.password_hash or password is None:
            return False
        return check_password_hash(self.password_hash, password)

    def validate(self):
        errors = []
        if not self.name:
            errors.append(field_error('name', 'Please add a name'))
        elif len(self.name) > 50:
            errors.append(field_error('name', 'Name cannot be more than 50 characters'))

        if not self.email:
            errors.append(field_error('email', 'Please add an email'))
        elif not EMAIL_PATTERN.match(self.email):
            errors.append(field_error('email', 'Please add a valid email'))

        if self.role not in ROLES:
            errors.append(field_error('role', f"Role must be one of: {', '.join(ROLES)}"))

        if not self.password_hash:
            errors.append(field_error('password', 'Please add a password'))

        if errors:
            raise ValidationError(errors)

    def save(self):
        """Validate and save user to database"""
        self.validate()
        db = db_instance.get_db()
        self.updated_at = utcnow()
        user_data = {
            'email': self.email,
            'name': self.name,
            'password_hash': self.password_hash,
            'role': self.role,
            'is_active': self.active,
            'created_at': self.created_at,
            'updated_at': self.updated_at
        }

        if self.id:
            db.users.update_one({'_id': to_object_id(self.id)}, {'$set': user_data})
        else:
            result = db.users.insert_one(user_data)
            self.id = str(result.inserted_id)

        return self

    @staticmethod
    def from_record(user_data):
        return User(
            email=user_data['email'],
            name=user_data.get('name'),
            password_hash=user_data.get('password_hash'),
            role=user_data.get('role', 'student'),
            active=user_data.get('is_active', True),
            _id=user_data['_id'],
            created_at=user_data.get('created_at'),
            updated_at=user_data.get('updated_at')
        )

    @staticmethod
    def find_by_email(email):
        """Find user by email"""
        if not email:
            return None
        db = db_instance.get_db()
        user_data = db.users.find_one({'email': email.strip().lower()})
        return User.from_record(user_data) if user_data else None

    @staticmethod
    def find_by_id(user_id):
        """Find user by ID"""
        object_id = to_object_id(user_id)
        if object_id is None:
            return None
        db = db_instance.get_db()
        user_data = db.users.find_one({'_id': object_id})
        return User.from_record(user_data) if user_data else None

    @staticmethod
    def email_taken(email, exclude_id=None):
        db = db_instance.get_db()
        query = {'email': email.strip().lower()}
        if exclude_id:
            query['_id'] = {'$ne': to_object_id(exclude_id)}
        return db.users.find_one(query, {'_id': 1}) is not None

    @staticmethod
    def find_page(role=None, page=1, limit=20):
        db = db_instance.get_db()
        query = {}
        if role:
            query['role'] = role
        total = db.users.count_documents(query)
        cursor = (db.users.find(query)
                  .sort([('created_at', -1), ('_id', -1)])
                  .skip((page - 1) * limit)
                  .limit(limit))
        return [User.from_record(u) for u in cursor], total

    @staticmethod
    def summaries(user_ids):
        """Map user id -> {id, name, email} for the given ids"""
        object_ids = [oid for oid in (to_object_id(u) for u in set(user_ids)) if oid]
        if not object_ids:
            return {}
        db = db_instance.get_db()
        cursor = db.users.find({'_id': {'$in': object_ids}}, {'name': 1, 'email': 1})
        return {
            str(u['_id']): {'id': str(u['_id']), 'name': u.get('name'), 'email': u.get('email')}
            for u in cursor
        }

    def to_dict(self, include_status=False):
        """Convert user to dictionary"""
        data = {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'role': self.role,
            'createdAt': self.created_at
        }
        if include_status:
            data['isActive'] = self.is_active
            data['updatedAt'] = self.updated_at
        return data
