"""
Kuppi Hub - Test Configuration and Fixtures
"""
import copy
from datetime import datetime, timedelta
import pytest
import jwt

from app import create_app
from models import db as _db, FacultyHierarchy, Module, User

SEMESTER_PATH = ['engineering', 'children', 'cse', 'children', 's3', 'modules']

SAMPLE_HIERARCHY = {
    'engineering': {
        'name': 'Faculty of Engineering',
        'children': {
            'cse': {
                'name': 'Computer Engineering',
                'children': {
                    's3': {'name': 'Semester 3', 'modules': [34, 35, 36]},
                    's4': {'name': 'Semester 4', 'modules': []}
                }
            }
        }
    },
    'science': {
        'name': 'Faculty of Science',
        'departments': [
            {'name': 'Physics', 'modules': [7, 8]}
        ]
    }
}


@pytest.fixture
def app():
    """Create application with an in-memory database"""
    app = create_app('testing')
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def hierarchy_row(db):
    """Seed the hierarchy document"""
    row = FacultyHierarchy(data=copy.deepcopy(SAMPLE_HIERARCHY), revision=0)
    db.session.add(row)
    db.session.commit()
    return row


def stored_document():
    _db.session.expire_all()
    return FacultyHierarchy.query.order_by(FacultyHierarchy.id.asc()).first().data


def make_token(uid, secret='test-jwt-secret', expires_in=timedelta(hours=1)):
    now = datetime.utcnow()
    payload = {'user_id': uid, 'sub': uid, 'iat': now, 'exp': now + expires_in}
    return jwt.encode(payload, secret, algorithm='HS256')


@pytest.fixture
def test_user(db):
    user = User(firebase_uid='firebase-uid-123', email='student@uom.lk', display_name='Test Student')
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def auth_headers(test_user):
    return {'Authorization': f'Bearer {make_token(test_user.firebase_uid)}'}


@pytest.fixture
def module(db):
    module = Module(code='CS3042', name='Database Systems', description='Relational databases')
    db.session.add(module)
    db.session.commit()
    return module
