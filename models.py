"""
Database Models for the Kuppi Hub platform
Faculty → Department → Semester → Module hierarchy, kuppi videos and contributors
"""
from datetime import datetime
from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin

db = SQLAlchemy()


class User(UserMixin, db.Model):
    """Signed-in user, identified by the identity provider's uid"""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    firebase_uid = db.Column(db.String(128), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), index=True)
    display_name = db.Column(db.String(200))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    videos = db.relationship('Video', backref='added_by', lazy='dynamic')

    def __repr__(self):
        return f'<User {self.firebase_uid}>'


class Student(db.Model):
    """Student credited for a kuppi, keyed by university index number"""
    __tablename__ = 'students'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False, default='Unknown')
    index_no = db.Column(db.String(20), unique=True, nullable=False, index=True)  # e.g., "EG/2020/4321"
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    videos = db.relationship('Video', backref='student', lazy='dynamic')

    def __repr__(self):
        return f'<Student {self.index_no}>'


class Module(db.Model):
    """Academic module - the leaf of the faculty hierarchy"""
    __tablename__ = 'modules'

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), unique=True, nullable=False, index=True)  # e.g., "EE3301"
    name = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    videos = db.relationship('Video', backref='module', lazy='dynamic')

    def __repr__(self):
        return f'<Module {self.code}: {self.name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'name': self.name,
            'description': self.description
        }


class Video(db.Model):
    """A kuppi: video, link and material bundle contributed for a module"""
    __tablename__ = 'videos'

    id = db.Column(db.Integer, primary_key=True)
    module_id = db.Column(db.Integer, db.ForeignKey('modules.id'), nullable=False)
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text)
    language_code = db.Column(db.String(10), nullable=False)
    is_kuppi = db.Column(db.Boolean, default=True)
    is_hidden = db.Column(db.Boolean, nullable=False, default=False)  # hidden by its owner
    is_approved = db.Column(db.Boolean, nullable=False, default=True)
    allowed_domains = db.Column(db.JSON)  # e.g. ["@uom.lk"]; empty means public

    student_id = db.Column(db.Integer, db.ForeignKey('students.id'))
    added_by_user_id = db.Column(db.Integer, db.ForeignKey('users.id'))

    # Link collections, one per provider category
    youtube_links = db.Column(db.JSON, default=list)
    telegram_links = db.Column(db.JSON)
    gdrive_cloud_video_urls = db.Column(db.JSON)
    onedrive_cloud_video_urls = db.Column(db.JSON)
    material_urls = db.Column(db.JSON)

    published_at = db.Column(db.Date)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<Video {self.title}>'

    def to_dict(self):
        return {
            'id': self.id,
            'module_id': self.module_id,
            'title': self.title,
            'description': self.description,
            'language_code': self.language_code,
            'is_kuppi': self.is_kuppi,
            'is_hidden': self.is_hidden,
            'is_approved': self.is_approved,
            'allowed_domains': self.allowed_domains,
            'student_id': self.student_id,
            'added_by_user_id': self.added_by_user_id,
            'youtube_links': self.youtube_links or [],
            'telegram_links': self.telegram_links,
            'gdrive_cloud_video_urls': self.gdrive_cloud_video_urls,
            'onedrive_cloud_video_urls': self.onedrive_cloud_video_urls,
            'material_urls': self.material_urls,
            'published_at': self.published_at.isoformat() if self.published_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }


class FacultyHierarchy(db.Model):
    """The faculty hierarchy document; the lowest-id row is the live one"""
    __tablename__ = 'faculty_hierarchy'

    id = db.Column(db.Integer, primary_key=True)
    data = db.Column(db.JSON, nullable=False)
    revision = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<FacultyHierarchy {self.id} rev {self.revision}>'


# Database initialization functions
def init_hierarchy(db, data=None):
    """Seed the hierarchy document if the table is empty"""
    existing = FacultyHierarchy.query.order_by(FacultyHierarchy.id.asc()).first()
    if existing:
        return existing

    document = FacultyHierarchy(data=data if data is not None else {}, revision=0)
    db.session.add(document)
    db.session.commit()
    return document
