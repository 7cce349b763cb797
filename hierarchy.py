"""
Faculty hierarchy document editing

The hierarchy lives as one JSON document (faculty → department → semester →
module ids) in the lowest-id row of faculty_hierarchy. Every mutation is a
read-modify-write of the whole document. Without an expected revision the last
writer wins; with one, the write only lands if the row is still at that
revision.
"""
import copy
import logging
from datetime import datetime
from sqlalchemy.exc import SQLAlchemyError
from models import db, FacultyHierarchy

logger = logging.getLogger(__name__)


# ==================== ERRORS ====================

class HierarchyError(Exception):
    """Base error, carries the HTTP status it maps to"""
    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'error': self.message}


class InvalidRequest(HierarchyError):
    status_code = 400


class InvalidPath(HierarchyError):
    status_code = 400


class HierarchyNotFound(HierarchyError):
    status_code = 404


class RevisionConflict(HierarchyError):
    status_code = 409

    def __init__(self, message, current_revision):
        super().__init__(message)
        self.current_revision = current_revision

    def to_dict(self):
        return {'error': self.message, 'revision': self.current_revision}


class StorageFailure(HierarchyError):
    status_code = 500


# ==================== REQUEST PARSING ====================

def is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def parse_path(value):
    """A path is a non-empty list of string or integer keys"""
    if not isinstance(value, list) or not value:
        return None
    if not all(isinstance(key, str) or is_int(key) for key in value):
        return None
    return value


def parse_module_ids(value):
    if not isinstance(value, list) or not all(is_int(item) for item in value):
        return None
    return value


def parse_revision(value):
    """Revision is optional; when sent it must be an integer"""
    if value is None:
        return None
    if not is_int(value):
        raise InvalidRequest('Invalid request. revision must be an integer')
    return value


# ==================== PATH WALKING ====================

def _list_index(key):
    if is_int(key):
        return key
    if isinstance(key, str) and key.isdecimal() and key.isascii():
        return int(key)
    return None


def lookup(node, key):
    """Child of node at key, or None when it does not resolve"""
    if isinstance(node, dict):
        return node.get(str(key))
    if isinstance(node, list):
        index = _list_index(key)
        if index is None or index < 0 or index >= len(node):
            return None
        return node[index]
    return None


def _format_prefix(path, length):
    return '.'.join(str(key) for key in path[:length])


def walk_to_parent(document, path):
    """
    Follow every key but the last and return the container that holds the
    target. Raises InvalidPath naming the first prefix that does not resolve.
    """
    current = document
    for i, key in enumerate(path[:-1]):
        child = lookup(current, key)
        if child is None:
            raise InvalidPath(f'Invalid path: {_format_prefix(path, i + 1)} does not exist')
        current = child

    if not isinstance(current, (dict, list)):
        raise InvalidPath(f'Invalid path: {_format_prefix(path, len(path) - 1)} is not an object or array')
    return current


def assign(parent, key, value):
    if isinstance(parent, dict):
        parent[str(key)] = value
        return

    index = _list_index(key)
    if index is None or index < 0 or index >= len(parent):
        raise InvalidPath(f'Invalid path: index {key} is out of range')
    parent[index] = value


def target_array(parent, key):
    """The list at parent[key]; anything else is an invalid target"""
    value = lookup(parent, key)
    if not isinstance(value, list):
        raise InvalidPath('Target path is not an array')
    return value


# ==================== STORAGE ====================

def _load_row():
    try:
        return FacultyHierarchy.query.order_by(FacultyHierarchy.id.asc()).first()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Error fetching hierarchy')
        raise StorageFailure('Failed to fetch hierarchy data')


def _load_for_update(expected_revision):
    row = _load_row()
    if row is None:
        raise StorageFailure('Failed to fetch current hierarchy')

    if expected_revision is not None and expected_revision != row.revision:
        raise RevisionConflict('Hierarchy was modified by another request', row.revision)
    return row


def _persist(row, document, expected_revision):
    """Overwrite the whole document; returns the new revision"""
    query = FacultyHierarchy.query.filter_by(id=row.id)
    if expected_revision is not None:
        query = query.filter_by(revision=expected_revision)

    try:
        updated = query.update({
            'data': document,
            'revision': FacultyHierarchy.revision + 1,
            'updated_at': datetime.utcnow()
        }, synchronize_session=False)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Error updating hierarchy')
        raise StorageFailure('Failed to update hierarchy')

    if not updated:
        current = _load_row()
        raise RevisionConflict('Hierarchy was modified by another request',
                               current.revision if current else None)

    if expected_revision is not None:
        return expected_revision + 1
    # Expired by the commit, so this reloads
    return row.revision


# ==================== OPERATIONS ====================

def get_hierarchy():
    """Return (document, revision) for the live hierarchy"""
    row = _load_row()
    if row is None:
        raise HierarchyNotFound('Hierarchy data not found')
    return row.data, row.revision


def replace_modules(path, module_ids, expected_revision=None):
    """Overwrite the value at path with module_ids; returns the new revision"""
    row = _load_for_update(expected_revision)
    document = copy.deepcopy(row.data)

    parent = walk_to_parent(document, path)
    assign(parent, path[-1], list(dict.fromkeys(module_ids)))

    return _persist(row, document, expected_revision)


def add_module(path, module_id, expected_revision=None):
    """Append module_id to the array at path unless present; returns (modules, revision)"""
    row = _load_for_update(expected_revision)
    document = copy.deepcopy(row.data)

    parent = walk_to_parent(document, path)
    modules = target_array(parent, path[-1])
    if module_id not in modules:
        modules.append(module_id)

    revision = _persist(row, document, expected_revision)
    return modules, revision


def remove_module(path, module_id, expected_revision=None):
    """Drop every occurrence of module_id from the array at path; returns (modules, revision)"""
    row = _load_for_update(expected_revision)
    document = copy.deepcopy(row.data)

    parent = walk_to_parent(document, path)
    modules = [item for item in target_array(parent, path[-1]) if item != module_id]
    assign(parent, path[-1], modules)

    revision = _persist(row, document, expected_revision)
    return modules, revision
