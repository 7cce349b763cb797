"""
RESTful API Endpoints for the Kuppi Hub platform
Faculty hierarchy editing, kuppi submission, listing and owner edits, module lookup
"""
import logging
from datetime import date
from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required, current_user
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from models import db, Module, Student, Video
import hierarchy
from hierarchy import HierarchyError, InvalidRequest
from validation import (
    validate_title, validate_description, validate_language_code,
    validate_index_no, validate_url_array, validate_email_domains, email_domain,
    is_valid_youtube_url, is_valid_telegram_url, is_valid_gdrive_url,
    is_valid_onedrive_url
)

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__)
limiter = Limiter(key_func=get_remote_address)

# The submission form only offers these; validate_language_code also allows 'mix'
KUPPI_LANGUAGE_CODES = ('si', 'ta', 'en')

# Request field → category validator (None: any http(s) URL)
KUPPI_LINK_FIELDS = {
    'youtube_links': is_valid_youtube_url,
    'telegram_links': is_valid_telegram_url,
    'gdrive_cloud_video_urls': is_valid_gdrive_url,
    'onedrive_cloud_video_urls': is_valid_onedrive_url,
    'material_urls': None,
}


def log_action(action_type, user_id=None, details=None):
    """Helper function for structured logging"""
    log_data = {
        'action': action_type,
        'user_id': user_id,
        'details': details,
        'ip': request.remote_addr if request else None,
        'user_agent': request.headers.get('User-Agent') if request else None
    }
    logger.info(f"ACTION: {action_type} | Data: {log_data}")


@api_bp.errorhandler(HierarchyError)
def handle_hierarchy_error(error):
    return jsonify(error.to_dict()), error.status_code


# ==================== HIERARCHY ====================

def _hierarchy_body(ids_field):
    """Parse {path, <ids_field>, revision?}; ids_field is moduleIds or moduleId"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}

    path = hierarchy.parse_path(data.get('path'))
    if ids_field == 'moduleIds':
        ids = hierarchy.parse_module_ids(data.get('moduleIds'))
        if path is None or ids is None:
            raise InvalidRequest('Invalid request. Required: path (array), moduleIds (array)')
    else:
        ids = data.get('moduleId')
        if path is None or not hierarchy.is_int(ids):
            raise InvalidRequest('Invalid request. Required: path (array), moduleId (number)')

    return path, ids, hierarchy.parse_revision(data.get('revision'))


@api_bp.route('/hierarchy', methods=['GET'])
def get_hierarchy():
    """Fetch the faculty hierarchy document"""
    document, revision = hierarchy.get_hierarchy()

    response = jsonify(document)
    response.headers['Cache-Control'] = current_app.config['HIERARCHY_CACHE_CONTROL']
    response.headers['Vary'] = 'Accept-Encoding'
    response.headers['X-Hierarchy-Revision'] = str(revision)
    return response


@api_bp.route('/hierarchy', methods=['PUT'])
def replace_hierarchy_modules():
    """
    Replace the module IDs at a path
    Body: { path: ["engineering", "children", "cse", "children", "s3", "modules"], moduleIds: [34, 35, 36] }
    """
    path, module_ids, revision = _hierarchy_body('moduleIds')
    new_revision = hierarchy.replace_modules(path, module_ids, revision)

    log_action('hierarchy_replace', details={'path': path, 'module_ids': module_ids})

    return jsonify({
        'success': True,
        'message': 'Hierarchy updated successfully',
        'revision': new_revision
    }), 200


@api_bp.route('/hierarchy', methods=['POST'])
def add_hierarchy_module():
    """
    Add a single module ID to a path
    Body: { path: [...], moduleId: 250 }
    """
    path, module_id, revision = _hierarchy_body('moduleId')
    modules, new_revision = hierarchy.add_module(path, module_id, revision)

    log_action('hierarchy_add', details={'path': path, 'module_id': module_id})

    return jsonify({
        'success': True,
        'message': f'Module {module_id} added successfully',
        'modules': modules,
        'revision': new_revision
    }), 200


@api_bp.route('/hierarchy', methods=['DELETE'])
def remove_hierarchy_module():
    """
    Remove a module ID from a path
    Body: { path: [...], moduleId: 250 }
    """
    path, module_id, revision = _hierarchy_body('moduleId')
    modules, new_revision = hierarchy.remove_module(path, module_id, revision)

    log_action('hierarchy_remove', details={'path': path, 'module_id': module_id})

    return jsonify({
        'success': True,
        'message': f'Module {module_id} removed successfully',
        'modules': modules,
        'revision': new_revision
    }), 200


# ==================== KUPPIS ====================

def find_or_create_student(index_no):
    """Look up a student by normalised index number, creating a placeholder if needed"""
    student = Student.query.filter_by(index_no=index_no).first()
    if student:
        return student

    student = Student(name='Unknown', index_no=index_no)
    db.session.add(student)
    db.session.flush()
    return student


@api_bp.route('/add-kuppi', methods=['POST'])
@limiter.limit("20/hour")
@login_required
def add_kuppi():
    """Submit a kuppi for a module"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid request body'}), 400

    module_id = data.get('module_id')
    if not hierarchy.is_int(module_id):
        return jsonify({'error': 'Module is required'}), 400

    try:
        module = db.session.get(Module, module_id)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Error fetching module')
        return jsonify({'error': 'Failed to submit kuppi'}), 500
    if not module:
        return jsonify({'error': 'Module not found'}), 404

    title = validate_title(data.get('title'))
    if not title['valid']:
        return jsonify({'error': title['error']}), 400

    description = validate_description(data.get('description'))
    if not description['valid']:
        return jsonify({'error': description['error']}), 400

    language_code = data.get('language_code')
    if not language_code:
        return jsonify({'error': 'Language is required'}), 400
    if not validate_language_code(language_code) or language_code not in KUPPI_LANGUAGE_CODES:
        return jsonify({'error': 'Invalid language'}), 400

    links = {
        field: validate_url_array(data.get(field), validator)
        for field, validator in KUPPI_LINK_FIELDS.items()
    }
    if not any(links.values()):
        return jsonify({'error': 'At least one video or material link is required'}), 400

    index_no = data.get('index_no')
    if isinstance(index_no, str) and index_no.strip():
        index_no = validate_index_no(index_no)
        if not index_no:
            return jsonify({'error': 'Invalid index number'}), 400
    else:
        index_no = None

    allowed_domains = None
    if data.get('allowed_domains'):
        allowed_domains = validate_email_domains(data['allowed_domains'])
        if not allowed_domains:
            return jsonify({'error': 'Invalid allowed domains'}), 400

    try:
        student = find_or_create_student(index_no) if index_no else None

        video = Video(
            module_id=module.id,
            title=title['sanitized'],
            description=description['sanitized'],
            language_code=language_code,
            is_kuppi=data.get('is_kuppi') if isinstance(data.get('is_kuppi'), bool) else True,
            student_id=student.id if student else None,
            added_by_user_id=current_user.id,
            youtube_links=links['youtube_links'],
            telegram_links=links['telegram_links'] or None,
            gdrive_cloud_video_urls=links['gdrive_cloud_video_urls'] or None,
            onedrive_cloud_video_urls=links['onedrive_cloud_video_urls'] or None,
            material_urls=links['material_urls'] or None,
            allowed_domains=allowed_domains,
            published_at=date.today()
        )
        db.session.add(video)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Error inserting video')
        return jsonify({'error': 'Failed to submit kuppi'}), 500

    log_action('add_kuppi', user_id=current_user.id, details={'video_id': video.id, 'module_id': module.id})

    return jsonify({
        'success': True,
        'message': 'Kuppi submitted successfully',
        'data': video.to_dict()
    }), 200


def can_access(video, user):
    """Kuppis without a domain list are public; the rest need a signed-in user from a listed domain"""
    if not video.allowed_domains:
        return True
    if not user.is_authenticated:
        return False
    return email_domain(user.email) in video.allowed_domains


def _public_kuppi(video):
    data = video.to_dict()
    data['owner'] = {'name': video.student.name} if video.student else None
    return data


@api_bp.route('/kuppis', methods=['GET'])
def get_kuppis():
    """Visible, approved kuppis of a module, newest first, e.g. /api/kuppis?moduleId=12"""
    module_id = (request.args.get('moduleId') or '').strip()
    if not module_id:
        return jsonify({'error': 'moduleId is required'}), 400
    if not (module_id.isascii() and module_id.isdecimal()):
        return jsonify({'error': 'moduleId must be a number'}), 400

    try:
        videos = (Video.query
                  .filter_by(module_id=int(module_id), is_hidden=False, is_approved=True)
                  .order_by(Video.created_at.desc(), Video.id.desc())
                  .all())
        kuppis = [_public_kuppi(v) for v in videos if can_access(v, current_user)]
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Error fetching kuppis')
        return jsonify({'error': 'Failed to fetch kuppis'}), 500

    return jsonify(kuppis), 200


# ==================== MY KUPPIS ====================

def _my_kuppi(video):
    data = video.to_dict()
    data['module'] = {'id': video.module.id, 'code': video.module.code, 'name': video.module.name}
    data['student'] = {
        'id': video.student.id,
        'name': video.student.name,
        'index_no': video.student.index_no
    } if video.student else None
    return data


def _owned_video(data):
    """Resolve body.video_id to one of the current user's videos; returns (video, error_response)"""
    video_id = data.get('video_id')
    if not hierarchy.is_int(video_id):
        return None, (jsonify({'error': 'Video ID is required'}), 400)

    video = db.session.get(Video, video_id)
    if not video:
        return None, (jsonify({'error': 'Video not found'}), 404)
    if video.added_by_user_id != current_user.id:
        return None, (jsonify({'error': 'You can only edit your own kuppis'}), 403)
    return video, None


@api_bp.route('/my-kuppis', methods=['GET'])
@login_required
def get_my_kuppis():
    """Every kuppi the signed-in user added, hidden ones included"""
    try:
        videos = current_user.videos.order_by(Video.created_at.desc(), Video.id.desc()).all()
        kuppis = [_my_kuppi(v) for v in videos]
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Error fetching my kuppis')
        return jsonify({'error': 'Failed to fetch kuppis'}), 500

    return jsonify({'data': kuppis}), 200


@api_bp.route('/my-kuppis', methods=['PUT'])
@login_required
def update_my_kuppi():
    """
    Edit one of the signed-in user's kuppis
    Body: { video_id: 7, title?, description?, language_code?, is_hidden?, allowed_domains?, <link fields>? }
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid request body'}), 400

    video, error = _owned_video(data)
    if error:
        return error

    changes = {}

    if 'title' in data:
        title = validate_title(data['title'])
        if not title['valid']:
            return jsonify({'error': title['error']}), 400
        changes['title'] = title['sanitized']

    if 'description' in data:
        description = validate_description(data['description'])
        if not description['valid']:
            return jsonify({'error': description['error']}), 400
        changes['description'] = description['sanitized']

    if 'language_code' in data:
        language_code = data['language_code']
        if not validate_language_code(language_code) or language_code not in KUPPI_LANGUAGE_CODES:
            return jsonify({'error': 'Invalid language'}), 400
        changes['language_code'] = language_code

    if 'is_hidden' in data:
        if not isinstance(data['is_hidden'], bool):
            return jsonify({'error': 'is_hidden must be a boolean'}), 400
        changes['is_hidden'] = data['is_hidden']

    if 'allowed_domains' in data:
        allowed_domains = None
        if data['allowed_domains']:
            allowed_domains = validate_email_domains(data['allowed_domains'])
            if not allowed_domains:
                return jsonify({'error': 'Invalid allowed domains'}), 400
        changes['allowed_domains'] = allowed_domains

    for field, validator in KUPPI_LINK_FIELDS.items():
        if field in data:
            urls = validate_url_array(data[field], validator)
            changes[field] = urls if field == 'youtube_links' else urls or None

    if not changes:
        return jsonify({'error': 'No fields to update'}), 400

    if not any(changes.get(field, getattr(video, field)) for field in KUPPI_LINK_FIELDS):
        return jsonify({'error': 'At least one video or material link is required'}), 400

    try:
        for field, value in changes.items():
            setattr(video, field, value)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Error updating video')
        return jsonify({'error': 'Failed to update kuppi'}), 500

    log_action('update_kuppi', user_id=current_user.id, details={'video_id': video.id, 'fields': sorted(changes)})

    if 'is_hidden' in changes:
        message = 'Kuppi hidden successfully' if changes['is_hidden'] else 'Kuppi unhidden successfully'
    else:
        message = 'Kuppi updated successfully'

    return jsonify({
        'success': True,
        'message': message,
        'data': video.to_dict()
    }), 200


@api_bp.route('/my-kuppis', methods=['PATCH'])
@login_required
def toggle_my_kuppi():
    """Flip the hidden flag of one of the signed-in user's kuppis. Body: { video_id: 7 }"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid request body'}), 400

    video, error = _owned_video(data)
    if error:
        return error

    hidden = not video.is_hidden
    try:
        video.is_hidden = hidden
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Error toggling video visibility')
        return jsonify({'error': 'Failed to update kuppi'}), 500

    log_action('toggle_kuppi', user_id=current_user.id, details={'video_id': video.id, 'is_hidden': hidden})

    return jsonify({
        'success': True,
        'message': 'Kuppi hidden successfully' if hidden else 'Kuppi is now visible',
        'data': video.to_dict()
    }), 200


# ==================== MODULES ====================

@api_bp.route('/modules-by-ids', methods=['GET'])
def get_modules_by_ids():
    """Fetch modules by their IDs, e.g. /api/modules-by-ids?ids=1,2,3"""
    ids_param = request.args.get('ids')
    if not ids_param:
        return jsonify({'error': 'Missing required parameter: ids'}), 400

    parts = [part.strip() for part in ids_param.split(',')]
    # isdigit() also accepts superscripts, which int() rejects
    ids = [int(part) for part in parts if part.isascii() and part.isdecimal()]
    if not ids:
        return jsonify({'error': 'No valid IDs provided'}), 400

    try:
        modules = Module.query.filter(Module.id.in_(ids)).all()
        counts = dict(
            db.session.query(Video.module_id, func.count(Video.id))
            .filter(Video.module_id.in_(ids))
            .group_by(Video.module_id)
            .all()
        )
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Error fetching modules')
        return jsonify({'error': 'Failed to fetch modules'}), 500

    return jsonify([{
        'module_id': m.id,
        'module': m.to_dict(),
        'video_count': counts.get(m.id, 0)
    } for m in modules]), 200
