"""
Input validation and sanitization for user-submitted kuppi data
Titles, descriptions, provider links, index numbers and language codes
"""
import re
import html
from urllib.parse import urlsplit

ALLOWED_SCHEMES = ('http', 'https')
BLOCKED_PREFIXES = ('data:', 'javascript:')

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 200
DESCRIPTION_MIN_LENGTH = 10
DESCRIPTION_MAX_LENGTH = 2000

LANGUAGE_CODES = {'en', 'si', 'ta', 'mix'}

INDEX_NO_PATTERN = re.compile(r'^[A-Z0-9/\-]{4,20}$')
EMAIL_DOMAIN_PATTERN = re.compile(r'^@[a-z0-9-]+(\.[a-z0-9-]+)+$')

TAG_PATTERN = re.compile(r'<[^>]*>')

# ==================== PROVIDER PATTERNS ====================

YOUTUBE_PATTERNS = [
    re.compile(r'^(https?://)?(www\.)?youtube\.com/watch\?v=[\w-]+'),
    re.compile(r'^(https?://)?(www\.)?youtube\.com/embed/[\w-]+'),
    re.compile(r'^(https?://)?(www\.)?youtube\.com/v/[\w-]+'),
    re.compile(r'^(https?://)?youtu\.be/[\w-]+'),
    re.compile(r'^(https?://)?(www\.)?youtube\.com/playlist\?list=[\w-]+'),
    re.compile(r'^(https?://)?(www\.)?youtube\.com/shorts/[\w-]+'),
    re.compile(r'^(https?://)?(www\.)?youtube\.com/live/[\w-]+'),
]

TELEGRAM_PATTERNS = [
    re.compile(r'^(https?://)?(www\.)?t\.me/[\w-]+'),
    re.compile(r'^(https?://)?(www\.)?telegram\.me/[\w-]+'),
    re.compile(r'^(https?://)?(www\.)?telegram\.org/[\w-]+'),
]

GDRIVE_PATTERNS = [
    re.compile(r'^(https?://)?(www\.)?drive\.google\.com/'),
    re.compile(r'^(https?://)?(www\.)?docs\.google\.com/'),
]

ONEDRIVE_PATTERNS = [
    re.compile(r'^(https?://)?(www\.)?(1drv\.ms|onedrive\.live\.com|onedrive\.com)/'),
    re.compile(r'^(https?://)?[\w-]+\.sharepoint\.com/'),
]


def sanitize_text(value):
    """
    Strip tags and HTML-escape free text.
    Only the tags go: the text inside a <script> element is kept, escaped.
    """
    if not value or not isinstance(value, str):
        return ''

    text = TAG_PATTERN.sub('', value)
    # html.escape covers & < > " ' (the quote as &#x27;)
    return html.escape(text, quote=True).strip()


def validate_url(url):
    """Return the trimmed URL if it is an absolute http(s) URL, else None"""
    if not url or not isinstance(url, str):
        return None

    trimmed = url.strip()
    if not trimmed or trimmed.lower().startswith(BLOCKED_PREFIXES):
        return None

    try:
        parsed = urlsplit(trimmed)
        # Raises ValueError on a malformed port
        parsed.port
    except ValueError:
        return None

    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        return None

    host = parsed.hostname
    if not host or any(ch.isspace() for ch in host):
        return None

    return trimmed


def _matches_any(url, patterns):
    validated = validate_url(url)
    if not validated:
        return False
    return any(pattern.match(validated) for pattern in patterns)


def is_valid_youtube_url(url):
    return _matches_any(url, YOUTUBE_PATTERNS)


def is_valid_telegram_url(url):
    return _matches_any(url, TELEGRAM_PATTERNS)


def is_valid_gdrive_url(url):
    return _matches_any(url, GDRIVE_PATTERNS)


def is_valid_onedrive_url(url):
    return _matches_any(url, ONEDRIVE_PATTERNS)


def validate_url_array(urls, validator=None):
    """
    Filter an untrusted value down to the list of acceptable URLs.

    Non-lists give an empty list. Non-string items are dropped, the rest are
    trimmed and must pass validate_url and, when given, the category
    validator. Order is kept and duplicates are not removed.
    """
    if not isinstance(urls, list):
        return []

    accepted = []
    for url in urls:
        if not isinstance(url, str):
            continue
        url = url.strip()
        validated = validate_url(url)
        if not validated:
            continue
        if validator is not None and not validator(validated):
            continue
        accepted.append(url)
    return accepted


def validate_index_no(index_no):
    """Normalise an index number such as EG/2020/4321 or 2020IS123"""
    if not index_no or not isinstance(index_no, str):
        return None

    normalized = index_no.strip().upper()
    if not INDEX_NO_PATTERN.match(normalized):
        return None
    return normalized


def validate_email_domains(domains):
    """
    Normalise a kuppi's audience restriction, e.g. ['@uom.lk'].
    Returns the lower-cased list, or None when any entry is malformed.
    """
    if not isinstance(domains, list):
        return None

    normalized = []
    for domain in domains:
        if not isinstance(domain, str):
            return None
        domain = domain.strip().lower()
        if not EMAIL_DOMAIN_PATTERN.match(domain):
            return None
        if domain not in normalized:
            normalized.append(domain)
    return normalized


def email_domain(email):
    """'student@uom.lk' -> '@uom.lk'"""
    if not email or not isinstance(email, str) or '@' not in email:
        return None
    return '@' + email.rsplit('@', 1)[1].strip().lower()


def _validate_length(value, label, min_length, max_length):
    if not value or not isinstance(value, str):
        return {'valid': False, 'sanitized': '', 'error': f'{label} is required'}

    sanitized = sanitize_text(value)

    if len(sanitized) < min_length:
        return {'valid': False, 'sanitized': sanitized,
                'error': f'{label} must be at least {min_length} characters'}

    if len(sanitized) > max_length:
        return {'valid': False, 'sanitized': sanitized,
                'error': f'{label} must be less than {max_length} characters'}

    return {'valid': True, 'sanitized': sanitized, 'error': None}


def validate_title(title):
    return _validate_length(title, 'Title', TITLE_MIN_LENGTH, TITLE_MAX_LENGTH)


def validate_description(description):
    return _validate_length(description, 'Description', DESCRIPTION_MIN_LENGTH, DESCRIPTION_MAX_LENGTH)


def validate_language_code(code):
    return isinstance(code, str) and code in LANGUAGE_CODES
