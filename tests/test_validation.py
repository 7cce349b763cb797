"""
Validation and sanitization tests
"""
import re
import pytest

from validation import (
    sanitize_text, validate_url, is_valid_youtube_url, is_valid_telegram_url,
    is_valid_gdrive_url, is_valid_onedrive_url, validate_url_array,
    validate_index_no, validate_title, validate_description, validate_language_code,
    validate_email_domains, email_domain
)


class TestSanitizeText:

    @pytest.mark.parametrize('raw', [
        'Tom & Jerry',
        '<b>bold</b> "quoted" \'single\'',
        '<scr<script>ipt>alert(1)</script>',
        'a < b > c',
        '<img src=x onerror=alert(1)>',
        '&amp; already escaped',
    ])
    def test_output_has_no_raw_special_characters(self, raw):
        result = sanitize_text(raw)
        for ch in '<>"\'':
            assert ch not in result
        # every ampersand starts one of the five entities
        for match in re.finditer('&', result):
            assert re.match(r'&(amp|lt|gt|quot|#x27);', result[match.start():])

    def test_strips_tags(self):
        assert sanitize_text('<p>Hello <em>big</em> world</p>') == 'Hello big world'

    def test_script_text_survives_as_plain_text(self):
        assert sanitize_text('<script>alert(1)</script>hi') == 'alert(1)hi'
        assert sanitize_text('<p>Hello <script>alert(1)</script>world</p>') == 'Hello alert(1)world'

    def test_escapes_entities(self):
        assert sanitize_text('Tom & "Jerry\'s"') == 'Tom &amp; &quot;Jerry&#x27;s&quot;'

    def test_trims_whitespace(self):
        assert sanitize_text('   Data Structures  ') == 'Data Structures'

    @pytest.mark.parametrize('value', [None, '', 42, ['x']])
    def test_non_string_or_empty_gives_empty_string(self, value):
        assert sanitize_text(value) == ''


class TestValidateUrl:

    def test_rejects_javascript_and_data_schemes(self):
        assert validate_url('javascript:alert(1)') is None
        assert validate_url('data:text/html,x') is None
        assert validate_url('  JavaScript:alert(1)') is None

    def test_returns_trimmed_url(self):
        assert validate_url('  https://example.com/notes.pdf \n') == 'https://example.com/notes.pdf'

    @pytest.mark.parametrize('value', [
        'not a url',
        'ftp://example.com/file',
        'example.com/page',
        'https://',
        'http://exa mple.com',
        'https://example.com:notaport/',
        '',
        None,
        123,
    ])
    def test_rejects_invalid(self, value):
        assert validate_url(value) is None

    def test_accepts_http(self):
        assert validate_url('http://example.com') == 'http://example.com'


class TestCategoryValidators:

    @pytest.mark.parametrize('url', [
        'https://youtu.be/dQw4w9WgXcQ',
        'https://www.youtube.com/watch?v=dQw4w9WgXcQ',
        'https://youtube.com/shorts/abc123',
        'https://www.youtube.com/playlist?list=PL123-abc',
        'https://www.youtube.com/embed/xyz',
        'https://www.youtube.com/live/xyz',
    ])
    def test_youtube_accepts(self, url):
        assert is_valid_youtube_url(url) is True

    @pytest.mark.parametrize('url', [
        'https://vimeo.com/12345',
        'https://youtube.com/',
        'javascript:alert("youtu.be/x")',
        'youtu.be/dQw4w9WgXcQ',
    ])
    def test_youtube_rejects(self, url):
        assert is_valid_youtube_url(url) is False

    def test_telegram(self):
        assert is_valid_telegram_url('https://t.me/cse_kuppi')
        assert is_valid_telegram_url('https://telegram.me/cse_kuppi')
        assert not is_valid_telegram_url('https://t.co/abc')

    def test_gdrive(self):
        assert is_valid_gdrive_url('https://drive.google.com/file/d/1abc/view')
        assert is_valid_gdrive_url('https://docs.google.com/document/d/1abc')
        assert not is_valid_gdrive_url('https://dropbox.com/s/abc')

    def test_onedrive(self):
        assert is_valid_onedrive_url('https://1drv.ms/v/s!abc')
        assert is_valid_onedrive_url('https://onedrive.live.com/redir?resid=1')
        assert is_valid_onedrive_url('https://uom-my.sharepoint.com/personal/x')
        assert not is_valid_onedrive_url('https://sharepoint.com.evil.io/x')

    def test_empty_input_is_false(self):
        assert is_valid_youtube_url('') is False
        assert is_valid_onedrive_url(None) is False


class TestValidateUrlArray:

    def test_filters_and_keeps_order(self):
        urls = ['https://youtu.be/abc', 'not a url', 42, 'https://youtu.be/def']
        assert validate_url_array(urls, is_valid_youtube_url) == ['https://youtu.be/abc', 'https://youtu.be/def']

    def test_without_validator_accepts_any_http_url(self):
        urls = [' https://example.com/a.pdf ', 'https://t.me/x', 'mailto:me@x.com']
        assert validate_url_array(urls) == ['https://example.com/a.pdf', 'https://t.me/x']

    def test_does_not_deduplicate(self):
        urls = ['https://youtu.be/abc', 'https://youtu.be/abc']
        assert validate_url_array(urls, is_valid_youtube_url) == urls

    @pytest.mark.parametrize('value', [None, 'https://youtu.be/abc', {'a': 1}, 5])
    def test_non_list_gives_empty(self, value):
        assert validate_url_array(value) == []


class TestValidateIndexNo:

    def test_normalizes(self):
        assert validate_index_no('  eg/2020/4321 ') == 'EG/2020/4321'
        assert validate_index_no('2020is123') == '2020IS123'

    @pytest.mark.parametrize('value', ['a', 'EG 2020', 'A' * 21, 'EG_2020_1', '', None])
    def test_rejects(self, value):
        assert validate_index_no(value) is None


class TestEmailDomains:

    def test_normalizes_and_dedupes(self):
        assert validate_email_domains([' @UoM.lk', '@uom.lk', '@cse.mrt.ac.lk']) == ['@uom.lk', '@cse.mrt.ac.lk']

    @pytest.mark.parametrize('value', ['@uom.lk', ['uom.lk'], ['@uom'], ['@uom.lk', 7], None])
    def test_rejects(self, value):
        assert validate_email_domains(value) is None

    def test_email_domain(self):
        assert email_domain('Student@UoM.lk') == '@uom.lk'
        assert email_domain('no-at-sign') is None
        assert email_domain(None) is None


class TestTitleAndDescription:

    def test_title_too_short(self):
        result = validate_title('hi')
        assert result['valid'] is False
        assert result['sanitized'] == 'hi'
        assert result['error'] == 'Title must be at least 3 characters'

    def test_title_too_long(self):
        result = validate_title('A' * 201)
        assert result['valid'] is False
        assert result['error'] == 'Title must be less than 200 characters'

    def test_title_valid(self):
        result = validate_title('Valid Title')
        assert result['valid'] is True
        assert result['sanitized'] == 'Valid Title'

    def test_title_length_is_measured_after_sanitizing(self):
        # raw input is long enough, the text left after stripping tags is not
        assert validate_title('<b>ab</b>')['valid'] is False
        # 67 ampersands escape to 335 characters
        assert validate_title('&' * 67)['valid'] is False

    def test_title_required(self):
        assert validate_title(None) == {'valid': False, 'sanitized': '', 'error': 'Title is required'}

    def test_description_bounds(self):
        assert validate_description('too short')['error'] == 'Description must be at least 10 characters'
        assert validate_description('x' * 2001)['error'] == 'Description must be less than 2000 characters'
        assert validate_description('Covers normalisation up to BCNF.')['valid'] is True
        assert validate_description('')['error'] == 'Description is required'


class TestLanguageCode:

    @pytest.mark.parametrize('code', ['en', 'si', 'ta', 'mix'])
    def test_accepts(self, code):
        assert validate_language_code(code) is True

    @pytest.mark.parametrize('code', ['EN', 'fr', '', None])
    def test_rejects(self, code):
        assert validate_language_code(code) is False
