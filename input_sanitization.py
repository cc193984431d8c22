# input_sanitization.py
"""
Central utilities for input sanitization and XSS protection.

Use `sanitize_input` for any user-supplied value (string, list or dict) before
saving it to the DB or rendering it. The smaller helpers can be combined when
only one protection is needed:

    escape_html      -- escape & < > " '
    strip_scripts    -- drop <script>...</script> blocks
    clean_text       -- keep a small whitelist of characters
    sanitize_url     -- only allow absolute http/https URLs
    safe_json_parse  -- parse JSON, None on failure
"""
import ipaddress
import json
import logging
import re
from collections.abc import Mapping as MappingABC
from enum import Enum
from urllib.parse import quote, urlsplit

import idna
from markupsafe import escape

logger = logging.getLogger(__name__)

ABOUT_BLANK = 'about:blank'
ALLOWED_URL_SCHEMES = ('http', 'https')
DEFAULT_PORTS = {'http': 80, 'https': 443}

# <script ...> up to the next </script>; an unterminated tag never matches.
SCRIPT_BLOCK_RE = re.compile(
    r'<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>',
    re.IGNORECASE | re.ASCII,
)
DISALLOWED_TEXT_CHARS_RE = re.compile(r"[^a-zA-Z0-9 .,!?'-]")

# Characters a browser refuses inside a host name.
FORBIDDEN_HOST_RE = re.compile(r'[\x00-\x20#%/:<>?@\[\\\]^|\x7f]')
_C0_AND_SPACE = ''.join(chr(i) for i in range(0x21))

# Characters left as-is in each URL component; everything else is %-encoded.
PATH_SAFE = "/%!$&'()*+,;=:@[]^|"
QUERY_SAFE = "%!$&()*+,;=:@/?[]^`{|}\\"
FRAGMENT_SAFE = "%!$&'()*+,;=:@/?#[]^{|}\\"
USERINFO_SAFE = "%!$&'()*+,"


def _require_str(value, func_name):
    if not isinstance(value, str):
        raise TypeError(f'{func_name}() expects a str, got {type(value).__name__}')
    # Markup and other str subclasses are sanitized as plain text.
    return str(value)


def escape_html(text):
    """
    Escapes the five HTML-significant characters.

    & becomes &amp; (first, so the produced entities are not escaped twice),
    < &lt;, > &gt;, " &quot; and ' &#39;. The result is not idempotent:
    escaping '&amp;' again yields '&amp;amp;'.
    """
    text = _require_str(text, 'escape_html')
    return str(escape(text)).replace('&#34;', '&quot;')


def strip_scripts(text):
    """
    Removes every <script>...</script> block (case-insensitive).
    A <script> tag without a closing </script> is left in place.
    """
    text = _require_str(text, 'strip_scripts')
    return SCRIPT_BLOCK_RE.sub('', text)


def clean_text(text):
    """Keeps letters, digits, spaces and . , ! ? ' - only."""
    text = _require_str(text, 'clean_text')
    return DISALLOWED_TEXT_CHARS_RE.sub('', text)


def safe_json_parse(text):
    """
    Parses a JSON document. Returns None when the input cannot be parsed,
    which is indistinguishable from a document that is literally `null`.
    """
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except (TypeError, ValueError, RecursionError) as e:
        logger.debug('safe_json_parse: returning None (%s: %s)', type(e).__name__, e)
        return None


def _reject_constant(name):
    raise ValueError(f'{name} is not valid JSON')


# --- URLs -------------------------------------------------------------------

def sanitize_url(url):
    """
    Returns the normalized form of an absolute http/https URL, or 'about:blank'
    for anything else (javascript:, data:, relative or unparsable URLs).
    """
    try:
        return _normalize_http_url(url)
    except (TypeError, ValueError, UnicodeError, idna.IDNAError) as e:
        logger.debug('sanitize_url: rejected %r (%s)', url, e)
        return ABOUT_BLANK


def _normalize_http_url(url):
    if not isinstance(url, str):
        raise TypeError(f'expected a str, got {type(url).__name__}')
    url = re.sub(r'[\t\n\r]', '', url.strip(_C0_AND_SPACE))

    scheme, sep, rest = url.partition(':')
    if not sep or not re.fullmatch(r'[A-Za-z][A-Za-z0-9+.-]*', scheme):
        raise ValueError('not an absolute URL')
    scheme = scheme.lower()
    if scheme not in ALLOWED_URL_SCHEMES:
        raise ValueError(f'scheme {scheme!r} is not allowed')

    # http(s) URLs tolerate any number of slashes (or backslashes) after the
    # scheme, and treat backslashes in the path as slashes.
    rest, hmark, fragment = rest.lstrip('/\\').partition('#')
    rest, qmark, query = rest.partition('?')
    rest = rest.replace('\\', '/')
    parts = urlsplit(f'{scheme}://{rest}')

    userinfo, _, hostport = parts.netloc.rpartition('@')
    host = _normalize_host(parts.hostname, hostport)

    port = parts.port
    if port is not None and port != DEFAULT_PORTS[scheme]:
        host = f'{host}:{port}'
    if userinfo:
        host = _normalize_userinfo(userinfo) + host

    url = f'{scheme}://{host}{quote(_remove_dot_segments(parts.path), safe=PATH_SAFE)}'
    if qmark:
        url += '?' + quote(query, safe=QUERY_SAFE)
    if hmark:
        url += '#' + quote(fragment, safe=FRAGMENT_SAFE)
    return url


def _normalize_host(hostname, hostport):
    if not hostname:
        raise ValueError('URL has no host')
    if hostport.startswith('['):
        return f'[{ipaddress.IPv6Address(hostname).compressed}]'
    if FORBIDDEN_HOST_RE.search(hostname):
        raise ValueError(f'forbidden character in host {hostname!r}')
    if hostname.isascii():
        return hostname
    # UTS #46 without transitional mapping, as browsers do ('faß.de' keeps its ß).
    return idna.encode(hostname, uts46=True).decode('ascii')


def _normalize_userinfo(userinfo):
    username, _, password = userinfo.partition(':')
    userinfo = quote(username, safe=USERINFO_SAFE)
    if password:
        userinfo += ':' + quote(password, safe=USERINFO_SAFE)
    return f'{userinfo}@' if userinfo else ''


def _remove_dot_segments(path):
    segments = []
    for segment in path.split('/')[1:]:
        if segment in ('.', '%2e', '%2E'):
            continue
        if segment in ('..', '.%2e', '%2e.', '%2e%2e', '.%2E', '%2E.', '%2E%2E'):
            if segments:
                segments.pop()
            continue
        segments.append(segment)
    if path.split('/')[-1] in ('.', '..'):
        segments.append('')
    return '/' + '/'.join(segments)


# --- Structured values ------------------------------------------------------

class StructuredKind(Enum):
    """The closed set of shapes sanitize_input understands."""
    TEXT = 'text'
    SEQUENCE = 'sequence'
    MAPPING = 'mapping'
    SCALAR = 'scalar'


def classify(value):
    """
    Tells which StructuredKind an untyped value (e.g. decoded JSON or form
    data) is. Only looks at the value itself, not at its children.
    """
    if isinstance(value, str):
        return StructuredKind.TEXT
    if isinstance(value, (list, tuple)):
        return StructuredKind.SEQUENCE
    if isinstance(value, MappingABC):
        return StructuredKind.MAPPING
    return StructuredKind.SCALAR


def sanitize_input(value):
    """
    Recursively sanitizes strings inside lists and dicts.
    Strings are script-stripped then HTML-escaped; dict keys are left as-is;
    numbers, booleans and None are returned unchanged.

    Uses one stack frame per nesting level. Self-referencing containers
    raise RecursionError.
    """
    kind = classify(value)
    if kind is StructuredKind.TEXT:
        return escape_html(strip_scripts(value))
    if kind is StructuredKind.SEQUENCE:
        items = []
        for item in value:
            items.append(sanitize_input(item))
        return tuple(items) if isinstance(value, tuple) else items
    if kind is StructuredKind.MAPPING:
        entries = {}
        for key, item in value.items():
            entries[key] = sanitize_input(item)
        return entries
    return value
