# sanitization_ext.py
"""
Wires the sanitization helpers into a Flask app: Jinja filters for templates
and a before_request hook that sanitizes incoming JSON bodies.
Usage: import and call `init_sanitization(app)` after creating your Flask app.
"""
from flask import current_app, request
from markupsafe import Markup

from input_sanitization import clean_text, escape_html, sanitize_input, sanitize_url, strip_scripts

# Paths whose JSON bodies must reach the handler untouched (e.g. signed
# webhook payloads). None by default.
DEFAULT_SKIP_PREFIXES = ()


def init_sanitization(app):
    app.config.setdefault('SANITIZE_JSON_INPUT', True)
    app.config.setdefault('SANITIZE_SKIP_PREFIXES', DEFAULT_SKIP_PREFIXES)

    # Already-escaped output is marked safe so autoescape does not escape it twice.
    app.add_template_filter(lambda value: Markup(escape_html(value)), 'escape_html')
    app.add_template_filter(sanitize_url, 'safe_url')
    app.add_template_filter(strip_scripts, 'strip_scripts')
    app.add_template_filter(clean_text, 'clean_text')
    app.add_template_filter(_sanitize_filter, 'sanitize')

    app.before_request(sanitize_json_input)
    app.extensions['textguard'] = {'skip_prefixes': tuple(app.config['SANITIZE_SKIP_PREFIXES'])}
    app.logger.info('Input sanitization enabled (json=%s)', app.config['SANITIZE_JSON_INPUT'])


def _sanitize_filter(value):
    if isinstance(value, str):
        return Markup(sanitize_input(value))
    return sanitize_input(value)


def sanitize_json_input():
    """
    Sanitizes every string value in an incoming JSON body so that downstream
    calls to request.get_json() return clean data. Bodies that are not valid
    JSON are left for the route handler to reject.
    """
    if not current_app.config['SANITIZE_JSON_INPUT'] or not request.is_json:
        return None
    if request.path.startswith(tuple(current_app.config['SANITIZE_SKIP_PREFIXES'])):
        current_app.logger.debug('[SANITIZE] skipping %s', request.path)
        return None

    try:
        raw = request.get_json(silent=True)
        if raw is None:
            return None
        sanitized = sanitize_input(raw)
    except RecursionError:
        # Nested deeper than the interpreter allows: treat it like a body that
        # did not parse, so the handler never sees the unsanitized data.
        current_app.logger.warning('[SANITIZE] JSON body for %s is nested too deeply', request.path)
        request._cached_json = (None, None)
        return None
    # Werkzeug caches (silent, non-silent) results of get_json().
    request._cached_json = (sanitized, sanitized)
    current_app.logger.debug('[SANITIZE] sanitized JSON body for %s', request.path)
    return None
