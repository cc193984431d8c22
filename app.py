# app.py
import os
import logging
from flask import Flask, request, jsonify
from dotenv import load_dotenv
from input_sanitization import sanitize_url, clean_text, safe_json_parse
from sanitization_ext import init_sanitization, DEFAULT_SKIP_PREFIXES

TRUE_VALUES = ('1', 'true', 'yes', 'on')


# Configure logging for the application
def configure_logging(app):
    """Configure application logging."""
    # The sanitizers log their fallbacks (rejected URLs, bad JSON) at DEBUG
    sanitizer_logger = logging.getLogger('input_sanitization')
    app.logger.setLevel(logging.DEBUG)
    sanitizer_logger.setLevel(logging.DEBUG)

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    # Create console handler with a higher log level
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    handlers = [console_handler]

    # Create file handler which logs even debug messages
    if app.config['LOG_TO_FILE']:
        logs_dir = app.config['LOG_DIR']
        os.makedirs(logs_dir, exist_ok=True)
        file_handler = logging.FileHandler(os.path.join(logs_dir, 'app.log'))
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    for logger in (app.logger, sanitizer_logger):
        # create_app() may run several times in one process (tests)
        for handler in list(logger.handlers):
            if getattr(handler, 'textguard', False):
                logger.removeHandler(handler)
                handler.close()
        for handler in handlers:
            handler.textguard = True
            logger.addHandler(handler)

    app.logger.info('Logging configured successfully')


def load_config(app, test_config=None):
    """Reads settings from the environment (and .env), then applies overrides."""
    load_dotenv()
    app.config['SECRET_KEY'] = os.environ.get('FLASK_SECRET_KEY', os.urandom(32))
    app.config['SANITIZE_JSON_INPUT'] = os.environ.get('SANITIZE_JSON_INPUT', '1').lower() in TRUE_VALUES

    skip_prefixes = os.environ.get('SANITIZE_SKIP_PREFIXES')
    if skip_prefixes:
        app.config['SANITIZE_SKIP_PREFIXES'] = tuple(p.strip() for p in skip_prefixes.split(',') if p.strip())
    else:
        app.config['SANITIZE_SKIP_PREFIXES'] = DEFAULT_SKIP_PREFIXES

    app.config['LOG_DIR'] = os.environ.get('LOG_DIR', os.path.join(app.root_path, 'logs'))
    app.config['LOG_TO_FILE'] = os.environ.get('LOG_TO_FILE', '1').lower() in TRUE_VALUES

    if test_config:
        app.config.update(test_config)
    if app.config.get('TESTING'):
        app.config['LOG_TO_FILE'] = False


def create_app(test_config=None):
    """
    Creates and configures the Flask application instance.
    This function acts as the application factory.
    """
    app = Flask(__name__)
    load_config(app, test_config)
    configure_logging(app)

    # Sanitize JSON bodies and register template filters
    init_sanitization(app)

    # Register CLI commands
    from commands import register_commands
    register_commands(app)

    @app.route('/api/sanitize', methods=['POST'])
    def sanitize_payload():
        """Echoes the JSON body after the before_request hook has sanitized it."""
        data = request.get_json(silent=True)
        if data is None:
            return jsonify({'error': 'Request body must be JSON.'}), 400
        return jsonify({'data': data})

    # The two routes below need the body as sent, before HTML escaping.
    def raw_json_field(name):
        data = safe_json_parse(request.get_data())
        return data.get(name) if isinstance(data, dict) else None

    @app.route('/api/sanitize/url', methods=['POST'])
    def sanitize_url_route():
        url = raw_json_field('url')
        if not isinstance(url, str):
            return jsonify({'error': "Field 'url' must be a string."}), 400
        safe = sanitize_url(url)
        if safe != url:
            app.logger.info(f"[SANITIZE] URL rewritten to {safe}")
        return jsonify({'url': safe})

    @app.route('/api/clean-text', methods=['POST'])
    def clean_text_route():
        text = raw_json_field('text')
        if not isinstance(text, str):
            return jsonify({'error': "Field 'text' must be a string."}), 400
        return jsonify({'text': clean_text(text)})

    return app


if __name__ == '__main__':
    app = create_app()
    # SECURITY WARNING: Never run with debug=True in production!
    debug_mode = os.environ.get('FLASK_ENV', '').lower() == 'development' or os.environ.get('FLASK_DEBUG', '') == '1'
    if debug_mode:
        print("[SECURITY WARNING] Debug mode is enabled. DO NOT use debug=True in production!")
    app.run(debug=debug_mode)
