import unittest
from unittest.mock import patch
from flask import render_template_string
from app import create_app


class TestJsonSanitization(unittest.TestCase):
    def setUp(self):
        self.app = create_app({'TESTING': True})
        self.client = self.app.test_client()

    def test_extension_registered(self):
        self.assertIn('textguard', self.app.extensions)
        self.assertTrue(self.app.config['SANITIZE_JSON_INPUT'])

    def test_json_body_is_sanitized(self):
        """Handlers see the sanitized body through request.get_json()."""
        response = self.client.post('/api/sanitize', json={
            'name': '<script>alert("XSS")</script>John Doe',
            'notes': ['Loves treats <img src=x>', 7],
            'profile': {'bio': "it's <b>me</b>", 'active': True},
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['data'], {
            'name': 'John Doe',
            'notes': ['Loves treats &lt;img src=x&gt;', 7],
            'profile': {'bio': 'it&#39;s &lt;b&gt;me&lt;/b&gt;', 'active': True},
        })

    def test_non_json_body_rejected_by_handler(self):
        response = self.client.post('/api/sanitize', data='<b>', content_type='text/plain')
        self.assertEqual(response.status_code, 400)

        response = self.client.post('/api/sanitize', data='{broken', content_type='application/json')
        self.assertEqual(response.status_code, 400)

    def test_deeply_nested_body_is_sanitized(self):
        depth = 600
        body = '[' * depth + '"<script>x</script><b>"' + ']' * depth
        response = self.client.post('/api/sanitize', data=body, content_type='application/json')
        self.assertEqual(response.status_code, 200)
        data = response.get_json()['data']
        for _ in range(depth):
            data = data[0]
        self.assertEqual(data, '&lt;b&gt;')

    def test_body_too_deep_to_parse_is_rejected(self):
        """The handler gets nothing rather than the unsanitized body."""
        depth = 100000
        body = '[' * depth + '"<b>"' + ']' * depth
        response = self.client.post('/api/sanitize', data=body, content_type='application/json')
        self.assertEqual(response.status_code, 400)

    def test_url_route_uses_raw_body(self):
        response = self.client.post('/api/sanitize/url', json={'url': 'https://example.com/?a=1&b=2'})
        self.assertEqual(response.get_json(), {'url': 'https://example.com/?a=1&b=2'})

        response = self.client.post('/api/sanitize/url', json={'url': 'javascript:alert(1)'})
        self.assertEqual(response.get_json(), {'url': 'about:blank'})

    def test_url_route_requires_url(self):
        response = self.client.post('/api/sanitize/url', json={'link': 'https://example.com'})
        self.assertEqual(response.status_code, 400)
        self.assertIn('error', response.get_json())

    def test_clean_text_route(self):
        response = self.client.post('/api/clean-text', json={'text': "It's <fine> #1"})
        self.assertEqual(response.get_json(), {'text': "It's fine 1"})

        response = self.client.post('/api/clean-text', json=['not', 'an', 'object'])
        self.assertEqual(response.status_code, 400)


class TestSanitizationConfig(unittest.TestCase):
    def test_no_prefix_skipped_by_default(self):
        app = create_app({'TESTING': True})
        self.assertEqual(app.config['SANITIZE_SKIP_PREFIXES'], ())

    def test_skip_prefixes(self):
        app = create_app({'TESTING': True, 'SANITIZE_SKIP_PREFIXES': ('/api/sanitize',)})
        response = app.test_client().post('/api/sanitize', json={'html': '<b>raw</b>'})
        self.assertEqual(response.get_json()['data'], {'html': '<b>raw</b>'})

    def test_disabled(self):
        app = create_app({'TESTING': True, 'SANITIZE_JSON_INPUT': False})
        response = app.test_client().post('/api/sanitize', json={'html': '<script>x</script>'})
        self.assertEqual(response.get_json()['data'], {'html': '<script>x</script>'})

    def test_environment(self):
        env = {'SANITIZE_JSON_INPUT': 'no', 'SANITIZE_SKIP_PREFIXES': '/hooks/, /raw/'}
        with patch.dict('os.environ', env):
            app = create_app({'TESTING': True})
        self.assertFalse(app.config['SANITIZE_JSON_INPUT'])
        self.assertEqual(app.config['SANITIZE_SKIP_PREFIXES'], ('/hooks/', '/raw/'))


class TestTemplateFilters(unittest.TestCase):
    def setUp(self):
        self.app = create_app({'TESTING': True})

    def render(self, source, **context):
        with self.app.test_request_context():
            return render_template_string(source, **context)

    def test_escape_html_not_double_escaped(self):
        self.assertEqual(self.render('{{ v|escape_html }}', v='<b>&</b>'), '&lt;b&gt;&amp;&lt;/b&gt;')

    def test_safe_url(self):
        self.assertEqual(self.render('<a href="{{ v|safe_url }}">', v='javascript:alert(1)'),
                         '<a href="about:blank">')
        self.assertEqual(self.render('{{ v|safe_url }}', v='https://example.com/?a=1&b=2'),
                         'https://example.com/?a=1&amp;b=2')

    def test_sanitize_and_strip(self):
        self.assertEqual(self.render('{{ v|sanitize }}', v='<script>x</script><i>'), '&lt;i&gt;')
        self.assertEqual(self.render('{{ v|strip_scripts }}', v='a<script>x</script>b'), 'ab')
        self.assertEqual(self.render('{{ v|clean_text }}', v='a#b'), 'ab')


if __name__ == '__main__':
    unittest.main()
