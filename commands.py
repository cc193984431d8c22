"""CLI commands for sanitizing values from the shell (`flask sanitize-json ...`)."""
import json
import click
from flask import Flask
from input_sanitization import clean_text, safe_json_parse, sanitize_input, sanitize_url, strip_scripts


@click.command('sanitize-json')
@click.argument('source', type=click.File('r', encoding='utf-8'))
@click.option('--indent', type=int, default=None, help='Indent the output JSON by this many spaces.')
def sanitize_json_command(source, indent=None):
    """Print the JSON document in SOURCE (a file or '-') with every string sanitized."""
    text = source.read()
    data = safe_json_parse(text)
    if data is None and text.strip() != 'null':
        raise click.ClickException(f'{source.name} does not contain valid JSON.')
    click.echo(json.dumps(sanitize_input(data), indent=indent, ensure_ascii=False))


@click.command('sanitize-url')
@click.argument('url')
def sanitize_url_command(url):
    """Print URL if it is a valid http(s) URL, otherwise about:blank."""
    click.echo(sanitize_url(url))


@click.command('clean-text')
@click.argument('text')
def clean_text_command(text):
    """Print TEXT keeping only letters, digits, spaces and . , ! ? ' -"""
    click.echo(clean_text(text))


@click.command('strip-scripts')
@click.argument('text')
def strip_scripts_command(text):
    """Print TEXT with <script> blocks removed."""
    click.echo(strip_scripts(text))


def register_commands(app: Flask):
    """Register CLI commands for the application."""
    app.cli.add_command(sanitize_json_command)
    app.cli.add_command(sanitize_url_command)
    app.cli.add_command(clean_text_command)
    app.cli.add_command(strip_scripts_command)
