import json
import os
import sys

import click
from tenacity import RetryError

from jsunravel.exceptions import ConfigurationError, ParseError
from jsunravel.models.options import DeobfuscateOptions, SOURCE_TYPES
from jsunravel.services import source_service
from jsunravel.services.deobfuscator import deobfuscator
from jsunravel.services.logger_service import logger_service

cli_logger = logger_service.get_logger('cli')


def load_options(config=None, **overrides):
    """Environment, then the JSON config file, then command line flags."""
    data = None
    if config is not None:
        try:
            data = json.load(config)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f'not valid JSON: {e}', param_hint='--config')
    flags = {key: value for key, value in overrides.items() if value is not None}
    try:
        options = DeobfuscateOptions.from_dict(data, base=DeobfuscateOptions.from_env())
        return DeobfuscateOptions.from_dict(flags, base=options)
    except ConfigurationError as e:
        raise click.UsageError(str(e))


@click.group()
@click.option('--log-level', default='WARNING', show_default=True,
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False))
def cli(log_level):
    """Deobfuscate JavaScript files."""
    logger_service.configure(log_level)


@cli.command()
@click.argument('target')
@click.option('-o', '--output', type=click.Path(dir_okay=False), help='Write the result to this file.')
@click.option('--rename/--no-rename', default=None, help='Give local bindings readable names.')
@click.option('--loose/--strict', default=None, help='Tolerate syntax errors while parsing.')
@click.option('--source-type', type=click.Choice(SOURCE_TYPES), default=None)
@click.option('--ecma-version', default=None, help='Grammar version, e.g. 2020 or latest.')
@click.option('--config', type=click.File('r'), default=None, help='JSON file with options.')
@click.option('--format/--no-format', 'format_output', default=None, help='Beautify the output.')
@click.option('--quiet/--verbose', default=None, help='Silence pipeline progress logs.')
def deobfuscate(target, output, rename, loose, source_type, ecma_version, config, format_output, quiet):
    """Deobfuscate TARGET, a file, a directory or an http(s) URL.

    Files are written next to the input as NAME.cleaned.EXT unless --output
    is given; downloaded scripts go to stdout.
    """
    options = load_options(
        config, rename=rename, loose=loose, source_type=source_type,
        ecma_version=ecma_version, format=format_output, quiet=quiet,
    )

    if source_service.is_url(target):
        try:
            source = source_service.download_javascript(target)
        except RetryError as e:
            raise click.ClickException(f'Could not download {target}: {e.last_attempt.exception()}')
        result = _run(target, source, options)
        if output:
            source_service.write_source(output, result)
        else:
            click.echo(result)
        return

    if not os.path.exists(target):
        raise click.BadParameter(f'{target} does not exist', param_hint='TARGET')
    files = source_service.collect_files(target)
    if output and len(files) != 1:
        raise click.UsageError('--output needs exactly one input file')
    if not files:
        click.echo(f'No JavaScript files found in {target}', err=True)
        return

    failed = 0
    for path in files:
        try:
            result = _run(path, source_service.read_source(path), options)
        except ParseError as e:
            failed += 1
            click.echo(f'{path}: {e}', err=True)
            continue
        destination = output or source_service.output_path(path)
        source_service.write_source(destination, result)
        click.echo(f'{path} -> {destination}')
    if failed:
        sys.exit(1)


def _run(name, source, options):
    cli_logger.info(f'Deobfuscating {name}')
    return deobfuscator.deobfuscate_source(source, options)


if __name__ == '__main__':
    cli()
