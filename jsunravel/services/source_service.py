import os
import re

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from jsunravel.services.logger_service import logger_service

source_logger = logger_service.get_logger('source')

# .js .mjs .cjs .ts .mts .cts, but not declaration files
FILE_REGEX = re.compile(r'(?<!\.d)\.[mc]?[jt]s$', re.IGNORECASE)
CLEANED_MARKER = '.cleaned'


def is_url(target):
    return target.startswith(('http://', 'https://'))


def is_source_file(path):
    name = os.path.basename(path)
    if not FILE_REGEX.search(name):
        return False
    stem, _ = os.path.splitext(name)
    return not stem.endswith(CLEANED_MARKER)


def collect_files(path):
    """Source files under ``path`` (itself when it is a file), sorted."""
    if os.path.isfile(path):
        return [path]
    found = []
    for root, dirs, files in os.walk(path):
        dirs[:] = sorted(d for d in dirs if d not in ('node_modules', '.git'))
        for name in sorted(files):
            full_path = os.path.join(root, name)
            if is_source_file(full_path):
                found.append(full_path)
    return found


def output_path(path):
    """``dir/app.js`` -> ``dir/app.cleaned.js``."""
    stem, ext = os.path.splitext(path)
    return f'{stem}{CLEANED_MARKER}{ext}'


def read_source(path):
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


def write_source(path, source):
    with open(path, 'w', encoding='utf-8') as f:
        f.write(source)


@retry(stop=stop_after_attempt(3), wait=wait_fixed(2), retry=retry_if_exception_type(requests.exceptions.RequestException))
def download_javascript(url):
    """Download JavaScript content from a given URL with retries."""
    try:
        response = requests.get(url, timeout=30)
        response.raise_for_status()
        source_logger.debug(f'Downloaded {len(response.text)} characters from {url}')
        return response.text
    except requests.RequestException as e:
        source_logger.error(f'Error downloading {url}: {e}')
        raise  # Re-raise the exception to trigger retry
