import pytest
from unittest.mock import patch, MagicMock
import requests
from tenacity import RetryError

from jsunravel.services.source_service import (
    FILE_REGEX, collect_files, download_javascript, is_source_file, is_url, output_path,
)


@pytest.mark.parametrize('name,matches', [
    ('app.js', True),
    ('app.mjs', True),
    ('app.cjs', True),
    ('app.ts', True),
    ('app.mts', True),
    ('types.d.ts', False),
    ('APP.JS', True),
    ('bundle.MJS', True),
    ('Types.D.TS', False),
    ('app.jsx', False),
    ('app.json', False),
    ('style.css', False),
])
def test_file_regex(name, matches):
    assert bool(FILE_REGEX.search(name)) is matches


def test_cleaned_outputs_are_not_sources():
    assert is_source_file('dist/app.js')
    assert not is_source_file('dist/app.cleaned.js')


def test_is_url():
    assert is_url('https://example.com/app.js')
    assert is_url('http://example.com/app.js')
    assert not is_url('example.com/app.js')


def test_output_path():
    assert output_path('dist/app.js') == 'dist/app.cleaned.js'
    assert output_path('lib/index.mjs') == 'lib/index.cleaned.mjs'


def test_collect_files(tmp_path):
    for relative in ('b.js', 'a.ts', 'a.d.ts', 'a.cleaned.js', 'readme.md',
                     'sub/c.mjs', 'node_modules/dep/index.js', '.git/hook.js'):
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text('x;')

    found = collect_files(str(tmp_path))
    assert [p[len(str(tmp_path)) + 1:].replace('\\', '/') for p in found] == ['a.ts', 'b.js', 'sub/c.mjs']


def test_collect_single_file(tmp_path):
    path = tmp_path / 'notes.txt'
    path.write_text('x;')
    # an explicit file is taken whatever its extension
    assert collect_files(str(path)) == [str(path)]


@patch("requests.get")
def test_download_javascript_success(mock_get):
    mock_response = MagicMock()
    mock_response.text = "console.log('hello');"
    mock_response.raise_for_status.return_value = None
    mock_get.return_value = mock_response

    content = download_javascript("http://example.com/test.js")
    assert content == "console.log('hello');"
    mock_get.assert_called_once_with("http://example.com/test.js", timeout=30)


@patch("time.sleep")
@patch("requests.get")
def test_download_javascript_failure(mock_get, mock_sleep):
    mock_get.side_effect = requests.exceptions.RequestException("Network error")

    with pytest.raises(RetryError):
        download_javascript("http://example.com/test.js")
    assert mock_get.call_count == 3
