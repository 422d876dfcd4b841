import pytest

from jsunravel.exceptions import ConfigurationError
from jsunravel.models.options import DeobfuscateOptions


def test_defaults():
    options = DeobfuscateOptions()
    assert options.ecma_version == 'latest'
    assert options.transform_chain_expressions is True
    assert options.custom_transformers == []
    assert options.rename is False
    assert options.source_type == 'both'
    assert options.loose is False
    assert options.logger is None
    assert options.quiet is False
    assert options.format is True


def test_from_dict_accepts_camel_case():
    options = DeobfuscateOptions.from_dict({
        'ecmaVersion': 2020,
        'sourceType': 'script',
        'customTransformers': [['Simplify', {}]],
        'transformChainExpressions': False,
        'rename': True,
    })
    assert options.ecma_version == 2020
    assert options.source_type == 'script'
    assert options.custom_transformers == [['Simplify', {}]]
    assert options.transform_chain_expressions is False
    assert options.rename is True


def test_from_dict_keeps_base_values():
    base = DeobfuscateOptions(rename=True, loose=True)
    options = DeobfuscateOptions.from_dict({'loose': False}, base=base)
    assert options.rename is True
    assert options.loose is False
    assert base.loose is True


def test_from_dict_rejects_unknown_keys():
    with pytest.raises(ConfigurationError, match='Unknown option'):
        DeobfuscateOptions.from_dict({'minify': True})


@pytest.mark.parametrize('changes', [
    {'source_type': 'commonjs'},
    {'ecma_version': 4},
    {'ecma_version': 'es6'},
    {'ecma_version': True},
    {'custom_transformers': 'Simplify'},
    {'custom_transformers': [('Simplify', 'fast')]},
])
def test_validate_rejects(changes):
    with pytest.raises(ConfigurationError):
        DeobfuscateOptions(**changes).validate()


def test_numeric_ecma_version_strings_are_converted():
    assert DeobfuscateOptions.from_dict({'ecmaVersion': '2015'}).ecma_version == 2015


def test_transformer_entries():
    assert DeobfuscateOptions.transformer_entry('Simplify') == ('Simplify', {})
    assert DeobfuscateOptions.transformer_entry(('Rename', {'mangled_only': True})) == \
        ('Rename', {'mangled_only': True})
    assert DeobfuscateOptions.transformer_entry(['DeadCode', None]) == ('DeadCode', {})


def test_from_env(monkeypatch):
    monkeypatch.setenv('JSUNRAVEL_SOURCE_TYPE', 'script')
    monkeypatch.setenv('JSUNRAVEL_RENAME', 'true')
    monkeypatch.setenv('JSUNRAVEL_FORMAT', '0')
    monkeypatch.setenv('JSUNRAVEL_ECMA_VERSION', '2019')
    options = DeobfuscateOptions.from_env()
    assert options.source_type == 'script'
    assert options.rename is True
    assert options.format is False
    assert options.ecma_version == 2019


def test_from_env_rejects_bad_values(monkeypatch):
    monkeypatch.setenv('JSUNRAVEL_SOURCE_TYPE', 'amd')
    with pytest.raises(ConfigurationError):
        DeobfuscateOptions.from_env()
