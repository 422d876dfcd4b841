import dataclasses
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from dotenv import load_dotenv

from jsunravel.exceptions import ConfigurationError

SOURCE_TYPES = ('module', 'script', 'both')
ECMA_VERSIONS = frozenset([3, 5, *range(6, 14), *range(2015, 2023), 'latest'])

# camelCase keys accepted for compatibility with the JavaScript API
CAMEL_CASE_KEYS = {
    'ecmaVersion': 'ecma_version',
    'transformChainExpressions': 'transform_chain_expressions',
    'customTransformers': 'custom_transformers',
    'sourceType': 'source_type',
}

TRUE_VALUES = ('1', 'true', 'yes', 'on')

TransformerEntry = Union[str, Tuple[str, Dict[str, Any]]]


def _env_flag(name, default):
    value = os.getenv(name)
    if value is None or value == '':
        return default
    return value.strip().lower() in TRUE_VALUES


def _ecma_version(value):
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return value


@dataclass
class DeobfuscateOptions:
    """Options for one deobfuscation call.

    ``logger`` is any object with ``info``, ``debug`` and ``error`` methods;
    when it is None the ``deobfuscator`` logger of the logger service is used.
    """

    ecma_version: Union[int, str] = 'latest'
    # Deprecated: only affects the formatter's view of optional chains
    transform_chain_expressions: bool = True
    custom_transformers: List[TransformerEntry] = field(default_factory=list)
    rename: bool = False
    source_type: str = 'both'
    loose: bool = False
    logger: Optional[Any] = None
    quiet: bool = False
    format: bool = True

    @classmethod
    def from_dict(cls, data, base=None):
        """Build options from a mapping with snake_case or camelCase keys.

        Keys missing from ``data`` keep the value they have in ``base``.
        """
        base = base if base is not None else cls()
        if data is None:
            return base.copy().validate()
        if not isinstance(data, dict):
            raise ConfigurationError('Options must be an object')
        known = {f.name for f in dataclasses.fields(cls)}
        values = {}
        for key, value in data.items():
            name = CAMEL_CASE_KEYS.get(key, key)
            if name not in known:
                raise ConfigurationError(f'Unknown option: {key!r}')
            values[name] = value
        if 'ecma_version' in values:
            values['ecma_version'] = _ecma_version(values['ecma_version'])
        return base.copy(**values).validate()

    @classmethod
    def from_env(cls, **overrides):
        """Build options from ``JSUNRAVEL_*`` environment variables."""
        load_dotenv()
        options = cls(
            ecma_version=_ecma_version(os.getenv('JSUNRAVEL_ECMA_VERSION', 'latest')),
            source_type=os.getenv('JSUNRAVEL_SOURCE_TYPE', 'both'),
            rename=_env_flag('JSUNRAVEL_RENAME', False),
            loose=_env_flag('JSUNRAVEL_LOOSE', False),
            quiet=_env_flag('JSUNRAVEL_QUIET', False),
            format=_env_flag('JSUNRAVEL_FORMAT', True),
        )
        options = dataclasses.replace(options, **overrides)
        options.validate()
        return options

    def validate(self):
        if self.source_type not in SOURCE_TYPES:
            raise ConfigurationError(
                f'sourceType must be one of {", ".join(SOURCE_TYPES)}, got {self.source_type!r}')
        if isinstance(self.ecma_version, bool) or not isinstance(self.ecma_version, (int, str)) \
                or self.ecma_version not in ECMA_VERSIONS:
            raise ConfigurationError(f'Unsupported ecmaVersion: {self.ecma_version!r}')
        if not isinstance(self.custom_transformers, (list, tuple)):
            raise ConfigurationError('customTransformers must be a list')
        for entry in self.custom_transformers:
            self.transformer_entry(entry)
        return self

    @staticmethod
    def transformer_entry(entry):
        """Normalise a custom transformer entry to a (name, options) pair."""
        if isinstance(entry, str):
            return entry, {}
        if isinstance(entry, (list, tuple)) and len(entry) == 2 and isinstance(entry[0], str):
            transformer_options = entry[1] if entry[1] is not None else {}
            if isinstance(transformer_options, dict):
                return entry[0], dict(transformer_options)
        raise ConfigurationError(f'Invalid transformer entry: {entry!r}')

    def copy(self, **changes):
        return dataclasses.replace(self, **changes)
