"""AST-based JavaScript deobfuscation pipeline."""
from jsunravel.exceptions import (
    ConfigurationError, DeobfuscatorError, ParseError, TransformerError, UnknownTransformerError,
)
from jsunravel.models.context import Context
from jsunravel.models.options import DeobfuscateOptions
from jsunravel.services.deobfuscator import (
    DEFAULT_TRANSFORMERS, DeobfuscateNodeResult, DeobfuscationResult, Deobfuscator, deobfuscator,
    source_hash,
)
from jsunravel.transformers import Transformer, available_transformers, get_transformer, register

__version__ = '0.1.0'

__all__ = [
    'ConfigurationError', 'Context', 'DEFAULT_TRANSFORMERS', 'DeobfuscateNodeResult',
    'DeobfuscateOptions', 'DeobfuscationResult', 'Deobfuscator', 'DeobfuscatorError',
    'ParseError', 'Transformer', 'TransformerError', 'UnknownTransformerError',
    'available_transformers', 'deobfuscator', 'get_transformer', 'register', 'source_hash',
]
