from jsunravel.exceptions import UnknownTransformerError
from jsunravel.transformers.transformer import Transformer

_registry = {}


def register(cls):
    """Class decorator adding a Transformer subclass to the registry."""
    if not cls.name:
        raise ValueError(f'{cls.__name__} has no transformer name')
    _registry[cls.name] = cls
    return cls


def get_transformer(name):
    try:
        return _registry[name]
    except KeyError:
        raise UnknownTransformerError(name) from None


def available_transformers():
    return sorted(_registry)


# Importing the pass modules registers them
from jsunravel.transformers import (  # noqa: E402,F401
    simplify,
    member_expression_cleaner,
    literal_map,
    dead_code,
    demangle,
    string_decoder,
    desequence,
    control_flow,
    rename,
)

__all__ = ['Transformer', 'register', 'get_transformer', 'available_transformers']
