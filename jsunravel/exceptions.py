import esprima

# esprima's own syntax error, surfaced to callers as-is
ParseError = esprima.Error


class DeobfuscatorError(Exception):
    """Base class for errors raised by jsunravel itself."""


class ConfigurationError(DeobfuscatorError, ValueError):
    """Invalid deobfuscation options."""


class UnknownTransformerError(ConfigurationError):
    """A pipeline names a transformer that is not registered."""

    def __init__(self, name):
        super().__init__(f'Unknown transformer: {name!r}')
        self.name = name


class TransformerError(DeobfuscatorError):
    """A pass found the tree in a state it cannot work with."""
