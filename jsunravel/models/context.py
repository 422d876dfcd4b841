from typing import Any, Dict, NamedTuple

from jsunravel.transformers import Transformer, get_transformer


class ResolvedTransformer(NamedTuple):
    name: str
    options: Dict[str, Any]
    instance: Transformer


class Context:
    """State shared by the passes of one pipeline run.

    The context owns ``ast`` for the duration of the run. The pass list is
    resolved on construction, so an unknown transformer name fails before any
    pass has touched the tree.
    """

    def __init__(self, ast, transformers, is_module=False, hash=None, logger=None, quiet=False):
        self.ast = ast
        self.transformers = tuple(self._resolve(name, options) for name, options in transformers)
        self.is_module = is_module
        self.hash = hash
        self.logger = logger
        self.quiet = quiet
        self.obfuscations = []

    @staticmethod
    def _resolve(name, options):
        cls = get_transformer(name)
        instance = cls(options)
        return ResolvedTransformer(name, instance.options, instance)

    def log(self, message, *args):
        if self.quiet or self.logger is None:
            return
        self.logger.info(message, *args)

    def __repr__(self):
        names = ', '.join(t.name for t in self.transformers)
        return f'<Context module={self.is_module} transformers=[{names}]>'
