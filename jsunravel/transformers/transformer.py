class Transformer:
    """Base class for a deobfuscation pass.

    A pass rewrites ``context.ast`` in place and returns once the rewrite is
    complete. It can run several times in one pipeline and must cope with a
    tree that earlier passes have already reshaped. Errors are not caught
    anywhere in the pipeline: raising aborts the whole run.
    """

    name = None
    default_options = {}

    def __init__(self, options=None):
        self.options = {**self.default_options, **(options or {})}

    def transform(self, context):
        raise NotImplementedError

    def report(self, context, **details):
        """Record an obfuscation finding on the shared context."""
        finding = {'transformer': self.name}
        finding.update(details)
        context.obfuscations.append(finding)
        return finding

    def __repr__(self):
        return f'<{type(self).__name__} {self.options!r}>'
