from typing import Any, Dict, List, NamedTuple

from jsunravel.models.context import Context
from jsunravel.models.options import DeobfuscateOptions
from jsunravel.services import codegen_service
from jsunravel.services.logger_service import logger_service
from jsunravel.services.parser_service import parser_service

# Normalising passes are repeated after each specialised pass instead of
# iterating to a fixed point; the order is part of the behaviour.
DEFAULT_TRANSFORMERS = (
    ('Simplify', {}),
    ('MemberExpressionCleaner', {}),
    ('LiteralMap', {}),
    ('DeadCode', {}),
    ('Demangle', {}),
    ('StringDecoder', {}),
    ('Simplify', {}),
    ('MemberExpressionCleaner', {}),
    ('Desequence', {}),
    ('ControlFlow', {}),
    ('Desequence', {}),
    ('MemberExpressionCleaner', {}),
    ('Simplify', {}),
    ('DeadCode', {}),
    ('Simplify', {}),
    ('DeadCode', {}),
)

HASH_SEED = 0x94a3fa21


def source_hash(text):
    """Rolling multiply-xor hash over the UTF-16 code units of ``text``, last to first."""
    units = text.encode('utf-16-le')
    acc = HASH_SEED
    for index in range(len(units) - 2, -1, -2):
        unit = units[index] | (units[index + 1] << 8)
        acc = ((acc * 33) ^ unit) & 0xFFFFFFFF
    return acc


class DeobfuscateNodeResult(NamedTuple):
    program: Any
    obfuscations: List[Dict[str, Any]]


class DeobfuscationResult(NamedTuple):
    source: str
    obfuscations: List[Dict[str, Any]]


class Deobfuscator:
    """Runs the pass pipeline over a tree or over source text."""

    def __init__(self, parser=None):
        self.parser = parser or parser_service
        self.logger = logger_service.get_logger('deobfuscator')

    def _options(self, options):
        if options is None:
            options = DeobfuscateOptions()
        elif isinstance(options, dict):
            options = DeobfuscateOptions.from_dict(options)
        options.validate()
        # each call resolves source_type on its own copy
        return options.copy(logger=options.logger or self.logger)

    def _pipeline(self, options):
        if options.custom_transformers:
            return [DeobfuscateOptions.transformer_entry(entry) for entry in options.custom_transformers]
        return [(name, dict(transformer_options)) for name, transformer_options in DEFAULT_TRANSFORMERS]

    def _run(self, program, options):
        """Main pipeline, then the rename stage when requested."""
        is_module = options.source_type == 'module'
        context = Context(program, self._pipeline(options), is_module=is_module,
                          logger=options.logger, quiet=options.quiet)
        for transformer in context.transformers:
            context.log('Running %s transformer', transformer.name)
            transformer.instance.transform(context)

        if not options.rename:
            return context.ast, context.obfuscations

        # ranges in the rewritten tree are stale, so rename works on fresh text
        source = codegen_service.generate(context.ast)
        rename_context = Context(self.parser.parse(source, options), [('Rename', {})],
                                 is_module=options.source_type == 'module',
                                 logger=options.logger, quiet=options.quiet)
        rename_context.hash = source_hash(source)
        for transformer in rename_context.transformers:
            rename_context.log('(rename) Running %s transformer', transformer.name)
            transformer.instance.transform(rename_context)
        return rename_context.ast, context.obfuscations + rename_context.obfuscations

    def deobfuscate_node_with_details(self, program, options=None):
        options = self._options(options)
        program, obfuscations = self._run(program, options)
        return DeobfuscateNodeResult(program, obfuscations)

    def deobfuscate_node(self, program, options=None):
        return self.deobfuscate_node_with_details(program, options).program

    def deobfuscate_source_with_details(self, source, options=None):
        options = self._options(options)
        program = self.parser.parse(source, options)
        program, obfuscations = self._run(program, options)
        output = codegen_service.generate(program)
        if options.format:
            output = self._format(output, options)
        return DeobfuscationResult(output, obfuscations)

    def deobfuscate_source(self, source, options=None):
        return self.deobfuscate_source_with_details(source, options).source

    def _format(self, source, options):
        try:
            return codegen_service.format_source(
                source, lambda text: self.parser.parse(text, options),
                transform_chains=options.transform_chain_expressions)
        except Exception as e:
            if not options.quiet:
                options.logger.error(f"Formatting failed, returning unformatted output: {e}")
            return source


# Global deobfuscator instance
deobfuscator = Deobfuscator()
