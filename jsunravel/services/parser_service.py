import re

import esprima

from jsunravel.exceptions import ParseError
from jsunravel.services.logger_service import logger_service
from jsunravel.util.nodes import expression_statement, identifier, statement_list_fields
from jsunravel.util.walk import iter_nodes

PARSERS = {
    'module': esprima.parseModule,
    'script': esprima.parseScript,
}

# Name of the identifier standing in for a region that did not parse
PLACEHOLDER_NAME = '✖'

LINE_CONTENT_RE = re.compile(r'[^\r\n\u2028\u2029]')


def placeholder(start, end):
    """``✖;`` statement covering source[start:end]."""
    node = expression_statement(identifier(PLACEHOLDER_NAME))
    node.expression.range = [start, end]
    node.range = [start, end]
    return node


def is_placeholder(node):
    return node.type == 'ExpressionStatement' and node.expression.type == 'Identifier' \
        and node.expression.name == PLACEHOLDER_NAME


def _line_spans(source):
    spans = []
    start = 0
    for line in source.split('\n'):
        spans.append((start, start + len(line)))
        start += len(line) + 1
    return spans


def _failed_line(source, error):
    """Span of the non-blank line to cut out for a parse error.

    That is the line holding the error position, or the nearest non-blank line
    before it (then after it) when that line is blank, as for errors at the
    end of the input.
    """
    spans = _line_spans(source)
    index = getattr(error, 'index', None)
    if index is not None:
        current = next((i for i, (start, end) in enumerate(spans) if start <= index <= end), len(spans) - 1)
    else:
        current = min(max((getattr(error, 'lineNumber', None) or 1) - 1, 0), len(spans) - 1)
    order = [current] + list(range(current - 1, -1, -1)) + list(range(current + 1, len(spans)))
    for i in order:
        start, end = spans[i]
        if source[start:end].strip():
            return start, end
    return None


def _insert_placeholder(program, start, end):
    """Put a placeholder into the innermost statement list around a cut region."""
    container, field, span = program, 'body', None
    for node in iter_nodes(program):
        fields = statement_list_fields(node)
        node_range = getattr(node, 'range', None)
        if node is program or not fields or node_range is None:
            continue
        if node_range[0] <= start and end <= node_range[1]:
            size = node_range[1] - node_range[0]
            if span is None or size < span:
                container, field, span = node, fields[0], size
    statements = getattr(container, field)
    position = sum(1 for statement in statements if (getattr(statement, 'range', None) or [0])[0] < start)
    statements.insert(position, placeholder(start, end))


class ParserService:
    """Turns source text into an esprima Program with node ranges."""

    def __init__(self):
        self.logger = logger_service.get_logger('parser')

    def parse(self, source, options):
        """Parse ``source`` according to ``options``.

        With ``source_type='both'`` a module parse is tried first and a script
        parse second; only the second failure propagates. The mode that
        worked is stored back on ``options.source_type`` so that later parses
        of the same call reuse it. In loose mode the module attempt does not
        recover, so broken input resolves to a script.
        """
        if options.ecma_version != 'latest':
            self.logger.debug(f"ecmaVersion {options.ecma_version!r} is ignored: esprima parses a single ES2017 grammar")
        if options.source_type != 'both':
            return self._parse(source, options.source_type, options.loose)
        try:
            program = self._parse(source, 'module', options.loose, recover=False)
            options.source_type = 'module'
        except ParseError as e:
            self.logger.debug(f"Module parse failed, retrying as script: {e}")
            program = self._parse(source, 'script', options.loose)
            options.source_type = 'script'
        return program

    def _parse(self, source, source_type, loose, recover=True):
        if not (loose and recover):
            program = PARSERS[source_type](source, range=True, tolerant=loose)
        else:
            program = self._recover(source, source_type)
        if loose:
            for error in getattr(program, 'errors', None) or []:
                self.logger.debug(f"Tolerated syntax error: {error}")
        return program

    def _recover(self, source, source_type):
        """Best-effort parse: blank out failing lines until the rest parses.

        Blanked lines keep their length, so ranges of the surviving nodes
        still point into the original text. Each blanked line becomes a
        placeholder statement in the tree.
        """
        cut = []
        while True:
            try:
                program = PARSERS[source_type](source, range=True, tolerant=True)
                break
            except ParseError as e:
                region = _failed_line(source, e)
                if region is None:
                    raise
                start, end = region
                self.logger.debug(f"Replacing unparseable region {start}-{end} with a placeholder: {e}")
                source = source[:start] + LINE_CONTENT_RE.sub(' ', source[start:end]) + source[end:]
                cut.append(region)
        for start, end in sorted(cut):
            _insert_placeholder(program, start, end)
        return program


# Global parser service instance
parser_service = ParserService()
