"""
A source formatter for rested scripts.
"""
from rested.rested_ast import (
    Arguments, Array, Attribute, Block, Body, Bool, Call, EmptyArray, EmptyObject, Error,
    Expr, Header, Identifier, Let, LineComment, Null, Number, Object, ObjectEntry, Ok,
    Pathname, Program, Request, Set, String, StringLiteral, TemplateStringLiteral, Url,
)
from rested.rested_lexer import Token
from rested.rested_parser import parse


class Printer:
    """Formats syntax trees back into canonical rested source."""

    def __init__(self, indent_width=2):
        self._indent_char = " " * indent_width
        self._handlers = self._create_handlers()

    def pformat(self, node, level=0):
        """Public entry point to format a node."""
        handler = self._handlers.get(type(node))
        if handler is None:
            raise TypeError(f"can't format {type(node).__name__}")
        return handler(node, level)

    def _create_handlers(self):
        return {
            Program: self._pformat_program,
            Set: self._pformat_set,
            Let: self._pformat_let,
            LineComment: self._pformat_comment,
            Request: self._pformat_request,
            Block: self._pformat_block,
            Attribute: self._pformat_attribute,
            Expr: self._pformat_expr_item,
            Header: self._pformat_header,
            Body: self._pformat_body,
            Url: self._pformat_literal,
            Pathname: self._pformat_literal,
            Identifier: self._pformat_identifier,
            String: self._pformat_string,
            StringLiteral: self._pformat_string_literal,
            Bool: self._pformat_literal_wrapper,
            Number: self._pformat_literal_wrapper,
            Null: lambda n, l: "null",
            EmptyArray: lambda n, l: "[]",
            EmptyObject: lambda n, l: "{}",
            Array: self._pformat_array,
            Object: self._pformat_object,
            ObjectEntry: self._pformat_object_entry,
            Call: self._pformat_call,
            Arguments: self._pformat_arguments,
            TemplateStringLiteral: self._pformat_template,
            Ok: self._pformat_ok,
            Token: lambda t, l: t.text,
            Error: self._pformat_error,
        }

    def _indent(self, level):
        return self._indent_char * level

    # --- items ---

    def _pformat_program(self, program, level):
        errors = program.errors()
        if errors:
            raise errors[0]

        out = []
        previous = None
        for item in program.items:
            if previous is not None:
                out.append(self._separator(previous, item))
            out.append(self.pformat(item, level))
            previous = item

        if not out:
            return ""
        return "".join(out) + "\n"

    def _separator(self, previous, item):
        if isinstance(previous, Attribute):
            return "\n"
        # Runs of lets and runs of comments stay together.
        if isinstance(item, (Let, LineComment)) and type(previous) is type(item):
            return "\n"
        return "\n\n"

    def _pformat_set(self, item, level):
        return f"set {self.pformat(item.identifier, level)} {self.pformat(item.value, level)}"

    def _pformat_let(self, item, level):
        return f"let {self.pformat(item.identifier, level)} = {self.pformat(item.value, level)}"

    def _pformat_comment(self, comment, level):
        return comment.value

    def _pformat_request(self, request, level):
        text = f"{str(request.method).lower()} {self.pformat(request.endpoint, level)}"
        if request.block is not None:
            text += " " + self.pformat(request.block, level)
        return text

    def _pformat_block(self, block, level):
        if not block.statements:
            return "{}"
        lines = [self._indent(level + 1) + self.pformat(s, level + 1) for s in block.statements]
        return "{\n" + "\n".join(lines) + "\n" + self._indent(level) + "}"

    def _pformat_attribute(self, attribute, level):
        text = "@" + self.pformat(attribute.identifier, level)
        if attribute.arguments is not None:
            text += self.pformat(attribute.arguments, level)
        return text

    def _pformat_expr_item(self, item, level):
        return self.pformat(item.expression, level)

    def _pformat_header(self, header, level):
        return f"header {self.pformat(header.name, level)} {self.pformat(header.value, level)}"

    def _pformat_body(self, body, level):
        return f"body {self.pformat(body.value, level)}"

    # --- expressions ---

    def _pformat_literal(self, literal, level):
        return literal.value

    def _pformat_literal_wrapper(self, node, level):
        return node.literal.value

    def _pformat_identifier(self, node, level):
        return node.name

    def _pformat_string(self, node, level):
        return node.literal.raw

    def _pformat_string_literal(self, literal, level):
        return literal.raw

    def _pformat_ok(self, node, level):
        return self.pformat(node.value, level)

    def _pformat_array(self, array, level):
        if not any(isinstance(e, LineComment) for e in array.elements):
            return "[" + ", ".join(self.pformat(e, level) for e in array.elements) + "]"
        return self._pformat_multiline("[", "]", array.elements, level)

    def _pformat_object(self, obj, level):
        return self._pformat_multiline("{", "}", obj.entries, level)

    def _pformat_multiline(self, open_, close, elements, level):
        """One element per line, commas after all but the last non-comment element."""
        values = [e for e in elements if not isinstance(e, LineComment)]
        last = values[-1] if values else None

        lines = []
        for element in elements:
            text = self._indent(level + 1) + self.pformat(element, level + 1)
            if not isinstance(element, LineComment) and element is not last:
                text += ","
            lines.append(text)

        return open_ + "\n" + "\n".join(lines) + "\n" + self._indent(level) + close

    def _pformat_object_entry(self, entry, level):
        return f"{self.pformat(entry.key, level)}: {self.pformat(entry.value, level)}"

    def _pformat_call(self, call, level):
        return call.name + self.pformat(call.arguments, level)

    def _pformat_arguments(self, arguments, level):
        return "(" + ", ".join(self.pformat(e, level) for e in arguments.exprs) + ")"

    def _pformat_template(self, template, level):
        out = ["`"]
        for part in template.parts:
            if isinstance(part, String):
                out.append(part.literal.raw)
            else:
                out.append("${" + self.pformat(part, level) + "}")
        out.append("`")
        return "".join(out)

    def _pformat_error(self, node, level):
        raise node.error


def format_source(source: str) -> str:
    """Parse and reformat `source`; raises the first syntax error found."""
    return Printer().pformat(parse(source))
