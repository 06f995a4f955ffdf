"""
A pretty-printer for triglot values.
"""
from triglot.triglot_datatypes import (
    Color, Map, Future, Continuation, Pending, Resolved, Rejected,
)


class Printer:
    """Formats triglot values as tagged, human-readable strings, e.g. `Num(7.0)`."""

    def __init__(self):
        self._handlers = self._create_handlers()

    def pformat(self, obj) -> str:
        """Public entry point to format a value."""
        handler = self._handlers.get(type(obj))
        if handler is None:
            # Default to Python's repr for unknown types
            return repr(obj)
        return handler(obj)

    def _create_handlers(self):
        return {
            float: self._pformat_number,
            str: self._pformat_str,
            bool: self._pformat_bool,
            type(None): self._pformat_unit,
            Color: self._pformat_color,
            tuple: self._pformat_array,
            Map: self._pformat_map,
            Future: self._pformat_future,
            Continuation: self._pformat_continuation,
        }

    def _pformat_number(self, obj):
        return f"Num({obj!r})"

    def _quote(self, text):
        escaped = text.replace('\\', '\\\\').replace('"', '\\"')
        return f'"{escaped}"'

    def _pformat_str(self, obj):
        return f"Str({self._quote(obj)})"

    def _pformat_bool(self, obj):
        return 'Bool(true)' if obj else 'Bool(false)'

    def _pformat_unit(self, obj):
        return 'Unit'

    def _pformat_color(self, obj):
        return f"Color({obj.r}, {obj.g}, {obj.b})"

    def _pformat_array(self, obj):
        return f"Array([{', '.join(self.pformat(item) for item in obj)}])"

    def _pformat_map(self, obj):
        pairs = ', '.join(f"({self.pformat(k)}, {self.pformat(v)})" for k, v in obj)
        return f"Map([{pairs}])"

    def _pformat_future(self, obj):
        match obj.state:
            case Pending():
                inner = "Pending"
            case Resolved(value=value):
                inner = f"Resolved({self.pformat(value)})"
            case Rejected(message=message):
                inner = f"Rejected({self._quote(message)})"
        return f"Future({inner})"

    def _pformat_continuation(self, obj):
        return "Continuation"
