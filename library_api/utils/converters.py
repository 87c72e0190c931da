from werkzeug.routing import IntegerConverter

# Largest value an sqlite INTEGER column can hold
SQLITE_MAX_INTEGER = 2 ** 63 - 1


class RowIdConverter(IntegerConverter):
    """``<id:...>`` URL segment: a non-negative integer that fits a row id.

    Larger values do not match the rule, so they end in a 404 instead of
    reaching sqlite.
    """

    def __init__(self, map, *args, **kwargs):
        kwargs.setdefault('max', SQLITE_MAX_INTEGER)
        super().__init__(map, *args, **kwargs)
