class TTMLParseError(ValueError):
    pass


class TimespanError(TTMLParseError):
    pass
