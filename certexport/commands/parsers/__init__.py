from . import export, parse

ENTRY_PARSERS = [
    export,
    parse,
]
