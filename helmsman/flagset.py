"""
Helmsman flag set: the argparse adapter the options are materialized into.

Overview
- FlagSet: an argparse.ArgumentParser speaking the classic single-dash flag
  dialect.
  • every flag answers to both -name and --name; values are given as
    "-name value" or "-name=value".
  • boolean flags never consume the next token: "-v" means true and other
    values must be attached ("-v=false").
  • parsing stops at the first non-flag token or after "--"; what remains is
    available as FlagSet.args.
  • -h, -help and --help print the usage text and exit with status 0 unless
    the program declared "h" or "help" itself.
  • malformed input raises ParseFlagError (error() never exits by itself).

- Typed constructors, one per Type tag, generated from the KINDS table:
  • fs.int(name, default, usage) -> Ref: fresh cell holding the value.
  • fs.int_var(ref, name, default, usage): binds into the caller's Ref.
  • fs.var(value, name, usage): registers a user settable Value.
  The same pairs exist for int64, uint, uint64, float64, string, bool and
  duration.

- materialize(flagset, option): dispatch one Option to its constructor.

Help layout
    <header><command usage>
            -n      number of `items`
            -verbose
                    print every step
                        continuation lines are indented by a tab

- flags are listed by name; names of six or more characters continue on
  the next line.
- unquote(flag) strips the back quotes of the first `quoted` word of a usage
  string.
"""
import argparse
import sys
from typing import NamedTuple

from .faults import *
from .logs import trace
from .types import *
from .utils import *


class Flag(NamedTuple):
    """
    one registered flag as seen by visit_all() and the help renderer.
    """
    name: str
    usage: str
    boolean: bool


class _Store(argparse.Action):
    def __init__(self, option_strings, dest, *, cell, **options):
        super().__init__(option_strings, dest, **options)
        self.cell = cell

    def __call__(self, parser, namespace, values, option_string=None):
        self.cell.value = values


class _Set(argparse.Action):
    def __init__(self, option_strings, dest, *, cell, **options):
        super().__init__(option_strings, dest, **options)
        self.cell = cell

    def __call__(self, parser, namespace, values, option_string=None):
        try:
            self.cell.set(values)
        except ValueError as error:
            parser.error(f"invalid value {values!r} for flag -{self.dest}: {error}")


class _Help(argparse.Action):
    def __init__(self, option_strings, dest, **options):
        super().__init__(option_strings, dest, nargs=0, default=argparse.SUPPRESS, **options)

    def __call__(self, parser, namespace, values, option_string=None):
        parser.print_help()
        parser.exit()


class FlagSet(argparse.ArgumentParser):
    """
    argparse parser with single-dash flags, typed constructors and a
    hand-laid help screen.

    parameters
    - name: program or command name.
    - header: text printed first in the help screen.
    - summary: usage text of the selected command, printed after the header.
    - file: writer for help output (sys.stdout when Unset, resolved lazily).
    """

    def __init__(self, name, /, *, header="", summary="", file=Unset):
        super().__init__(prog=name, add_help=False, allow_abbrev=False)
        self.header = header
        self.summary = summary
        self.file = file
        self.args = []
        self._flags = {}
        self._helpful = False

    def _define(self, name, usage, /, *, action, cell, convert, boolean=False):
        if not isinstance(name, str):
            raise TypeError("flag name must be a string")
        if not isinstance(usage, str):
            raise TypeError("flag usage must be a string")
        if not name or name.startswith("-") or "=" in name:
            raise InvalidFlagError(
                f"flagset: {name!r}: bad flag name",
                operation="flagset",
                flag=name,
                code=FaultCode.INVALID_FLAG,
                title="invalid flag",
            )
        if name in self._flags:
            raise DuplicateFlagError(
                f"flagset: {name!r}: flag redefined",
                operation="flagset",
                flag=name,
                code=FaultCode.DUPLICATE_FLAG,
                title="duplicate flag",
            )
        self.add_argument(
            "-" + name,
            "--" + name,
            action=action,
            cell=cell,
            type=convert,
            dest=name,
            default=argparse.SUPPRESS,
            **({"nargs": "?", "const": True} if boolean else {}),
        )
        self._flags[name] = Flag(name, usage, boolean)
        trace("flagset: %r: flag defined", name)

    def var(self, value, name, usage="", /):
        """
        register a user settable Value; its set(text) receives the raw text.

        a Value whose is_bool_flag() returns True behaves like a boolean flag.
        """
        if not isinstance(value, Value):
            raise TypeMismatchError(
                f"flagset: {name!r}: value: a settable value is required",
                operation="flagset",
                flag=name,
                code=FaultCode.TYPE_MISMATCH,
                title="type mismatch",
            )
        boolean = callable(getattr(value, "is_bool_flag", None)) and bool(value.is_bool_flag())
        self._define(name, usage, action=_Set, cell=value, convert=str, boolean=boolean)

    def lookup(self, name, /):
        """
        the Flag registered under name, or None.
        """
        return self._flags.get(name)

    def visit_all(self, function, /):
        """
        call function(flag) for every registered flag in name order.
        """
        for name in sorted(self._flags):
            function(self._flags[name])

    def _fail(self, message, /):
        return ParseFlagError(
            f"parse: {message}",
            operation="parse",
            code=FaultCode.MALFORMED_ARGUMENTS,
            title="malformed arguments",
            hint="run with -h to list the accepted flags",
        )

    def error(self, message):
        raise self._fail(message)

    def _helpers(self):
        return {
            string: owner
            for string, owner in (("-h", "h"), ("--h", "h"), ("-help", "help"), ("--help", "help"))
            if owner not in self._flags
        }

    def _scan(self, arguments, /):
        """
        split arguments into normalized flag tokens and the remaining args.
        """
        tokens = []
        index = 0
        helpers = set(self._helpers().values())
        while index < len(arguments):
            token = arguments[index]
            if token == "--":
                return tokens, arguments[index + 1:]
            if len(token) < 2 or not token.startswith("-"):
                break
            name, sep, text = token[2 if token.startswith("--") else 1:].partition("=")
            if not name or name.startswith("-"):
                raise self._fail(f"bad flag syntax: {token}")
            if (flag := self._flags.get(name)) is None:
                if name in helpers:
                    return tokens + ["-" + name], arguments[index + 1:]
                raise self._fail(f"flag provided but not defined: -{name}")
            if flag.boolean:
                tokens.append(f"-{name}={text if sep else 'true'}")
            elif sep:
                tokens.append(f"-{name}={text}")
            elif index + 1 < len(arguments):
                index += 1
                tokens.append(f"-{name}={arguments[index]}")
            else:
                raise self._fail(f"flag needs an argument: -{name}")
            index += 1
        return tokens, arguments[index:]

    def parse(self, arguments, /):
        """
        parse arguments (program and command names already removed).

        returns the arguments left after the flags, also kept in self.args.
        """
        if not self._helpful and (helpers := self._helpers()):
            self.add_argument(*helpers, action=_Help)
        self._helpful = True

        tokens, self.args = self._scan(list(arguments))
        self.parse_args(tokens)
        trace("flagset: %r: parsed %d flag(s)", self.prog, len(tokens))
        return list(self.args)

    def format_help(self):
        lines = [self.header, self.summary]
        self.visit_all(lambda flag: lines.append(flag_usage(flag)))
        return "".join(lines)

    format_usage = format_help

    def print_help(self, file=None):
        (file or coalesce(self.file, sys.stdout)).write(self.format_help())

    print_usage = print_help


def _constructor(kind, /):
    def mismatch(name, reason):
        return TypeMismatchError(
            f"flagset: {name!r}: {kind.label}: {reason}",
            operation="flagset",
            flag=name,
            code=FaultCode.TYPE_MISMATCH,
            title="type mismatch",
        )

    options = {
        "action": _Store,
        "convert": kind.convert,
        "boolean": kind.element is bool,
    }

    if kind.pointer:
        def constructor(self, ref, name, default, usage="", /):
            if not isinstance(ref, Ref) or ref.type is not kind.element:
                raise mismatch(name, f"binding {ref!r} is not a Ref[{kind.element.__name__}]")
            if not kind.accepts(default):
                raise mismatch(name, f"default {default!r} is not a valid {kind.label} value")
            self._define(name, usage, cell=ref, **options)
            ref.value = default
    else:
        def constructor(self, name, default, usage="", /):
            if not kind.accepts(default):
                raise mismatch(name, f"default {default!r} is not a valid {kind.label} value")
            self._define(name, usage, cell=(cell := Ref(kind.element, default)), **options)
            return cell

    constructor.__doc__ = f"register a {kind.label} flag."
    return rename(constructor, kind.constructor)


for _kind in KINDS.values():
    if _kind.convert is not None:
        setattr(FlagSet, _kind.constructor, _constructor(_kind))
del _kind


def unquote(flag, /):
    """
    usage of a flag with the back quotes of its first `quoted` word removed.
    """
    usage = flag.usage
    if (start := usage.find("`")) >= 0 and (end := usage.find("`", start + 1)) >= 0:
        return usage[:start] + usage[start + 1:end] + usage[end + 1:]
    return usage


def flag_usage(flag, /):
    """
    help line(s) for one flag, each entry followed by a blank line.
    """
    width = len(flag.name) + 1
    line = "        -" + flag.name + " " * max(8 - width, 0)
    if width > 6:
        line += "\n        \t"
    line += unquote(flag).replace("\n", "\n            \t")
    return line + "\n\n"


def materialize(flagset, option, /):
    """
    register option on flagset through the constructor its tag selects.

    the storage the parser writes into becomes option._cell: a fresh Ref for
    plain tags, the option's Ref for "_VAR" tags and its Value for VAR.
    """
    if (kind := KINDS.get(option.type)) is None:
        raise TypeMismatchError(
            f"materialize: {option.flag!r}: {option.type}: the type is not defined",
            operation="materialize",
            flag=option.flag,
            code=FaultCode.UNDEFINED_TYPE,
            title="undefined type",
        )
    constructor = getattr(flagset, kind.constructor)
    if option.type is Type.VAR:
        constructor(option.value, option.flag, option.usage)
        option._cell = option.value
    elif kind.pointer:
        constructor(option.var, option.flag, option.default, option.usage)
        option._cell = option.var
    else:
        option._cell = constructor(option.flag, option.default, option.usage)
    trace("materialize: %r: option added", option.flag)


__all__ = (
    "Flag",
    "FlagSet",
    "unquote",
    "flag_usage",
    "materialize",
)
