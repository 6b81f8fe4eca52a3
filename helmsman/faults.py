"""
Helmsman faults (errors) and rendering.

Scope
- FaultCode: stable numeric identifiers for every user-facing problem, grouped
  by the phase that detects it so logs and searches stay predictable.
- ConfigException: base type carrying a message plus read-only options (code,
  title, hint, operation, offending flag/command) and able to render itself.
- ConfigExit: the accumulated error of a Config, an ExceptionGroup of every
  fault found by one compose() call.
- trigger(): central entry point to surface a fault (respecting shell/fancy/colorful).
- getdoc(): optional description lookup for a code from the host application.

Kinds
- ConfigurationError and its subclasses: structural problems in the declarations
  (names, limits, types, unknown command masks).
- NotFoundError: a name that resolves to nothing (command token, option key).
- NoDataError / NotComposedError: reads that happen before a value exists.
- ParseFlagError: the flag parser rejected the argument vector.
- CheckError: a user supplied check callback refused a value. It is kept out of
  the ConfigurationError branch so callers can tell “my validator failed” from
  “the declarations are wrong”.

Integration
- The aggregate records faults while composing, then raises a ConfigExit. In
  shell mode the group is printed with rich and the process exits instead.
"""
import copy
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping
    - registration (2110x): command declarations and compose preconditions.
    - declaration (2111x): option declarations and flag materialization.
    - selection (2112x): resolving the command token from argv.
    - parse (2113x): the flag parser rejecting argv.
    - check (2114x): user check callbacks.
    - access (2115x): typed reads after compose.
    """
    # --- registration (2110x) ---
    EMPTY_COMMAND       = 21101
    COMMAND_LIMIT       = 21102
    DUPLICATE_COMMAND   = 21103
    MISSING_DECLARATION = 21104

    # --- declaration (2111x) ---
    EMPTY_FLAG          = 21111
    INVALID_FLAG        = 21112
    DUPLICATE_FLAG      = 21113
    TYPE_MISMATCH       = 21114
    UNDEFINED_TYPE      = 21115
    SUBCOMMAND          = 21116

    # --- selection (2112x) ---
    UNKNOWN_COMMAND     = 21121

    # --- parse (2113x) ---
    MALFORMED_ARGUMENTS = 21131

    # --- check (2114x) ---
    CHECK_FAILED        = 21141

    # --- access (2115x) ---
    UNKNOWN_KEY         = 21151
    NO_DATA             = 21152
    NOT_COMPOSED        = 21153

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__ to
        override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _styles(defaults):
    return defaultdict(str, defaults | getattr(__import__("__main__"), "__styles__", {}))


class ConfigException(Exception):
    """
    base fault: a message plus read-only options.

    options used by the renderer and by callers
    - code: FaultCode, title: short label, hint: one actionable sentence.
    - operation: name of the operation that raised the fault.
    - flag / command: the offending identifier, when there is one.
    - shell, fancy, colorful, status: runtime flags merged in by trigger().
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return str(self.message)

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", False)
        fancy = self.options.get("fancy", False)

        styles = _styles({
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",
            "error-message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
            "docs": "#9CA3AF",
        })

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            return Text(str(fragment), styles[style])

        prog = text(getattr(main, "__prog__", self.options.get("prog", "helmsman")), "prog-name")
        code = self.options.get("code")

        header = Text.assemble(
            "[ ",
            prog,
            " — ",
            text(code.normalize() if code else "", "code"),
            " | ",
            text(str(self.options.get("title", type(self).__name__)).title(), "error-title"),
            " ]"
        )
        renders = [text(self.message, "error-message")]
        if hint := self.options.get("hint"):
            renders.append(Text.assemble(text(" → ", "hint-arrow"), text(hint, "hint")))
        if code and (docs := getdoc(code)):
            renders.append(text(docs, "docs"))

        if fancy:
            try:
                width = int((console.width - 4) * self.options["ratio"])
            except KeyError:
                width = None
            return Panel(Group(*renders), title=header, title_align="left", width=width)
        return Group(header, *renders)

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        sys.exit(self.options.get("status", 1))

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        replica = type(self)(self.message, **{**self.options, **overrides})
        replica.__cause__ = self.__cause__
        return replica


class ConfigurationError(ConfigException): ...
class EmptyNameError(ConfigurationError): ...
class CommandLimitError(ConfigurationError): ...
class DuplicateCommandError(ConfigurationError): ...
class DuplicateFlagError(ConfigurationError): ...
class InvalidFlagError(ConfigurationError): ...
class TypeMismatchError(ConfigurationError): ...
class SubcommandError(ConfigurationError): ...
class MissingDeclarationError(ConfigurationError): ...

class NotFoundError(ConfigException): ...
class UnknownCommandError(NotFoundError): ...
class UnknownKeyError(NotFoundError): ...

class NoDataError(ConfigException): ...
class NotComposedError(ConfigException): ...
class ParseFlagError(ConfigException): ...
class CheckError(ConfigException): ...


class ConfigExit(ExceptionGroup[ConfigException]):
    """
    every fault accumulated by one Config, raised as a single group.

    notes
    - the group keeps its runtime options (shell/fancy/colorful/status) across
      split()/subgroup() through derive().
    """

    def __new__(cls, exceptions, **options):
        return super().__new__(cls, "bad configuration", exceptions)

    def __init__(self, exceptions, **options):
        super().__init__("bad configuration", tuple(exceptions))
        self.options = MappingProxyType(options)

    def derive(self, exceptions):
        return type(self)(exceptions, **self.options)

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", False)

        styles = _styles({
            "prog-name": "bold #E6E6F0",
            "title": "bold #FF4DA6",
        })

        def text(fragment, style=""):
            if not colorful:
                return Text(str(fragment))
            return Text(str(fragment), styles[style])

        prog = text(getattr(main, "__prog__", self.options.get("prog", "helmsman")), "prog-name")
        header = Text.assemble("[ ", prog, " — ", text(self.message.title(), "title"), " ]")

        renders = [
            copy.replace(exception, ratio=2/3, colorful=colorful, fancy=self.options.get("fancy", False))
            for exception in self.exceptions
        ]

        if self.options.get("fancy", False):
            return Panel(Group(*renders), title=header, title_align="left")
        return Group(header, *renders)

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        sys.exit(self.options.get("status", 1))

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.exceptions, **{**self.options, **overrides})


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods.
    - options are merged into the fault via copy.replace() before triggering.
    - outside shell mode the fault is raised; in shell mode it is printed on
      stderr and the process exits with options["status"] (default 1).
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ keyed by
    FaultCode; None is returned when no entry exists.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "FaultCode",
    "ConfigException",
    "ConfigurationError",
    "EmptyNameError",
    "CommandLimitError",
    "DuplicateCommandError",
    "DuplicateFlagError",
    "InvalidFlagError",
    "TypeMismatchError",
    "SubcommandError",
    "MissingDeclarationError",
    "NotFoundError",
    "UnknownCommandError",
    "UnknownKeyError",
    "NoDataError",
    "NotComposedError",
    "ParseFlagError",
    "CheckError",
    "ConfigExit",
    "trigger",
    "getdoc",
)
