"""
Helmsman configuration aggregate.

Scope
- Config owns the command registry, the composed options, the selected
  command and every fault recorded so far. Build it once at start-up, then
  only read from it.

Lifecycle
1. command(name, usage) -> Mask
   The first call declares the program itself: its name becomes the help
   header and its set is the default one. Later calls declare sub-commands.
   Failures are recorded (not raised) and return Mask(0).
2. compose(*options, argv=Unset) -> Mask
   • preconditions: earlier faults are re-raised; options and commands must
     have been declared.
   • select: argv[1] selects a command when it does not start with "-";
     otherwise the default set runs. An unknown command name is a fault,
     it never falls back to the default set.
   • validate: every option is checked and attached to each command set its
     mask intersects; all faults are collected before anything is raised.
   • materialize: options of the selected set become flags of a FlagSet.
   • parse: the remaining arguments are parsed (skipped when dryrun is set).
   • check: check callbacks replace parsed values; failures become CheckError.
   Returns the Mask of the running command.
3. typed reads: value(key), value_int(key), …, value_duration(key).

Faults
- Outside shell mode every compose fault is raised as one ConfigExit (an
  ExceptionGroup), so "except* TypeMismatchError" works.
- In shell mode faults are printed with rich on stderr and the process exits:
  status 2 for malformed arguments (after printing the usage), 1 otherwise.
- A Config that recorded a fault stays poisoned: later compose() calls and
  reads of healthy options raise the accumulated ConfigExit.
- compose() without options or commands raises without poisoning, so it can
  be called again once the declarations are complete.

Example
    >>> config = Config()
    >>> app = config.command("app", "usage: app [build] [flags]\\n\\n")
    >>> build = config.command("build", "build the project\\n\\n")
    >>> config.compose(
    ...     Option("n", Type.INT, 1, "number of `jobs`", app | build),
    ...     argv=["app", "build", "-n", "4"],
    ... )
    Mask(2)
    >>> config.value_int("n")
    4
"""
import copy
import shlex
import sys

from .commands import *
from .faults import *
from .flagset import *
from .logs import logger, trace
from .options import *
from .types import *
from .utils import *


def _vector(argv, /):
    if argv is Unset:
        return list(sys.argv)
    if isinstance(argv, str):
        return shlex.split(argv)
    vector = list(argv)
    if not all(isinstance(argument, str) for argument in vector):
        raise TypeError("compose() 'argv' must contain only strings")
    return vector


class Config:
    """
    Command/option configuration of one program.

    Parameters (keyword-only)
    - shell: print faults and exit instead of raising them.
    - fancy: render faults inside rich panels.
    - colorful: render faults with colors.
    - dryrun: validate and materialize but never parse argv; defaults stay.
    - file: writer receiving the help text (sys.stdout when Unset).
    """

    def __init__(self, *, shell=False, fancy=False, colorful=False, dryrun=False, file=Unset):
        for name, flag in (("shell", shell), ("fancy", fancy), ("colorful", colorful), ("dryrun", dryrun)):
            if not isinstance(flag, bool):
                raise TypeError(f"Config() '{name}' must be a boolean")
        if file is not Unset and not callable(getattr(file, "write", None)):
            raise TypeError("Config() 'file' must be a writable object")

        self._shell = shell
        self._fancy = fancy
        self._colorful = colorful
        self._dryrun = dryrun
        self._file = file

        self._registry = Registry()
        self._options = []
        self._active = None
        self._flagset = None
        self._faults = []
        self._argv = []
        self._raw = ""
        self._composed = False

    argv = mirror("argv")
    raw = mirror("raw")
    dryrun = mirror("dryrun")

    @property
    def header(self):
        return self._registry.header

    @property
    def commands(self):
        """
        registered command sets, in registration order.
        """
        return list(self._registry)

    @property
    def fault(self):
        """
        the accumulated ConfigExit, or None while the configuration is healthy.
        """
        if not self._faults:
            return None
        return ConfigExit(self._faults, **self._runtime())

    @property
    def args(self):
        """
        arguments left over after the flags were parsed.
        """
        return list(self._flagset.args) if self._flagset is not None else []

    def _runtime(self):
        return {"shell": self._shell, "fancy": self._fancy, "colorful": self._colorful}

    def _trigger(self, status=1, faults=Unset):
        trigger(ConfigExit(coalesce(faults, self._faults)), **self._runtime(), status=status)

    def _record(self, fault, /):
        self._faults.append(fault)
        logger.debug("%s", fault)

    def command(self, name, usage="", /):
        """
        declare a command and return its Mask; Mask(0) when it was refused.

        the first command declares the program (default set), the following
        ones declare sub-commands selected by their name on the command line.
        """
        try:
            mask = self._registry.register(name, usage)
        except ConfigException as fault:
            self._record(fault)
            return Mask(0)
        logger.info("command: %r: completed", name)
        return mask

    def contains(self, mask, /):
        """
        True when every bit of mask names a registered command.
        """
        return self._registry.contains(mask)

    def _preconditions(self, options, /):
        if self._faults:
            self._trigger()
        if self._composed:
            raise RuntimeError("compose() can only be called once per Config")
        missing = []
        if not options:
            missing.append(MissingDeclarationError(
                "compose: no options declared",
                operation="compose",
                code=FaultCode.MISSING_DECLARATION,
                title="missing options",
                hint="pass at least one Option to compose()",
            ))
        if not self._registry:
            missing.append(MissingDeclarationError(
                "compose: no commands declared",
                operation="compose",
                code=FaultCode.MISSING_DECLARATION,
                title="missing commands",
                hint="call command() before compose()",
            ))
        # not recorded: the declarations may still be completed
        if missing:
            self._trigger(faults=missing)
        trace("compose: preconditions met")

    def _select(self, arguments, /):
        if arguments and not arguments[0].startswith("-"):
            if (commandset := self._registry.find(arguments[0])) is None:
                self._record(UnknownCommandError(
                    f"select: {arguments[0]!r}: command not found",
                    operation="select",
                    command=arguments[0],
                    code=FaultCode.UNKNOWN_COMMAND,
                    title="unknown command",
                    hint="the first argument must be a command or a flag",
                ))
                return arguments
            self._active = commandset
            logger.debug("select: %r: set defined", commandset.name)
            return arguments[1:]
        self._active = self._registry.default
        logger.debug("select: default: set defined")
        return arguments

    def _materialize(self):
        self._flagset = FlagSet(
            self._registry.header if self._active.default else self._active.name,
            header=self._registry.header,
            summary=self._active.usage,
            file=self._file,
        )
        for option in self._active.options:
            try:
                materialize(self._flagset, option)
            except ConfigException as fault:
                option._fault = fault
                self._record(fault)
        logger.debug("materialize: completed")

    def _parse(self, arguments, /):
        if self._dryrun:
            logger.debug("parse: skipped (dryrun)")
            return
        try:
            self._flagset.parse(arguments)
        except ParseFlagError as fault:
            self._record(fault)
            if self._shell:
                self._flagset.print_help()
            self._trigger(status=2)
        logger.debug("parse: completed")

    def _check(self):
        for option in self._active.options:
            if option.type is not Type.VAR and not option.type.pointer:
                option._data = option._cell.value
            if option.check is None or option._data is None:
                continue
            try:
                option._data = option.check(option._data)
            except Exception as error:
                fault = CheckError(
                    f"check: {option.flag!r}: {error}",
                    operation="check",
                    flag=option.flag,
                    code=FaultCode.CHECK_FAILED,
                    title="check failed",
                    hint="the value was parsed but refused by its check callback",
                )
                fault.__cause__ = error
                option._fault = fault
                self._record(fault)
            else:
                trace("check: %r: %r", option.flag, option._data)
        logger.debug("check: completed")

    def compose(self, *options, argv=Unset):
        """
        validate options, select the running command, parse argv and run checks.

        Parameters
        - *options: Option declarations (or @option decorated checks).
        - argv: full argument vector including the program name; a string is
          split like a shell would; Unset reads sys.argv.

        Returns
        - Mask: the bit of the running command.

        Raises
        - ConfigExit: every fault found (not raised in shell mode, where the
          process exits instead).
        """
        self._preconditions(options)
        self._composed = True

        self._argv = _vector(argv)
        self._raw = " ".join(self._argv)
        arguments = self._select(self._argv[1:])

        self._options = prepare(options)
        for option in self._options:
            for fault in validate(option, self._registry):
                self._record(fault)
        logger.debug("validate: completed")
        if self._faults:
            self._trigger()

        self._materialize()
        if self._faults:
            self._trigger()

        self._parse(arguments)
        self._check()
        if self._faults:
            self._trigger()

        logger.info("compose: completed")
        return self._active.bit

    @property
    def running(self):
        """
        Mask of the running command.
        """
        if self._active is None:
            raise NotComposedError(
                "running: commands not set",
                operation="running",
                code=FaultCode.NOT_COMPOSED,
                title="not composed",
                hint="call compose() first",
            )
        return self._active.bit

    def is_running(self, mask, /):
        """
        True when the running command is one of the commands in mask.
        """
        return bool(self.running & mask)

    def usage(self, file=None):
        """
        print the help text of the running command.
        """
        if self._flagset is None:
            raise NotComposedError(
                "usage: commands not set",
                operation="usage",
                code=FaultCode.NOT_COMPOSED,
                title="not composed",
                hint="call compose() first",
            )
        self._flagset.print_help(file)

    def _lookup(self, key, operation, /):
        if self._active is None:
            if self._faults:
                raise self.fault
            raise NotComposedError(
                f"{operation}: {key!r}: commands not set",
                operation=operation,
                flag=key,
                code=FaultCode.NOT_COMPOSED,
                title="not composed",
                hint="call compose() first",
            )
        if (option := self._active.find(key)) is None:
            raise UnknownKeyError(
                f"{operation}: {key!r}: key not found",
                operation=operation,
                flag=key,
                code=FaultCode.UNKNOWN_KEY,
                title="unknown key",
                hint="only options of the running command can be read",
            )
        if option._fault is not None:
            raise copy.replace(option._fault, operation=operation)
        if self._faults:
            raise self.fault
        if option._data is None:
            raise NoDataError(
                f"{operation}: {key!r}: no data",
                operation=operation,
                flag=key,
                code=FaultCode.NO_DATA,
                title="no data",
                hint="ref-bound and value options are read through their binding",
            )
        return option

    def _typed(self, key, tag, operation, /):
        option = self._lookup(key, operation)
        if option.type.base is not tag or not KINDS[tag].accepts(option._data):
            raise TypeMismatchError(
                f"{operation}: {key!r}: stored {option.type} value {option._data!r} is not {tag}",
                operation=operation,
                flag=key,
                code=FaultCode.TYPE_MISMATCH,
                title="type mismatch",
                hint=f"read {option.type.base} options with value_{str(option.type.base)}()",
            )
        return option._data

    def value(self, key, /):
        """
        (value, Type) of an option of the running command.
        """
        option = self._lookup(key, "value")
        return option._data, option.type

    def value_int(self, key, /):
        return self._typed(key, Type.INT, "value_int")

    def value_int64(self, key, /):
        return self._typed(key, Type.INT64, "value_int64")

    def value_uint(self, key, /):
        return self._typed(key, Type.UINT, "value_uint")

    def value_uint64(self, key, /):
        return self._typed(key, Type.UINT64, "value_uint64")

    def value_float64(self, key, /):
        return self._typed(key, Type.FLOAT64, "value_float64")

    def value_string(self, key, /):
        return self._typed(key, Type.STRING, "value_string")

    def value_bool(self, key, /):
        return self._typed(key, Type.BOOL, "value_bool")

    def value_duration(self, key, /):
        return self._typed(key, Type.DURATION, "value_duration")

    def __repr__(self):
        return f"Config(header={self.header!r}, commands={len(self._registry)}, faults={len(self._faults)})"

    def __rich_repr__(self):
        yield "header", self.header
        yield "commands", [commandset.name for commandset in self._registry]
        yield "running", self._active.bit if self._active is not None else None
        yield "faults", len(self._faults)


__all__ = (
    "Config",
)
