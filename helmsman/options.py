r"""
Helmsman option declarations and their pre-parse validation.

Overview
- Option[_T]: declarative descriptor of one flag.
  • flag:     name as typed after the dash ("n" for -n / --n).
  • type:     Type tag selecting the value kind (see helmsman.types).
  • default:  value used when the flag is absent; its Python type must match
              the tag exactly (VAR options take no default).
  • usage:    help text; a `back-quoted` word names the value in help.
  • commands: Mask of the command sets the option belongs to.
  • var:      Ref binding, required by "_VAR" tags.
  • value:    user settable Value, required by the VAR tag.
  • check:    callable(value) -> value run after parsing; its result replaces
              the parsed value and any exception it raises becomes a CheckError.

- option(...): decorator building an Option whose check is the decorated
  function.

        >>> @option("port", Type.INT, 8080, "listening `port`", serve)
        ... def port(value):
        ...     if not 0 < value < 65536:
        ...         raise ValueError("port out of range")
        ...     return value

- validate(option, registry): the four independent declaration checks, run
  by Config.compose for every option. They never short-circuit: every fault
  found is returned so one compose call reports all of them.
  • flag:     non-empty, no leading "-", no "=", unique inside each command
              set the option shares a bit with (other sets may reuse it).
  • default:  exact type for the tag (int is not bool, uint is not negative).
  • var:      Ref of the matching element type for "_VAR" tags, a Value for VAR.
  • commands: the mask intersects at least one registered command.

Option instances are declarations; Config works on private copies so the same
declarations may be composed by several configurations.
"""
import copy
import functools
import operator
import re
from types import MethodType

from .commands import *
from .faults import *
from .logs import trace
from .types import *
from .utils import *


class OptionType(type):
    """
    Metaclass giving options a stable repr and read-only public fields.

    Conventions
    - every name listed in __introspectable__ becomes a read-only property
      mirroring the private "_name" attribute.
    - __typename__ is the lower-cased class name, used in messages.
    """
    __introspectable__ = ()

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in type(self).__introspectable__:
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


class Option[_T](metaclass=OptionType):
    """
    Declaration of one typed flag.

    Construction only rejects arguments of the wrong Python shape (TypeError);
    everything that depends on the tag or on the registered commands is left
    to validate() so that compose() can report it with the other faults.

    Runtime fields (on the per-configuration copy)
    - _cell:  Ref the flag parser writes into (the var binding for "_VAR" tags).
    - _data:  resolved value after parsing, None for "_VAR" and VAR tags.
    - _fault: first fault recorded against this option.
    """

    __introspectable__ = (
        "flag",
        "type",
        "default",
        "usage",
        "commands",
        "var",
        "value",
        "check",
    )

    def __init__(
            self,
            flag,
            type,
            default=Unset,
            usage="",
            commands=0,
            *,
            var=Unset,
            value=Unset,
            check=Unset
    ):
        if not isinstance(flag, str):
            raise TypeError(f"{self.__typename__} 'flag' must be a string")
        if not isinstance(type, int) or isinstance(type, bool):
            raise TypeError(f"{self.__typename__} 'type' must be a Type")
        if not isinstance(usage, str):
            raise TypeError(f"{self.__typename__} 'usage' must be a string")
        if not isinstance(commands, int) or isinstance(commands, bool):
            raise TypeError(f"{self.__typename__} 'commands' must be a Mask")
        if check is not Unset and not callable(check):
            raise TypeError(f"{self.__typename__} 'check' must be callable")

        self._flag = flag
        # unknown tags stay plain ints; validate() reports them
        self._type = Type(type) if type in Type else type
        self._default = default
        self._usage = usage
        self._commands = Mask(commands)
        self._var = coalesce(var)
        self._value = coalesce(value)
        self._check = coalesce(check)

        self._cell = None
        self._data = None
        self._fault = None

    def __option__(self):
        return self

    def __copy__(self):
        replica = object.__new__(type(self))
        replica.__dict__.update(self.__dict__)
        replica._cell = None
        replica._data = None
        replica._fault = None
        return replica


def option(*args, **kwargs):
    """
    Decorator building an Option whose check callback is the decorated function.

    Usage
        @option("level", Type.INT, 1, "compression `level`", pack)
        def level(value):
            return min(max(value, 1), 9)

    Parameters
    - *args, **kwargs: forwarded to Option(...) (check excluded).

    Returns
    - Option: the declaration, ready to be passed to Config.compose().
    """
    if "check" in kwargs:
        raise TypeError("@option() cannot receive a 'check' argument")
    option = Option(*args, **kwargs)

    @rename("option")
    def wrapper(check, /):
        if not callable(check):
            raise TypeError("@option() must be applied to a callable")
        if option._check is not None:
            raise TypeError("@option() must be applied only once")
        option._check = check
        return option

    wrapper.__option__ = MethodType(rename(lambda self: option, "__option__"), wrapper)
    return wrapper


def _fault(kind, option, reason, /, **options):
    return kind(
        f"validate: {option.flag!r}: {reason}",
        operation="validate",
        flag=option.flag,
        **options,
    )


def check_flag(option, registry, /):
    """
    validate the flag name and claim it in every intersecting command set.

    the option is attached to each intersecting set even when its name is a
    duplicate, so accessors can still surface its fault.
    """
    if not option.flag:
        return _fault(
            EmptyNameError, option, "empty flag name",
            code=FaultCode.EMPTY_FLAG,
            title="empty flag",
            hint="give every option a non-empty flag name",
        )
    if option.flag.startswith("-") or "=" in option.flag:
        return _fault(
            InvalidFlagError, option, "flag names cannot start with '-' nor contain '='",
            code=FaultCode.INVALID_FLAG,
            title="invalid flag",
            hint="declare the flag without its leading dashes",
        )
    fault = None
    for commandset in registry.intersecting(option.commands):
        if not commandset.attach(option) and fault is None:
            fault = _fault(
                DuplicateFlagError, option, f"flag already declared for command {commandset.name!r}",
                code=FaultCode.DUPLICATE_FLAG,
                title="duplicate flag",
                hint="a flag name may repeat only across disjoint commands",
                command=commandset.name,
            )
    return fault


def check_default(option, /):
    """
    the default must have exactly the Python type the tag requires.
    """
    if (kind := KINDS.get(option.type)) is None:
        return _fault(
            TypeMismatchError, option, f"{option.type}: the type is not defined",
            code=FaultCode.UNDEFINED_TYPE,
            title="undefined type",
            hint="use one of the helmsman.Type tags",
        )
    if option.type is Type.VAR:
        return None
    if not kind.accepts(option.default):
        return _fault(
            TypeMismatchError, option,
            f"{option.type}: default {option.default!r} is not a valid {kind.label} value",
            code=FaultCode.TYPE_MISMATCH,
            title="type mismatch",
            hint=f"use a {kind.element.__name__} default for {kind.label} options",
        )
    return None


def check_var(option, /):
    """
    "_VAR" tags need a Ref of the matching element type, VAR needs a Value.
    """
    if (kind := KINDS.get(option.type)) is None:
        # already reported by check_default
        return None
    if option.type is Type.VAR:
        if not kind.accepts(option.value):
            return _fault(
                TypeMismatchError, option, f"{option.type}: a settable value is required",
                code=FaultCode.TYPE_MISMATCH,
                title="type mismatch",
                hint="pass an object implementing set(text) as 'value'",
            )
        return None
    if kind.pointer and (not isinstance(option.var, Ref) or option.var.type is not kind.element):
        return _fault(
            TypeMismatchError, option, f"{option.type}: binding {option.var!r} is not a Ref[{kind.element.__name__}]",
            code=FaultCode.TYPE_MISMATCH,
            title="type mismatch",
            hint=f"pass Ref({kind.element.__name__}) as 'var'",
        )
    return None


def check_commands(option, registry, /):
    """
    the command mask must intersect at least one registered command.
    """
    if not registry.intersecting(option.commands):
        return _fault(
            SubcommandError, option, f"commands {option.commands!r} match no registered command",
            code=FaultCode.SUBCOMMAND,
            title="sub-command error",
            hint="build the mask from tokens returned by Config.command()",
        )
    return None


def validate(option, registry, /):
    """
    run every declaration check; return the faults found (possibly none).

    the first fault is also recorded on the option itself.
    """
    faults = [
        fault for fault in (
            check_flag(option, registry),
            check_default(option),
            check_var(option),
            check_commands(option, registry),
        )
        if fault is not None
    ]
    if faults:
        option._fault = faults[0]
    else:
        trace("validate: %r: no errors", option.flag)
    return faults


def prepare(options, /):
    """
    unwrap decorators and copy declarations for one configuration.
    """
    prepared = []
    for declared in options:
        if not callable(getattr(declared, "__option__", None)):
            raise TypeError("compose() arguments must be options")
        prepared.append(copy.copy(declared.__option__()))
    return prepared


__all__ = (
    "Option",
    "option",
    "check_flag",
    "check_default",
    "check_var",
    "check_commands",
    "validate",
    "prepare",
)

del OptionType
