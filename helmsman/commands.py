"""
Helmsman command registry: bitmask tokens and command sets.

Overview
- Mask: an int whose bits name command sets. Each registered command owns a
  single power-of-two bit; a union of bits ("build | test") declares that an
  option belongs to several commands. Mask(0) never names a command and is the
  token returned by a failed registration.
- CommandSet: one sub-command (“mode”) and the options attached to it.
  • bit:     its power-of-two Mask.
  • name:    the token typed on the command line ("***" for the default set).
  • usage:   help text printed under the program header.
  • options: ordered options whose mask intersects bit.
  • flags:   flag names already taken inside this set.
- Registry: ordered command sets with bits 1, 2, 4, … assigned in
  registration order, at most LIMIT of them. The first registration becomes
  the default set: its literal name is kept as the program header and its
  stored name is replaced by DEFAULT, so it is selected when no command
  token is given and can never be selected by name.

Faults raised by Registry.register
- EmptyNameError:        empty command name.
- CommandLimitError:     a LIMIT + 1-th command.
- DuplicateCommandError: name already registered (exact, case-sensitive).

Example
    >>> registry = Registry()
    >>> registry.register("app", "usage: app [command]")
    Mask(1)
    >>> registry.register("build", "build the project")
    Mask(2)
"""
from .faults import *
from .utils import *

LIMIT = 64
DEFAULT = "***"


class Mask(int):
    """
    command-set bitmask; bitwise operators keep the Mask type.
    """
    __slots__ = ()

    def __or__(self, other, /):
        if not isinstance(other, int) or isinstance(other, bool):
            return NotImplemented
        return Mask(int(self) | int(other))

    def __and__(self, other, /):
        if not isinstance(other, int) or isinstance(other, bool):
            return NotImplemented
        return Mask(int(self) & int(other))

    def __xor__(self, other, /):
        if not isinstance(other, int) or isinstance(other, bool):
            return NotImplemented
        return Mask(int(self) ^ int(other))

    __ror__ = __or__
    __rand__ = __and__
    __rxor__ = __xor__

    def bits(self):
        """
        yield every single-bit Mask contained in self, lowest first.
        """
        value = int(self)
        while value:
            low = value & -value
            yield Mask(low)
            value ^= low

    def __repr__(self):
        return f"Mask({int(self)})"

    __str__ = int.__repr__


class CommandSet:
    """
    one registered command and the options attached to it.
    """
    __slots__ = ("_bit", "_name", "_usage", "_options", "_flags")

    def __init__(self, bit, name, usage=""):
        self._bit = Mask(bit)
        self._name = name
        self._usage = usage
        self._options = []
        self._flags = set()

    bit = mirror("bit")
    name = mirror("name")
    usage = mirror("usage")
    options = mirror("options")
    flags = mirror("flags")

    @property
    def default(self):
        return self._name == DEFAULT

    def attach(self, option, /):
        """
        append option to this set, recording its flag name as taken.

        returns False when the flag name was already taken (the option is
        attached regardless so that its fault stays reachable).
        """
        fresh = option.flag not in self._flags
        self._flags.add(option.flag)
        self._options.append(option)
        return fresh

    def find(self, flag, /):
        """
        first option attached under flag, or None.
        """
        for option in self._options:
            if option.flag == flag:
                return option
        return None

    def __repr__(self):
        return f"CommandSet(bit={self._bit!r}, name={self._name!r})"

    def __rich_repr__(self):
        yield "bit", self._bit
        yield "name", self._name
        yield "usage", self._usage
        yield "flags", sorted(self._flags)


class Registry:
    """
    ordered command sets with unique power-of-two bits.

    notes
    - the registry never records faults itself; register() raises and the
      owning Config accumulates.
    """

    def __init__(self):
        self._sets = []
        self._header = ""

    header = mirror("header")

    @property
    def full(self):
        """
        union of every registered bit.
        """
        return Mask((1 << len(self._sets)) - 1)

    @property
    def default(self):
        return self._sets[0] if self._sets else None

    def register(self, name, usage="", /):
        """
        register a command and return its single-bit Mask.
        """
        if not isinstance(name, str):
            raise TypeError("command name must be a string")
        if not isinstance(usage, str):
            raise TypeError("command usage must be a string")

        if not name:
            raise EmptyNameError(
                "command: empty command name",
                operation="command",
                command=name,
                code=FaultCode.EMPTY_COMMAND,
                title="empty command",
                hint="give every command a non-empty name",
            )
        if len(self._sets) >= LIMIT:
            raise CommandLimitError(
                f"command: {name!r}: too many commands (limit is {LIMIT})",
                operation="command",
                command=name,
                code=FaultCode.COMMAND_LIMIT,
                title="command limit",
                hint=f"declare at most {LIMIT} commands per configuration",
            )
        if not self._sets:
            self._header = name
            self._sets.append(CommandSet(1, DEFAULT, usage))
            return self._sets[0].bit
        if self.find(name, default=True) is not None:
            raise DuplicateCommandError(
                f"command: {name!r}: command already in use",
                operation="command",
                command=name,
                code=FaultCode.DUPLICATE_COMMAND,
                title="duplicate command",
                hint="command names must be unique",
            )
        self._sets.append(commandset := CommandSet(1 << len(self._sets), name, usage))
        return commandset.bit

    def find(self, name, /, *, default=False):
        """
        command set registered under name, or None.

        the default set only matches its DEFAULT marker, and only when
        default is true; command-line tokens can never select it by name.
        """
        for commandset in self._sets:
            if commandset.name == name and (default or not commandset.default):
                return commandset
        return None

    def intersecting(self, mask, /):
        """
        command sets sharing at least one bit with mask, in registration order.
        """
        return [commandset for commandset in self._sets if commandset.bit & mask]

    def contains(self, mask, /):
        """
        True when mask is non-zero and every one of its bits is registered.
        """
        return bool(mask) and mask & self.full == mask

    def __len__(self):
        return len(self._sets)

    def __iter__(self):
        return iter(self._sets)

    def __bool__(self):
        return bool(self._sets)

    def __repr__(self):
        return f"Registry(header={self._header!r}, commands={[commandset.name for commandset in self._sets]!r})"


__all__ = (
    "LIMIT",
    "DEFAULT",
    "Mask",
    "CommandSet",
    "Registry",
)
