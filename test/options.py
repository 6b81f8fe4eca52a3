"""
Options module behavioral tests (declarations, decorator, validation).

Scope
- Validate Option construction: shape checks only, read-only fields, repr.
- Validate the @option decorator: single application and check binding.
- Validate each declaration check in isolation (flag, default, var, commands).
- Validate that validate() reports every fault of one option at once.

Conventions
- Test method names follow CamelCase per project convention.
- Registries are built directly; Config-level flows live in config.py.
"""

from __future__ import annotations

import copy
import unittest
from datetime import timedelta
from unittest import TestCase

from helmsman import Option, option, Type, Ref, Value, Mask, Registry, DEFAULT
from helmsman.faults import (
    EmptyNameError,
    InvalidFlagError,
    DuplicateFlagError,
    TypeMismatchError,
    SubcommandError,
    FaultCode,
)
from helmsman.options import check_flag, check_default, check_var, check_commands, validate, prepare


class Names(Value):
    def set(self, text, /):
        self.text = text


def registry(*names):
    registry = Registry()
    for name in names:
        registry.register(name)
    return registry


class TestOption(TestCase):
    """Construction and introspection."""

    def testFields(self):
        ref = Ref(int)
        declared = Option("n", Type.INT_VAR, 1, "count", Mask(3), var=ref)
        self.assertEqual(declared.flag, "n")
        self.assertIs(declared.type, Type.INT_VAR)
        self.assertEqual(declared.default, 1)
        self.assertEqual(declared.usage, "count")
        self.assertEqual(declared.commands, Mask(3))
        self.assertIs(declared.var, ref)
        self.assertIsNone(declared.value)
        self.assertIsNone(declared.check)

    def testPlainIntTagsBecomeTypes(self):
        self.assertIs(Option("n", 1, 1).type, Type.INT)

    def testUnknownTagIsKept(self):
        self.assertEqual(Option("n", 99, 1).type, 99)

    def testFieldsAreReadOnly(self):
        declared = Option("n", Type.INT, 1)
        with self.assertRaises(AttributeError):
            declared.flag = "m"

    def testShapeErrors(self):
        with self.assertRaises(TypeError):
            Option(1, Type.INT)
        with self.assertRaises(TypeError):
            Option("n", "int")
        with self.assertRaises(TypeError):
            Option("n", Type.INT, 1, 2)
        with self.assertRaises(TypeError):
            Option("n", Type.INT, 1, "", "app")
        with self.assertRaises(TypeError):
            Option("n", Type.INT, 1, check="not callable")

    def testRepr(self):
        text = repr(Option("n", Type.INT, 1, "count", Mask(1)))
        self.assertTrue(text.startswith("option(flag='n'"))
        self.assertIn("default=1", text)

    def testCopyResetsRuntimeState(self):
        declared = Option("n", Type.INT, 1)
        declared._data = 5
        replica = copy.copy(declared)
        self.assertIsNone(replica._data)
        self.assertEqual(replica.flag, "n")


class TestDecorator(TestCase):
    """@option binds its function as the check callback."""

    def testDecoratedFunctionBecomesCheck(self):
        @option("n", Type.INT, 1, "count", Mask(1))
        def clamp(value):
            return min(value, 3)

        self.assertIsInstance(clamp, Option)
        self.assertEqual(clamp.check(10), 3)

    def testSingleApplication(self):
        decorator = option("n", Type.INT, 1)
        decorator(lambda value: value)
        with self.assertRaises(TypeError):
            decorator(lambda value: value)

    def testCallableRequired(self):
        with self.assertRaises(TypeError):
            option("n", Type.INT, 1)(42)

    def testCheckArgumentRejected(self):
        with self.assertRaises(TypeError):
            option("n", Type.INT, 1, check=abs)

    def testPrepareUnwrapsDecorator(self):
        decorator = option("n", Type.INT, 1)
        prepared, = prepare([decorator])
        self.assertIsInstance(prepared, Option)

    def testPrepareRejectsForeignObjects(self):
        with self.assertRaises(TypeError):
            prepare(["n"])


class TestCheckFlag(TestCase):
    """Flag names and per-set uniqueness."""

    def testEmpty(self):
        self.assertIsInstance(check_flag(Option("", Type.INT, 1, "", 1), registry("app")), EmptyNameError)

    def testLeadingDash(self):
        self.assertIsInstance(check_flag(Option("-n", Type.INT, 1, "", 1), registry("app")), InvalidFlagError)

    def testEqualsSign(self):
        self.assertIsInstance(check_flag(Option("a=b", Type.INT, 1, "", 1), registry("app")), InvalidFlagError)

    def testOverlappingDuplicate(self):
        commands = registry("app", "build")
        self.assertIsNone(check_flag(Option("n", Type.INT, 1, "", Mask(1)), commands))
        fault = check_flag(Option("n", Type.INT, 2, "", Mask(3)), commands)
        self.assertIsInstance(fault, DuplicateFlagError)
        self.assertEqual(fault.options["flag"], "n")

    def testDisjointDuplicate(self):
        commands = registry("app", "build")
        self.assertIsNone(check_flag(Option("n", Type.INT, 1, "", Mask(1)), commands))
        self.assertIsNone(check_flag(Option("n", Type.INT, 2, "", Mask(2)), commands))

    def testAttachedEverywhereItBelongs(self):
        commands = registry("app", "build", "test")
        check_flag(Option("n", Type.INT, 1, "", Mask(5)), commands)
        self.assertIsNotNone(commands.find(DEFAULT, default=True).find("n"))
        self.assertIsNone(commands.find("build").find("n"))
        self.assertIsNotNone(commands.find("test").find("n"))


class TestCheckDefault(TestCase):
    """Exact default typing per tag."""

    def testMatching(self):
        for tag, default in (
                (Type.INT, 1),
                (Type.INT64, -1),
                (Type.UINT, 0),
                (Type.UINT64, 2 ** 64 - 1),
                (Type.FLOAT64, 0.5),
                (Type.STRING, ""),
                (Type.BOOL, False),
                (Type.DURATION, timedelta(seconds=1)),
                (Type.STRING_VAR, "x"),
        ):
            self.assertIsNone(check_default(Option("n", tag, default)), tag)

    def testMismatching(self):
        for tag, default in (
                (Type.INT, "1"),
                (Type.INT, True),
                (Type.INT, 1.0),
                (Type.UINT, -1),
                (Type.FLOAT64, 1),
                (Type.STRING, b"x"),
                (Type.BOOL, 0),
                (Type.DURATION, 1),
                (Type.INT_VAR, "1"),
        ):
            fault = check_default(Option("n", tag, default))
            self.assertIsInstance(fault, TypeMismatchError, tag)
            self.assertEqual(fault.options["code"], FaultCode.TYPE_MISMATCH)

    def testMissingDefault(self):
        self.assertIsInstance(check_default(Option("n", Type.INT)), TypeMismatchError)

    def testUndefinedTypes(self):
        for tag in (Type.NIL, Type.DEFAULT, 99):
            fault = check_default(Option("n", tag, 1))
            self.assertIsInstance(fault, TypeMismatchError)
            self.assertEqual(fault.options["code"], FaultCode.UNDEFINED_TYPE)

    def testVarIgnoresDefault(self):
        self.assertIsNone(check_default(Option("n", Type.VAR, value=Names())))


class TestCheckVar(TestCase):
    """Bindings of "_VAR" and VAR tags."""

    def testPlainTagsNeedNoBinding(self):
        self.assertIsNone(check_var(Option("n", Type.INT, 1)))

    def testMatchingRef(self):
        self.assertIsNone(check_var(Option("n", Type.INT_VAR, 1, var=Ref(int))))
        self.assertIsNone(check_var(Option("d", Type.DURATION_VAR, timedelta(0), var=Ref(timedelta))))

    def testMissingRef(self):
        self.assertIsInstance(check_var(Option("n", Type.INT_VAR, 1)), TypeMismatchError)

    def testWrongElementType(self):
        self.assertIsInstance(check_var(Option("n", Type.INT_VAR, 1, var=Ref(str))), TypeMismatchError)

    def testNotARef(self):
        self.assertIsInstance(check_var(Option("n", Type.BOOL_VAR, True, var=[True])), TypeMismatchError)

    def testValueRequired(self):
        self.assertIsInstance(check_var(Option("n", Type.VAR)), TypeMismatchError)
        self.assertIsNone(check_var(Option("n", Type.VAR, value=Names())))


class TestCheckCommands(TestCase):
    """The mask must reach a registered command."""

    def testRegistered(self):
        self.assertIsNone(check_commands(Option("n", Type.INT, 1, "", Mask(2)), registry("app", "build")))

    def testPartiallyRegistered(self):
        self.assertIsNone(check_commands(Option("n", Type.INT, 1, "", Mask(6)), registry("app", "build")))

    def testUnregistered(self):
        fault = check_commands(Option("n", Type.INT, 1, "", Mask(8)), registry("app", "build"))
        self.assertIsInstance(fault, SubcommandError)

    def testEmptyMask(self):
        self.assertIsInstance(check_commands(Option("n", Type.INT, 1), registry("app")), SubcommandError)


class TestValidate(TestCase):
    """All checks run; the first fault is kept on the option."""

    def testCollectsEveryFault(self):
        declared = Option("n", Type.INT_VAR, "1", "", Mask(8), var=Ref(str))
        faults = validate(declared, registry("app"))
        self.assertEqual(
            [type(fault) for fault in faults],
            [TypeMismatchError, TypeMismatchError, SubcommandError],
        )
        self.assertIs(declared._fault, faults[0])

    def testHealthy(self):
        declared = Option("n", Type.INT, 1, "", Mask(1))
        self.assertEqual(validate(declared, registry("app")), [])
        self.assertIsNone(declared._fault)

    def testMessagesNameTheFlag(self):
        fault, = validate(Option("port", Type.INT, "80", "", Mask(1)), registry("app"))
        self.assertTrue(str(fault).startswith("validate: 'port': "))
        self.assertEqual(fault.options["operation"], "validate")


if __name__ == '__main__':
    unittest.main()
