"""
Commands module behavioral tests (masks, registry, command declarations).

Scope
- Validate Mask algebra and bit iteration.
- Validate bit assignment, the default set and the command ceiling.
- Validate duplicate and empty command names.
- Validate that Config.command records faults instead of raising them.

Conventions
- Test method names follow CamelCase per project convention.
- Faults are asserted by class; messages are only checked where they carry
  the offending identifier.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from helmsman import Config, Mask, Registry, LIMIT, DEFAULT
from helmsman.commands import CommandSet
from helmsman.faults import (
    ConfigExit,
    EmptyNameError,
    CommandLimitError,
    DuplicateCommandError,
)


class TestMask(TestCase):
    """Bitwise behavior of command masks."""

    def testUnionKeepsType(self):
        mask = Mask(1) | Mask(2)
        self.assertIsInstance(mask, Mask)
        self.assertEqual(mask, 3)

    def testReflectedUnionKeepsType(self):
        self.assertIsInstance(4 | Mask(1), Mask)

    def testIntersection(self):
        self.assertEqual(Mask(3) & Mask(2), Mask(2))
        self.assertFalse(Mask(1) & Mask(2))

    def testBits(self):
        self.assertEqual(list(Mask(5).bits()), [Mask(1), Mask(4)])
        self.assertEqual(list(Mask(0).bits()), [])

    def testRepr(self):
        self.assertEqual(repr(Mask(6)), "Mask(6)")
        self.assertEqual(str(Mask(6)), "6")


class TestRegistry(TestCase):
    """Bit assignment and naming rules."""

    def setUp(self):
        self.registry = Registry()

    def testFirstCommandIsDefault(self):
        self.assertEqual(self.registry.register("app", "usage"), Mask(1))
        self.assertEqual(self.registry.header, "app")
        self.assertEqual(self.registry.default.name, DEFAULT)
        self.assertTrue(self.registry.default.default)

    def testBitsArePowersOfTwoInOrder(self):
        for index in range(10):
            self.assertEqual(self.registry.register(f"cmd{index}"), 1 << index)

    def testDefaultIsNeverFoundByName(self):
        self.registry.register("app")
        self.assertIsNone(self.registry.find("app"))
        self.assertIsNone(self.registry.find(DEFAULT))
        self.assertIs(self.registry.find(DEFAULT, default=True), self.registry.default)

    def testFindSubcommand(self):
        self.registry.register("app")
        self.registry.register("build", "build it")
        commandset = self.registry.find("build")
        self.assertEqual(commandset.bit, Mask(2))
        self.assertEqual(commandset.usage, "build it")

    def testEmptyName(self):
        with self.assertRaises(EmptyNameError):
            self.registry.register("")

    def testNameMustBeString(self):
        with self.assertRaises(TypeError):
            self.registry.register(1)

    def testDuplicateName(self):
        self.registry.register("app")
        self.registry.register("build")
        with self.assertRaises(DuplicateCommandError) as context:
            self.registry.register("build")
        self.assertIn("'build'", str(context.exception))

    def testDuplicateIsCaseSensitive(self):
        self.registry.register("app")
        self.registry.register("build")
        self.assertEqual(self.registry.register("Build"), Mask(4))

    def testDefaultMarkerIsTaken(self):
        self.registry.register("app")
        with self.assertRaises(DuplicateCommandError):
            self.registry.register(DEFAULT)

    def testCeiling(self):
        for index in range(LIMIT):
            self.assertEqual(self.registry.register(f"cmd{index}"), 1 << index)
        with self.assertRaises(CommandLimitError):
            self.registry.register("one-too-many")
        self.assertEqual(len(self.registry), LIMIT)

    def testFullAndContains(self):
        self.registry.register("app")
        self.registry.register("build")
        self.assertEqual(self.registry.full, Mask(3))
        self.assertTrue(self.registry.contains(Mask(3)))
        self.assertFalse(self.registry.contains(Mask(4)))
        self.assertFalse(self.registry.contains(Mask(0)))

    def testIntersecting(self):
        self.registry.register("app")
        self.registry.register("build")
        self.registry.register("test")
        names = [commandset.name for commandset in self.registry.intersecting(Mask(6))]
        self.assertEqual(names, ["build", "test"])


class TestCommandSet(TestCase):
    """Option bookkeeping inside one command set."""

    class Stub:
        def __init__(self, flag):
            self.flag = flag

    def testAttachTracksFlags(self):
        commandset = CommandSet(1, "build")
        first, second = self.Stub("n"), self.Stub("n")
        self.assertTrue(commandset.attach(first))
        self.assertFalse(commandset.attach(second))
        self.assertIs(commandset.find("n"), first)
        self.assertEqual(commandset.flags, {"n"})
        self.assertEqual(len(commandset.options), 2)

    def testViewsAreDetached(self):
        commandset = CommandSet(1, "build")
        commandset.options.append(self.Stub("x"))
        self.assertEqual(commandset.options, [])


class TestConfigCommand(TestCase):
    """Config.command records faults and returns Mask(0)."""

    def testTokens(self):
        config = Config()
        self.assertEqual(config.command("app"), Mask(1))
        self.assertEqual(config.command("build"), Mask(2))
        self.assertEqual(config.header, "app")
        self.assertIsNone(config.fault)

    def testFailureReturnsZero(self):
        config = Config()
        config.command("app")
        self.assertEqual(config.command(""), Mask(0))
        self.assertIsInstance(config.fault, ConfigExit)
        self.assertIsInstance(config.fault.exceptions[0], EmptyNameError)

    def testSixtyFifthCommandFails(self):
        config = Config()
        for index in range(LIMIT):
            self.assertEqual(config.command(f"cmd{index}"), 1 << index)
        self.assertEqual(config.command("overflow"), Mask(0))
        self.assertIsInstance(config.fault.exceptions[0], CommandLimitError)

    def testFaultsAccumulate(self):
        config = Config()
        config.command("app")
        config.command("build")
        config.command("build")
        config.command("")
        kinds = [type(fault) for fault in config.fault.exceptions]
        self.assertEqual(kinds, [DuplicateCommandError, EmptyNameError])

    def testContains(self):
        config = Config()
        app = config.command("app")
        build = config.command("build")
        self.assertTrue(config.contains(app | build))
        self.assertFalse(config.contains(Mask(8)))


if __name__ == '__main__':
    unittest.main()
