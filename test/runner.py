"""
Runner behavioral tests (resolution, binding, fallbacks, outcomes).

Scope
- Validate global extraction, sub-command resolution and typed binding.
- Validate fallbacks (default, usage) and terminator globals.
- Validate fault collection and the four-way outcome classification.
- Validate registration-time conflicts.

Conventions
- Test method names follow CamelCase per project convention.
- Commands record their invocations into a shared list.
"""

from __future__ import annotations

import unittest
from unittest import IsolatedAsyncioTestCase, TestCase

from helmsman import (
    Context,
    GlobalCommand,
    Option,
    Positional,
    RunResult,
    Runner,
    SubCommand,
)
from helmsman.faults import (
    DelegatedCommandError,
    DuplicatedOptionError,
    GeneralCommandError,
    GlobalAssignmentError,
    IncorrectTypeError,
    InvalidChoiceError,
    MalformedTokenError,
    MissingOptionError,
    MissingPositionalError,
    MissingValueError,
    UnexpectedPositionalError,
    UnknownCommandError,
    UnknownOptionError,
)


def recorder(calls, name, /, *, fail=False):
    def callback(args, context):
        calls.append((name, args))
        if fail:
            raise RuntimeError(f"{name} failed")
    return callback


class TestRunnerDispatch(IsolatedAsyncioTestCase):
    """Resolution order, fallbacks and outcomes."""

    def setUp(self):
        self.calls = []

    def build(self, **options):
        calls = self.calls
        return SubCommand(
            recorder(calls, "build"),
            name="build",
            options=[
                Option("count", "c", type=int),
                Option("verbose", "v", type=bool),
                Option("name"),
            ],
            **options,
        )

    async def testSubCommandRunsOnceWithTypedArgs(self):
        runner = Runner([self.build()])
        result = await runner.run(["build", "--count", "3", "-v", "--name=x"])
        self.assertIs(result, RunResult.SUCCESS)
        self.assertEqual(self.calls, [("build", {"count": 3, "verbose": True, "name": "x"})])

    async def testShortAliasInlineValue(self):
        runner = Runner([self.build()])
        result = await runner.run(["build", "-c=4"])
        self.assertIs(result, RunResult.SUCCESS)
        self.assertEqual(self.calls, [("build", {"count": 4, "verbose": False})])

    async def testMissingRequiredOptionIsParseError(self):
        deploy = SubCommand(recorder(self.calls, "deploy"), name="deploy", options=[Option("target", required=True)])
        runner = Runner([deploy])
        result = await runner.run(["deploy"])
        self.assertIs(result, RunResult.PARSE_ERROR)
        self.assertEqual(self.calls, [])
        self.assertIsInstance(runner.faults[0], MissingOptionError)

    async def testGlobalsRunFirstInAppearanceOrder(self):
        runner = Runner([
            GlobalCommand(recorder(self.calls, "alpha"), name="alpha"),
            GlobalCommand(recorder(self.calls, "beta"), name="beta", short_alias="b"),
            self.build(),
        ])
        result = await runner.run(["build", "-b", "--alpha"])
        self.assertIs(result, RunResult.SUCCESS)
        self.assertEqual(self.calls, [("beta", {}), ("alpha", {}), ("build", {"verbose": False})])

    async def testVariadicPositionalBindsVerbatim(self):
        greeter = SubCommand(
            recorder(self.calls, "greeter"),
            name="greeter",
            positionals=[Positional("message", variadic=True)],
        )
        runner = Runner([greeter])
        result = await runner.run(["greeter", "hello", "world"])
        self.assertIs(result, RunResult.SUCCESS)
        self.assertEqual(self.calls, [("greeter", {"message": ["hello", "world"]})])

    async def testGlobalTokenInsideVariadicStaysGlobal(self):
        greeter = SubCommand(
            recorder(self.calls, "greeter"),
            name="greeter",
            positionals=[Positional("message", variadic=True)],
        )
        runner = Runner([GlobalCommand(recorder(self.calls, "loud"), name="loud"), greeter])
        result = await runner.run(["greeter", "a", "--loud", "b"])
        self.assertIs(result, RunResult.SUCCESS)
        self.assertEqual(self.calls, [("loud", {}), ("greeter", {"message": ["a", "b"]})])

    async def testNumericVariadicCoercesEachValue(self):
        total = SubCommand(
            recorder(self.calls, "sum"),
            name="sum",
            positionals=[Positional("numbers", type=float, variadic=True)],
        )
        runner = Runner([total])
        result = await runner.run(["sum", "1", "2.5", "-3"])
        self.assertIs(result, RunResult.SUCCESS)
        self.assertEqual(self.calls, [("sum", {"numbers": [1, 2.5, -3]})])

    async def testDefaultCommandRunsWithoutTokens(self):
        default = SubCommand(
            recorder(self.calls, "default"),
            name="default",
            options=[Option("level", type=int, default=2)],
        )
        runner = Runner([self.build()], default=default)
        result = await runner.run([])
        self.assertIs(result, RunResult.SUCCESS)
        self.assertEqual(self.calls, [("default", {"level": 2})])

    async def testUsageRunsWithoutTokensOrDefault(self):
        usage = SubCommand(recorder(self.calls, "usage"), name="usage")
        runner = Runner([self.build()], usage=usage)
        result = await runner.run([])
        self.assertIs(result, RunResult.SUCCESS)
        self.assertEqual(self.calls, [("usage", {})])

    async def testNothingToRunIsSuccess(self):
        runner = Runner([self.build()])
        self.assertIs(await runner.run([]), RunResult.SUCCESS)
        self.assertEqual(self.calls, [])

    async def testUnknownCommandRunsUsage(self):
        usage = SubCommand(recorder(self.calls, "usage"), name="usage")
        runner = Runner([self.build()], usage=usage)
        result = await runner.run(["blah"])
        self.assertIs(result, RunResult.PARSE_ERROR)
        self.assertEqual(self.calls, [("usage", {})])
        self.assertIsInstance(runner.faults[0], UnknownCommandError)
        self.assertIn("first position", runner.faults[0].message)

    async def testUnknownCommandSuggestsCloseName(self):
        runner = Runner([self.build()])
        await runner.run(["biuld"])
        self.assertEqual(runner.faults[0].options["hint"], "did you mean 'build'?")

    async def testFailingUsageKeepsParseError(self):
        usage = SubCommand(recorder(self.calls, "usage", fail=True), name="usage")
        runner = Runner([self.build()], usage=usage)
        result = await runner.run(["blah"])
        self.assertIs(result, RunResult.PARSE_ERROR)
        self.assertEqual(self.calls, [("usage", {})])
        self.assertEqual([type(fault) for fault in runner.faults], [UnknownCommandError, DelegatedCommandError])

    async def testDefaultGlobalCommandRunsWithoutTokens(self):
        status = GlobalCommand(
            recorder(self.calls, "status"),
            name="status",
            argument=Option("format", choices=("plain", "json"), default="plain"),
        )
        usage = SubCommand(recorder(self.calls, "usage"), name="usage")
        runner = Runner([self.build()], default=status, usage=usage)
        self.assertIs(await runner.run([]), RunResult.SUCCESS)
        self.assertEqual(self.calls, [("status", {"format": "plain"})])

        self.calls.clear()
        self.assertIs(await runner.run(["build"]), RunResult.SUCCESS)
        self.assertEqual(self.calls, [("build", {"verbose": False})])

    async def testTerminatorStopsQueuedCommands(self):
        help = GlobalCommand(recorder(self.calls, "help"), name="help", short_alias="h", terminator=True)
        after = GlobalCommand(recorder(self.calls, "after"), name="after")
        usage = SubCommand(recorder(self.calls, "usage"), name="usage")
        runner = Runner([help, after, self.build()], usage=usage)

        self.assertIs(await runner.run(["--help"]), RunResult.SUCCESS)
        self.assertEqual(self.calls, [("help", {})])

        self.calls.clear()
        self.assertIs(await runner.run(["build", "-h", "--after"]), RunResult.SUCCESS)
        self.assertEqual(self.calls, [("help", {})])

    async def testCommandErrorSkipsRemainingCommands(self):
        runner = Runner([GlobalCommand(recorder(self.calls, "broken", fail=True), name="broken"), self.build()])
        result = await runner.run(["--broken", "build"])
        self.assertIs(result, RunResult.COMMAND_ERROR)
        self.assertEqual(self.calls, [("broken", {})])
        fault = runner.faults[0]
        self.assertIsInstance(fault, DelegatedCommandError)
        self.assertIsInstance(fault.options["exception"], RuntimeError)

    async def testCoroutineCallbacksAreAwaited(self):
        async def callback(args, context):
            self.calls.append(("async", args))

        runner = Runner([SubCommand(callback, name="async-job")])
        self.assertIs(await runner.run(["async-job"]), RunResult.SUCCESS)
        self.assertEqual(self.calls, [("async", {})])

    async def testGeneralErrorOnInvalidArguments(self):
        runner = Runner([self.build()])
        result = await runner.run("build")
        self.assertIs(result, RunResult.GENERAL_ERROR)
        self.assertIsInstance(runner.faults[0], GeneralCommandError)

    async def testIdempotentAcrossFreshContexts(self):
        runner = Runner([self.build()])
        first = await runner.run(["build", "--count=2"], Context())
        second = await runner.run(["build", "--count=2"], Context())
        self.assertIs(first, second)
        self.assertEqual(self.calls[0], self.calls[1])
        self.assertIsNot(self.calls[0][1], self.calls[1][1])


class TestRunnerBinding(IsolatedAsyncioTestCase):
    """Option/positional binding rules and collected faults."""

    def setUp(self):
        self.calls = []
        self.runner = Runner([
            SubCommand(
                recorder(self.calls, "copy"),
                name="copy",
                options=[
                    Option("count", "c", type=int),
                    Option("force", "f", type=bool),
                    Option("mode", choices=("fast", "safe")),
                    Option("tag", "t", multiple=True),
                    Option("note"),
                ],
                positionals=[Positional("source"), Positional("target", default="out")],
            ),
            GlobalCommand(recorder(self.calls, "quiet"), name="quiet"),
            GlobalCommand(recorder(self.calls, "profile"), name="profile", argument=Option("name")),
            GlobalCommand(
                recorder(self.calls, "log-level"),
                name="log-level",
                argument=Option("level", choices=("debug", "info"), required=True),
            ),
        ])

    async def testBooleanDoesNotConsumeNextToken(self):
        self.assertIs(await self.runner.run(["copy", "--force", "a.txt"]), RunResult.SUCCESS)
        self.assertEqual(self.calls, [("copy", {"force": True, "source": "a.txt", "target": "out"})])

    async def testBooleanInlineFalse(self):
        self.assertIs(await self.runner.run(["copy", "-f=false", "a"]), RunResult.SUCCESS)
        self.assertEqual(self.calls[0][1]["force"], False)

    async def testNegativeNumberIsAValue(self):
        self.assertIs(await self.runner.run(["copy", "--count", "-5", "a", "b"]), RunResult.SUCCESS)
        self.assertEqual(self.calls, [("copy", {"count": -5, "force": False, "source": "a", "target": "b"})])

    async def testMultipleOptionCollectsValues(self):
        self.assertIs(await self.runner.run(["copy", "-t", "x", "a", "--tag=y"]), RunResult.SUCCESS)
        self.assertEqual(self.calls[0][1]["tag"], ["x", "y"])

    async def testUnknownOption(self):
        self.assertIs(await self.runner.run(["copy", "--nope", "a"]), RunResult.PARSE_ERROR)
        self.assertIsInstance(self.runner.faults[0], UnknownOptionError)
        self.assertEqual(self.calls, [])

    async def testMalformedOption(self):
        self.assertIs(await self.runner.run(["copy", "--bad_name", "a"]), RunResult.PARSE_ERROR)
        self.assertIsInstance(self.runner.faults[0], MalformedTokenError)

    async def testOptionBeforeSubCommandIsUnknown(self):
        self.assertIs(await self.runner.run(["--force", "copy", "a"]), RunResult.PARSE_ERROR)
        self.assertIsInstance(self.runner.faults[0], UnknownOptionError)

    async def testIncorrectNumber(self):
        self.assertIs(await self.runner.run(["copy", "--count=abc", "a"]), RunResult.PARSE_ERROR)
        fault = self.runner.faults[0]
        self.assertIsInstance(fault, IncorrectTypeError)
        self.assertIn("second position", fault.message)

    async def testMissingValue(self):
        for args in (["copy", "a", "--count"], ["copy", "--note", "--force", "a"], ["copy", "--count", "--force", "a"]):
            with self.subTest(args=args):
                self.assertIs(await self.runner.run(args), RunResult.PARSE_ERROR)
                self.assertIsInstance(self.runner.faults[0], MissingValueError)

    async def testEmptyStringIsAValue(self):
        for args in (["copy", "--note", "", "a"], ["copy", "--note=", "a"]):
            with self.subTest(args=args):
                self.calls.clear()
                self.assertIs(await self.runner.run(args), RunResult.SUCCESS)
                self.assertEqual(self.calls[0][1]["note"], "")

    async def testEmptyInlineNumberIsIncorrectType(self):
        self.assertIs(await self.runner.run(["copy", "--count=", "a"]), RunResult.PARSE_ERROR)
        self.assertIsInstance(self.runner.faults[0], IncorrectTypeError)

    async def testInlineValueKeepsLineBreaks(self):
        for args in (["copy", "--note=first\nsecond", "a"], ["copy", "--note", "first\nsecond", "a"]):
            with self.subTest(args=args):
                self.calls.clear()
                self.assertIs(await self.runner.run(args), RunResult.SUCCESS)
                self.assertEqual(self.calls[0][1]["note"], "first\nsecond")

    async def testDuplicatedOption(self):
        self.assertIs(await self.runner.run(["copy", "-c", "1", "--count", "2", "a"]), RunResult.PARSE_ERROR)
        self.assertIsInstance(self.runner.faults[0], DuplicatedOptionError)

    async def testInvalidChoice(self):
        self.assertIs(await self.runner.run(["copy", "--mode=slow", "a"]), RunResult.PARSE_ERROR)
        self.assertIsInstance(self.runner.faults[0], InvalidChoiceError)

    async def testUnexpectedPositional(self):
        self.assertIs(await self.runner.run(["copy", "a", "b", "c"]), RunResult.PARSE_ERROR)
        fault = self.runner.faults[0]
        self.assertIsInstance(fault, UnexpectedPositionalError)
        self.assertEqual(fault.options["index"], 4)

    async def testMissingPositional(self):
        self.assertIs(await self.runner.run(["copy"]), RunResult.PARSE_ERROR)
        self.assertIsInstance(self.runner.faults[0], MissingPositionalError)

    async def testFaultsAreCollected(self):
        self.assertIs(await self.runner.run(["copy", "--count=x", "--mode=slow"]), RunResult.PARSE_ERROR)
        self.assertEqual(
            [type(fault) for fault in self.runner.faults],
            [IncorrectTypeError, InvalidChoiceError, MissingPositionalError],
        )

    async def testCommandConfigurationFillsUnboundNames(self):
        context = Context(command_configs={"copy": {"count": "7", "mode": "safe", "source": "cfg", "ignored": 1}})
        self.assertIs(await self.runner.run(["copy", "--mode=fast"], context), RunResult.SUCCESS)
        self.assertEqual(self.calls, [("copy", {
            "mode": "fast",
            "count": 7,
            "force": False,
            "source": "cfg",
            "target": "out",
        })])

    async def testInvalidCommandConfigurationIsParseError(self):
        context = Context(command_configs={"copy": {"count": "many"}})
        self.assertIs(await self.runner.run(["copy", "a"], context), RunResult.PARSE_ERROR)
        fault = self.runner.faults[0]
        self.assertIsInstance(fault, IncorrectTypeError)
        self.assertIn("in configuration", fault.message)

    async def testGlobalArgument(self):
        self.assertIs(await self.runner.run(["--log-level=debug"]), RunResult.SUCCESS)
        self.assertEqual(self.calls, [("log-level", {"level": "debug"})])

    async def testGlobalArgumentFromConfiguration(self):
        context = Context(command_configs={"log-level": {"level": "info"}})
        self.assertIs(await self.runner.run(["--log-level"], context), RunResult.SUCCESS)
        self.assertEqual(self.calls, [("log-level", {"level": "info"})])

    async def testGlobalArgumentMissingValue(self):
        self.assertIs(await self.runner.run(["--log-level"]), RunResult.PARSE_ERROR)
        self.assertIsInstance(self.runner.faults[0], MissingValueError)

    async def testGlobalArgumentAcceptsEmptyString(self):
        self.assertIs(await self.runner.run(["--profile="]), RunResult.SUCCESS)
        self.assertEqual(self.calls, [("profile", {"name": ""})])

    async def testGlobalArgumentEmptyValueIsCheckedAgainstChoices(self):
        self.assertIs(await self.runner.run(["--log-level="]), RunResult.PARSE_ERROR)
        self.assertIsInstance(self.runner.faults[0], InvalidChoiceError)

    async def testGlobalWithoutArgumentRejectsValue(self):
        self.assertIs(await self.runner.run(["--quiet=yes"]), RunResult.PARSE_ERROR)
        self.assertIsInstance(self.runner.faults[0], GlobalAssignmentError)

    async def testGlobalNeverConsumesNextToken(self):
        self.assertIs(await self.runner.run(["--quiet", "copy", "a"]), RunResult.SUCCESS)
        self.assertEqual([name for name, _ in self.calls], ["quiet", "copy"])


class TestRunnerRegistration(TestCase):
    """Registration-time validation across commands."""

    @staticmethod
    def noop(args, context):
        pass

    def testDuplicateNames(self):
        runner = Runner([SubCommand(self.noop, name="build")])
        with self.assertRaises(ValueError):
            runner.add_command(SubCommand(self.noop, name="build"))
        with self.assertRaises(ValueError):
            runner.add_command(GlobalCommand(self.noop, name="build"))

    def testDuplicateGlobalAliases(self):
        runner = Runner([GlobalCommand(self.noop, name="help", short_alias="h")])
        with self.assertRaises(ValueError):
            runner.add_command(GlobalCommand(self.noop, name="hush", short_alias="h"))

    def testSubCommandNamedLikeGlobalAlias(self):
        runner = Runner([GlobalCommand(self.noop, name="help", short_alias="h")])
        with self.assertRaises(ValueError):
            runner.add_command(SubCommand(self.noop, name="h"))

    def testGlobalShadowingSubCommandOption(self):
        runner = Runner([SubCommand(self.noop, name="build", options=[Option("verbose", "v", type=bool)])])
        with self.assertRaises(ValueError):
            runner.add_command(GlobalCommand(self.noop, name="version", short_alias="v"))
        with self.assertRaises(ValueError):
            runner.add_command(GlobalCommand(self.noop, name="verbose"))

    def testSubCommandOptionShadowedByGlobal(self):
        runner = Runner([GlobalCommand(self.noop, name="quiet", short_alias="q")])
        with self.assertRaises(ValueError):
            runner.add_command(SubCommand(self.noop, name="build", options=[Option("quick", "q", type=bool)]))

    def testOnlyCommandsAreAccepted(self):
        with self.assertRaises(TypeError):
            Runner([self.noop])
        with self.assertRaises(TypeError):
            Runner(default=self.noop)

    def testCommandsAreListedInRegistrationOrder(self):
        build = SubCommand(self.noop, name="build")
        quiet = GlobalCommand(self.noop, name="quiet")
        runner = Runner([build, quiet])
        self.assertEqual(runner.commands, [build, quiet])
        self.assertEqual(runner.sub_commands, (build,))
        self.assertEqual(runner.global_commands, (quiet,))

    def testExtractInlineValuesOfAGlobal(self):
        config = GlobalCommand(self.noop, name="config", argument=Option("location"))
        runner = Runner([config, SubCommand(self.noop, name="build")])
        args = ["--config=a.yaml", "build", "--config", "--config=b\nc.yaml", "--configs=x"]
        self.assertEqual(runner.extract(args, config), ["a.yaml", "b\nc.yaml"])
        with self.assertRaises(ValueError):
            runner.extract(args, GlobalCommand(self.noop, name="config"))


if __name__ == '__main__':
    # Allow running this test module directly: `python -m pytest` or `python runner.py`.
    unittest.main()
