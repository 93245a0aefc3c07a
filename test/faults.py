"""
Faults module behavioral tests (outcomes and rendering).

Conventions
- Test method names follow CamelCase per project convention.
- Rendering is captured through a rich Console writing to a StringIO.
"""

from __future__ import annotations

import copy
import io
import unittest
from unittest import TestCase

from rich.console import Console

from helmsman import (
    DelegatedCommandError,
    FaultCode,
    GeneralCommandError,
    MissingValueError,
    RunResult,
    UnknownCommandError,
)


def render(fault):
    console = Console(file=io.StringIO(), width=120, color_system=None)
    console.print(fault)
    return console.file.getvalue()


class TestRunResult(TestCase):
    """Outcome values and their exit status."""

    def testExitCodes(self):
        self.assertEqual(RunResult.SUCCESS.exit_code, 0)
        for result in (RunResult.PARSE_ERROR, RunResult.COMMAND_ERROR, RunResult.GENERAL_ERROR):
            with self.subTest(result=result):
                self.assertEqual(result.exit_code, 1)

    def testFaultFamiliesKnowTheirOutcome(self):
        self.assertIs(MissingValueError("missing").result, RunResult.PARSE_ERROR)
        self.assertIs(UnknownCommandError("unknown").result, RunResult.PARSE_ERROR)
        self.assertIs(DelegatedCommandError("failed").result, RunResult.COMMAND_ERROR)
        self.assertIs(GeneralCommandError("broken").result, RunResult.GENERAL_ERROR)


class TestCommandException(TestCase):
    """Options, copies and rich rendering of faults."""

    def testOptionsAreReadOnly(self):
        fault = UnknownCommandError("unknown", code=FaultCode.UNKNOWN_COMMAND)
        self.assertIs(fault.code, FaultCode.UNKNOWN_COMMAND)
        with self.assertRaises(TypeError):
            fault.options["code"] = FaultCode.GENERAL_ERROR

    def testDefaultCodeIsGeneral(self):
        self.assertIs(GeneralCommandError("broken").code, FaultCode.GENERAL_ERROR)

    def testReplaceKeepsTypeAndMergesOptions(self):
        fault = UnknownCommandError("unknown", code=FaultCode.UNKNOWN_COMMAND, title="unknown command")
        replaced = copy.replace(fault, colorful=False, prog="tool")
        self.assertIsInstance(replaced, UnknownCommandError)
        self.assertEqual(replaced.message, "unknown")
        self.assertEqual(replaced.options["title"], "unknown command")
        self.assertFalse(replaced.options["colorful"])
        self.assertNotIn("colorful", fault.options)

    def testRenderingCarriesCodeTitleAndHint(self):
        fault = UnknownCommandError(
            "unknown command 'gret' at first position",
            code=FaultCode.UNKNOWN_COMMAND,
            title="unknown command",
            hint="did you mean 'greet'?",
            prog="tool",
            colorful=False,
        )
        output = render(fault)
        self.assertIn("[ tool — 11101 | Unknown Command ]", output)
        self.assertIn("unknown command 'gret' at first position", output)
        self.assertIn("→ did you mean 'greet'?", output)

    def testRenderingWithoutHint(self):
        output = render(GeneralCommandError("broken", colorful=False))
        self.assertIn("11191 | Error", output)
        self.assertNotIn("→", output)

    def testNormalizeDefaultsToNumericValue(self):
        self.assertEqual(FaultCode.MISSING_VALUE.normalize(), "11114")


if __name__ == '__main__':
    # Allow running this test module directly: `python -m pytest` or `python faults.py`.
    unittest.main()
