# python
"""
Faults module behavioral tests (codes, options, rendering, triggering).

Scope
- Validate fault codes and class-level defaults.
- Validate read-only options and copy.replace() merging.
- Validate rich rendering of the header, message and hint.
- Validate trigger(): raising outside the shell, printing and exiting inside it.

Conventions
- Test method names follow CamelCase per project convention.
- Streams are captured with contextlib redirections.
"""

import contextlib
import copy
import dataclasses
import io
import unittest
import warnings
from typing import Annotated
from unittest import TestCase

from rich.console import Console

from floret import Flag, Header, build
from floret.faults import (
    CommandException,
    CommandWarning,
    FaultCode,
    HelpRequested,
    MissingRequiredError,
    UnknownFlagWarning,
    trigger,
)


@dataclasses.dataclass
class Deploy:
    _: Annotated[None, Header(name="deploy", version="2.0.0", about="Ship it")] = None
    target: Annotated[str, Flag("target", required=True, about="Where to ship")] = ""


def _text(renderable):
    console = Console(file=io.StringIO(), width=200, color_system=None, highlight=False)
    console.print(renderable)
    return console.file.getvalue()


class TestFaultObjects(TestCase):
    """Codes, titles and options."""

    def testCodeDefaultsToClassFault(self):
        fault = MissingRequiredError("required parameter x is missing")
        self.assertEqual(fault.code, FaultCode.MISSING_REQUIRED)
        self.assertEqual(str(fault), "required parameter x is missing")
        self.assertIsNone(fault.node)

    def testBaseClassesCarryNeutralCodes(self):
        self.assertEqual(CommandException("boom").code, FaultCode.COMMAND_ERROR)
        self.assertIs(CommandWarning.__fault__, FaultCode.COMMAND_WARNING)
        self.assertIn("10000", _text(CommandException("boom")))

    def testCodeOverrideThroughOptions(self):
        fault = CommandException("boom", code=FaultCode.CAN_NOT_PARSE_ENV)
        self.assertEqual(fault.code, FaultCode.CAN_NOT_PARSE_ENV)

    def testOptionsAreReadOnly(self):
        fault = CommandException("boom", hint="try again")
        with self.assertRaises(TypeError):
            fault.options["hint"] = "other"

    def testReplaceMergesOptions(self):
        fault = MissingRequiredError("missing", flag="x")
        replaced = copy.replace(fault, hint="pass it")
        self.assertIsInstance(replaced, MissingRequiredError)
        self.assertEqual(replaced.message, "missing")
        self.assertEqual(dict(replaced.options), {"flag": "x", "hint": "pass it"})

    def testNormalizeDefaultsToNumericText(self):
        self.assertEqual(FaultCode.UNKNOWN_FLAG.normalize(), "11204")


class TestRendering(TestCase):
    """Rich rendering."""

    def testHeaderMessageAndHint(self):
        text = _text(MissingRequiredError("required parameter x is missing", hint="pass --x"))
        self.assertIn("[ floret — 11203 | missing required parameter ]", text)
        self.assertIn("required parameter x is missing", text)
        self.assertIn(" → pass --x", text)

    def testProgramNameFromNode(self):
        node = build(Deploy)
        text = _text(MissingRequiredError("missing", node=node))
        self.assertIn("[ deploy — ", text)

    def testFancyRenderingUsesPanel(self):
        text = _text(MissingRequiredError("missing", fancy=True))
        self.assertIn("╭", text)
        self.assertIn("missing", text)


class TestTrigger(TestCase):
    """trigger() outside and inside the shell."""

    def testRaisesOutsideShell(self):
        with self.assertRaises(MissingRequiredError) as context:
            trigger(MissingRequiredError("missing", flag="x"), hint="pass it")
        self.assertEqual(context.exception.options["hint"], "pass it")

    def testShellPrintsFaultAndUsage(self):
        node = build(Deploy)
        stream = io.StringIO()
        with self.assertRaises(SystemExit) as context, contextlib.redirect_stderr(stream):
            trigger(MissingRequiredError("required parameter target is missing", node=node), shell=True)
        self.assertEqual(context.exception.code, 1)
        self.assertIn("required parameter target is missing", stream.getvalue())
        self.assertIn("Usage:", stream.getvalue())
        self.assertIn("--target <TARGET>", stream.getvalue())

    def testHelpPrintsBannerAndExitsZero(self):
        node = build(Deploy)
        stream = io.StringIO()
        with self.assertRaises(SystemExit) as context, contextlib.redirect_stdout(stream):
            trigger(HelpRequested("help requested", node=node), shell=True)
        self.assertEqual(context.exception.code, 0)
        self.assertTrue(stream.getvalue().startswith("deploy 2.0.0\nShip it\n\nUsage:"))

    def testWarningOutsideShellIsWarned(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            trigger(UnknownFlagWarning("unknown flag '--x' ignored"))
        self.assertEqual(len(caught), 1)
        self.assertIsInstance(caught[0].message, UnknownFlagWarning)

    def testWarningInShellIsPrinted(self):
        stream = io.StringIO()
        with contextlib.redirect_stderr(stream):
            trigger(UnknownFlagWarning("unknown flag '--x' ignored"), shell=True)
        self.assertIn("unknown flag '--x' ignored", stream.getvalue())
        self.assertIn("12201", stream.getvalue())

    def testTriggerRejectsPlainObjects(self):
        with self.assertRaises(TypeError):
            trigger(ValueError("plain"))


if __name__ == "__main__":
    unittest.main()
