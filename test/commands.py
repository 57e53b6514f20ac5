# python
"""
Commands module behavioral tests (App facade, bind shorthand, invoke runner).

Scope
- Validate tree caching, executable-name detection and Header precedence.
- Validate help/schema reads and App.bind results.
- Validate invoke(): prompt normalization, returned remainder, and process
  termination on help requests and faults.

Conventions
- Test method names follow CamelCase per project convention.
- Process termination is observed through SystemExit; streams are captured.
"""

import contextlib
import dataclasses
import io
import json
import sys
import unittest
from typing import Annotated
from unittest import TestCase, mock

from floret import App, Flag, Header, Policy, Subcommand, bind, invoke


@dataclasses.dataclass
class Remove:
    _: Annotated[None, Header(about="Remove a package")] = None
    force: Annotated[bool, Flag("force", alias="f", about="Skip confirmation")] = False
    package: Annotated[str, Flag("package", alias="p", required=True)] = ""


@dataclasses.dataclass
class Pkg:
    _: Annotated[None, Header(name="pkg", author="Pkg Team", about="Package manager", version="0.3.1")] = None
    jobs: Annotated[int, Flag("jobs", alias="j", env="PKG_JOBS", default="4")] = 0
    remove: Annotated[Remove | None, Subcommand("remove")] = None


@dataclasses.dataclass
class Anonymous:
    level: Annotated[int, Flag("level", default="1")] = 0


@dataclasses.dataclass
class Nameless:
    level: Annotated[int, Flag("level")] = 0


class TestApp(TestCase):
    """Facade construction and reads."""

    def testTreeIsCachedPerShapeAndName(self):
        self.assertIs(App(Pkg, "pkg").node, App(Pkg, "pkg").node)
        self.assertIsNot(App(Anonymous, "one").node, App(Anonymous, "two").node)

    def testHeaderNameWins(self):
        self.assertEqual(App(Pkg, "other").node.name, "pkg")

    def testExplicitName(self):
        self.assertEqual(App(Anonymous, "tool").node.name, "tool")

    def testExecutableNameDetection(self):
        cases = (
            (["/usr/local/bin/tool"], "tool"),
            (["C:\\Tools\\tool.exe"], "tool"),
            (["tool.exe"], "tool"),
            ([""], "unknown"),
            ([], "unknown"),
        )
        for argv, expected in cases:
            with self.subTest(argv=argv), mock.patch.object(sys, "argv", argv):
                self.assertEqual(App(Nameless).node.name, expected)

    def testRejectsNonStringName(self):
        with self.assertRaises(TypeError):
            App(Anonymous, 42)

    def testHelpIsNodeHelp(self):
        app = App(Pkg)
        self.assertEqual(app.help(), app.node.help)
        self.assertTrue(app.help().startswith("Usage:\n\tpkg <COMMAND> [OPTIONS] [ARGUEMENTS]\n"))

    def testSchemaIsJson(self):
        document = json.loads(App(Pkg).schema())
        self.assertEqual(document["command"], "pkg")
        self.assertEqual(document["version"], "0.3.1")
        self.assertEqual(document["flags"][0], {
            "name": "jobs",
            "kind": "signed-integer",
            "about": "",
            "index": 1,
            "default": "4",
            "env": "PKG_JOBS",
            "alias": "j",
            "required": False,
        })
        remove, = document["subcommands"]
        self.assertEqual(remove["command"], "remove")
        self.assertEqual(remove["help"], App(Pkg).node.subcommands[0].help)


class TestBind(TestCase):
    """App.bind and the module-level shorthand."""

    def testBindReturnsHandlingApp(self):
        pkg = Pkg()
        remaining, handler = App(Pkg, environ={}).bind(pkg, ["remove", "-f", "-p", "left-pad", "now"])
        self.assertEqual(remaining, ["now"])
        self.assertIsInstance(handler, App)
        self.assertEqual(handler.node.name, "remove")
        self.assertEqual(handler.help(), handler.node.help)
        self.assertEqual(pkg.remove.package, "left-pad")
        self.assertTrue(pkg.remove.force)

    def testBindAtRootReturnsSameApp(self):
        app = App(Pkg, environ={"PKG_JOBS": "0x10"})
        pkg = Pkg()
        remaining, handler = app.bind(pkg, [])
        self.assertIs(handler, app)
        self.assertEqual(pkg.jobs, 16)
        self.assertEqual(remaining, [])

    def testHandlerKeepsOptions(self):
        app = App(Pkg, environ={}, policy=Policy.REJECT, colorful=True)
        _, handler = app.bind(Pkg(), ["remove", "-p", "x"])
        self.assertIs(handler.policy, Policy.REJECT)
        self.assertTrue(handler.colorful)

    def testModuleBind(self):
        anonymous = Anonymous()
        remaining, handler = bind(anonymous, ["--level", "0b11", "tail"])
        self.assertEqual(anonymous.level, 3)
        self.assertEqual(remaining, ["tail"])
        self.assertIs(handler.node.shape, Anonymous)


class TestInvoke(TestCase):
    """Process-boundary runner."""

    def testStringPromptIsShellSplit(self):
        pkg = Pkg()
        remaining = invoke(pkg, "remove --package 'my pkg' extra", environ={})
        self.assertEqual(pkg.remove.package, "my pkg")
        self.assertEqual(remaining, ["extra"])

    def testIterablePrompt(self):
        pkg = Pkg()
        remaining = invoke(pkg, iter(["-j", "2"]), environ={})
        self.assertEqual(pkg.jobs, 2)
        self.assertEqual(remaining, [])

    def testDefaultPromptReadsArgv(self):
        pkg = Pkg()
        with mock.patch.object(sys, "argv", ["pkg", "--jobs", "8", "rest"]):
            remaining = invoke(pkg, environ={})
        self.assertEqual(pkg.jobs, 8)
        self.assertEqual(remaining, ["rest"])

    def testInvalidPromptRaises(self):
        for prompt in (42, ["--jobs", 2]):
            with self.subTest(prompt=prompt), self.assertRaises(TypeError):
                invoke(Pkg(), prompt, environ={})

    def testHelpExitsZero(self):
        stream = io.StringIO()
        with self.assertRaises(SystemExit) as context, contextlib.redirect_stdout(stream):
            invoke(Pkg(), "--help", environ={})
        self.assertEqual(context.exception.code, 0)
        self.assertTrue(stream.getvalue().startswith("pkg 0.3.1\nPkg Team\nPackage manager\n\nUsage:"))

    def testSubcommandHelpShowsSubcommandBanner(self):
        stream = io.StringIO()
        with self.assertRaises(SystemExit) as context, contextlib.redirect_stdout(stream):
            invoke(Pkg(), ["remove", "-h"], environ={})
        self.assertEqual(context.exception.code, 0)
        self.assertTrue(stream.getvalue().startswith("remove\nRemove a package\n\nUsage:"))

    def testFaultExitsOne(self):
        stream = io.StringIO()
        with self.assertRaises(SystemExit) as context, contextlib.redirect_stderr(stream):
            invoke(Pkg(), "remove -f", environ={})
        self.assertEqual(context.exception.code, 1)
        self.assertIn("required parameter package is missing", stream.getvalue())
        self.assertIn("pkg remove [OPTIONS] --package <PACKAGE> [ARGUEMENTS]", stream.getvalue())

    def testWarningsAreRendered(self):
        pkg = Pkg()
        stream = io.StringIO()
        with contextlib.redirect_stderr(stream):
            remaining = invoke(pkg, "--jbos 3", environ={}, policy=Policy.WARN)
        self.assertIn("unknown flag '--jbos' ignored", stream.getvalue())
        self.assertEqual(remaining, ["3"])
        self.assertEqual(pkg.jobs, 4)


if __name__ == "__main__":
    unittest.main()
