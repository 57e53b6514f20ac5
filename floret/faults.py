"""
Floret faults (errors and warnings) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing issue
  (errors, warnings and the help signal). Codes are grouped by domain to keep
  copy consistent and make logs/searches predictable.
- CommandException / CommandWarning: base types that carry message + options and
  know how to render themselves in a friendly, lowercased, and actionable way.
- trigger(): central entry point to surface any fault at the process boundary.

Propagation
- Schema construction faults abort the whole tree build.
- Binding faults abort the binding of the current node and carry it in
  options["node"] so callers can show the relevant usage block.
- CanNotSetError is raised by the coercion layer but swallowed by the binder.

Integration
- Library code raises the exceptions directly.
- The process-boundary facade (commands.invoke) hands them to trigger(), which
  prints them through rich and terminates the process.
"""
import copy
import inspect
import sys
import warnings
from abc import ABC
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True, highlight=False)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the package (stable identifiers).

    grouping (by high-level domain)
    - generic (100xx)
      • COMMAND_ERROR, COMMAND_WARNING (base classes without a specific code)
    - signals (100xx)
      • HELP_REQUESTED
    - schema derivation (111xx)
      • UNSUPPORTED_TYPE, MALFORMED_METADATA
    - binding (112xx)
      • TYPE_MISMATCH, MISSING_VALUE, MISSING_REQUIRED, UNKNOWN_FLAG
    - coercion (113xx)
      • CAN_NOT_PARSE, CAN_NOT_PARSE_ENV, CAN_NOT_PARSE_DEFAULT, CAN_NOT_SET
    - warnings (12xxx)
      • UNKNOWN_FLAG_IGNORED
    """
    # --- generic (100xx) ---
    COMMAND_ERROR           = 10000
    COMMAND_WARNING         = 10002

    # --- signals (10xxx) ---
    HELP_REQUESTED          = 10001

    # --- schema errors (111xx) ---
    UNSUPPORTED_TYPE        = 11101
    MALFORMED_METADATA      = 11102

    # --- binding errors (112xx) ---
    TYPE_MISMATCH           = 11201
    MISSING_VALUE           = 11202
    MISSING_REQUIRED        = 11203
    UNKNOWN_FLAG            = 11204

    # --- coercion errors (113xx) ---
    CAN_NOT_PARSE           = 11301
    CAN_NOT_PARSE_ENV       = 11302
    CAN_NOT_PARSE_DEFAULT   = 11303
    CAN_NOT_SET             = 11304

    # --- warnings (12xxx) ---
    UNKNOWN_FLAG_IGNORED    = 12201

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _render(fault, palette):
    """
    shared rich rendering for exceptions and warnings.

    layout
    - header: "[ <prog> — <code> | <title> ]"
    - body: the message
    - footer: " → <hint>" (omitted when there is no hint)
    """
    main = __import__("__main__")
    options = fault.options
    colorful = options.get("colorful", False)
    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if not colorful:
            return Text(str(fragment))
        return Text(str(fragment), styles[style])

    node = options.get("node")
    prog = getattr(main, "__prog__", node.root.name if node is not None else "floret")

    header = Text.assemble(
        "[ ",
        text(prog, "prog-name"),
        " — ",
        text(options.get("code", type(fault).__fault__).normalize(), "code"),
        " | ",
        text(options.get("title", fault.__title__), "title"),
        " ]"
    )
    message = text(fault.message, "message")
    renders = [message]
    if hint := options.get("hint"):
        renders.append(Text.assemble(text(" → ", "hint-arrow"), text(hint, "hint")))

    if options.get("fancy", False):
        return Panel(Group(*renders), title=header, title_align="left")
    return Group(header, *renders)


class CommandException(Exception):
    """
    base class of every error raised by the package.

    a fault carries a lowercased one-sentence message and a read-only mapping of
    options (title, code, hint, node, and any context the reporter may want).
    class-level __fault__/__title__ provide defaults when options omit them.
    """
    __fault__ = FaultCode.COMMAND_ERROR
    __title__ = "command error"

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(*(() if message is Unset else (message,)))
        self.message = "" if message is Unset else message
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return self.options.get("code", type(self).__fault__)

    @property
    def node(self):
        return self.options.get("node")

    def __rich__(self):
        return _render(self, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "title": "bold #FF4DA6",  # friendly pinky title

            # body
            "message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        })

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        if (node := self.node) is not None:
            console.print()
            console.print(node.help, markup=False, end="")
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message or Unset, **{**self.options, **overrides})


class UnsupportedTypeError(CommandException):
    __fault__ = FaultCode.UNSUPPORTED_TYPE
    __title__ = "type not supported"


class TypeMismatchError(CommandException):
    __fault__ = FaultCode.TYPE_MISMATCH
    __title__ = "type mismatch"


class CanNotParseError(CommandException):
    __fault__ = FaultCode.CAN_NOT_PARSE
    __title__ = "can not parse value"


class CanNotSetError(CommandException):
    __fault__ = FaultCode.CAN_NOT_SET
    __title__ = "can not set value"


class MissingValueError(CommandException):
    __fault__ = FaultCode.MISSING_VALUE
    __title__ = "missing value"


class MissingRequiredError(CommandException):
    __fault__ = FaultCode.MISSING_REQUIRED
    __title__ = "missing required parameter"


class UnknownFlagError(CommandException):
    __fault__ = FaultCode.UNKNOWN_FLAG
    __title__ = "unknown flag"


class HelpRequested(CommandException):
    """
    sentinel raised when --help/-h reaches a node that does not declare it.

    not a true error: at the process boundary it prints the help banner of the
    node that was handling the tokens to stdout and exits with status 0.
    """
    __fault__ = FaultCode.HELP_REQUESTED
    __title__ = "help requested"

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from None
        Console(highlight=False).print(self.options["node"].banner, markup=False, end="")
        sys.exit(0)


class CommandWarning(ABC, Warning):
    """
    base class of soft issues, emitted through the warnings module.
    """
    __fault__ = FaultCode.COMMAND_WARNING
    __title__ = "command warning"

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(*(() if message is Unset else (message,)))
        self.message = "" if message is Unset else message
        self.options = MappingProxyType(options)

    def __rich__(self):
        return _render(self, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #FFB400",  # amber fault code for warnings
            "title": "bold #FFC2E0",  # softer pinky title for warnings

            # body
            "message": "#D6D6DE",  # slightly lighter gray body
            "hint-arrow": "#B8EFAF dim",  # softer green arrow
            "hint": "italic #B8EFAF",  # softer green hint text
        })

    def __trigger__(self):
        if not self.options.get("shell", False):
            return warnings.warn(self, stacklevel=len(inspect.stack()))
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message or Unset, **{**self.options, **overrides})


class UnknownFlagWarning(CommandWarning):
    __fault__ = FaultCode.UNKNOWN_FLAG_IGNORED
    __title__ = "unknown flag ignored"


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via __replace__(**options) before triggering.
    - in shell mode, rendering happens via the rich console and the process exits
      (status 0 for HelpRequested, 1 otherwise); otherwise exceptions are raised
      and warnings are emitted.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


__all__ = (
    "FaultCode",
    "CommandException",
    "UnsupportedTypeError",
    "TypeMismatchError",
    "CanNotParseError",
    "CanNotSetError",
    "MissingValueError",
    "MissingRequiredError",
    "UnknownFlagError",
    "HelpRequested",
    "CommandWarning",
    "UnknownFlagWarning",
    "trigger",
)
